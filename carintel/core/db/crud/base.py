from typing import (
    Any,
    TypeVar,
    Generic,
    Type,
    Sequence,
    Callable,
)
from uuid import UUID

from sqlalchemy import (
    SQLColumnExpression,
    and_,
    update as sa_update,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select, Update

from carintel.core.exceptions.types import DatabaseException

T = TypeVar("T")


def dialect_insert(session: AsyncSession, model: Any):
    """
    Build an ``INSERT`` supporting ``ON CONFLICT`` for the session's dialect.

    PostgreSQL in production, SQLite under the test suite; both expose the
    same ``on_conflict_do_update`` API.
    """
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


class BaseDB(Generic[T]):
    def __init__(self, model: Type[T]):
        self.model = model

    async def get_by_id(
        self, session: AsyncSession, id: UUID | str, options: list[Any] = []
    ) -> T | None:
        """
        Asynchronously retrieves an instance of the model by its primary key.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            id (UUID | str): The primary key value of the model instance to retrieve.
            options (list[Any], optional): A list of SQLAlchemy loader options (e.g., selectinload). Defaults to an empty list.

        Returns:
            T | None: The model instance if found, otherwise None.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt: Select = (
                select(self.model)
                .options(*options)
                .where(getattr(self.model, "id") == id)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except (SQLAlchemyError, TimeoutError) as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def get_by_filters(
        self,
        session: AsyncSession,
        filters: dict,
        order_by: list[SQLColumnExpression] | None = None,
        options: list[Any] = [],
    ) -> Sequence[T]:
        """
        Asynchronously retrieves records of the model that match the given filters.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            filters (dict): A dictionary of filter conditions to apply to the query.
            order_by (list[SQLColumnExpression] | None, optional): A list of SQLAlchemy expressions to order the results. Defaults to None.
            options (list[Any], optional): A list of SQLAlchemy loader options (e.g., selectinload). Defaults to empty list.

        Returns:
            Sequence[T]: A sequence containing instances of the model that match the filters.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*options).filter_by(**filters)
            if order_by:
                stmt = stmt.order_by(*order_by)
            result = await session.execute(stmt)
            return result.scalars().all()
        except (SQLAlchemyError, TimeoutError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with filters {filters}: {str(e)}"
            ) from e

    async def get_one_by_filters(
        self, session: AsyncSession, filters: dict, options: list[Any] = []
    ) -> T | None:
        """
        Asynchronously retrieves a single record of the model that matches the given filters.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            filters (dict): A dictionary of filter conditions to apply to the query.
            options (list[Any], optional): A list of SQLAlchemy loader options (e.g., selectinload). Defaults to empty list.

        Returns:
            T | None: An instance of the model if found, otherwise None.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*options).filter_by(**filters)
            result = await session.execute(stmt)
            return result.scalars().first()
        except (SQLAlchemyError, TimeoutError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving one {self.model.__name__} with filters {filters}: {str(e)}"
            ) from e

    async def get_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        order_by: Sequence[Any] | None = None,
        limit: int | None = None,
        options: list[Any] = [],
    ) -> Sequence[T]:
        """
        Asynchronously retrieves records of the model that match the given conditions.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            conditions (list[SQLColumnExpression]): A list of SQLAlchemy expressions to filter the query.
            order_by (Sequence[Any] | None, optional): Columns or expressions to order by. Defaults to None.
            limit (int | None, optional): Max number of records to return. Defaults to None.
            options (list[Any], optional): A list of SQLAlchemy loader options (e.g., selectinload). Defaults to empty list.

        Returns:
            Sequence[T]: A sequence containing instances of the model that match the conditions.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*options).where(and_(*conditions))
            if order_by:
                stmt = stmt.order_by(*order_by)
            if limit:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return result.scalars().all()
        except (SQLAlchemyError, TimeoutError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def get_distinct(
        self,
        session: AsyncSession,
        column: Any,
        conditions: Sequence[SQLColumnExpression] = (),
        descending: bool = False,
    ) -> list[Any]:
        """
        Asynchronously retrieves the sorted distinct non-null values of a column.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            column: The mapped column to select.
            conditions: SQLAlchemy expressions to filter the query.
            descending (bool, optional): Sort newest/largest first. Defaults to False.

        Returns:
            list[Any]: The distinct values.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = (
                select(column)
                .where(column.is_not(None), *conditions)
                .distinct()
                .order_by(column.desc() if descending else column.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except (SQLAlchemyError, TimeoutError) as e:
            raise DatabaseException(
                f"Error retrieving distinct {column} from {self.model.__name__}: {str(e)}"
            ) from e

    async def create(
        self,
        session: AsyncSession,
        data: dict,
        validate: Callable[[dict], dict] | None = None,
        commit_self: bool = True,
    ) -> T:
        """
        Asynchronously creates and persists a new instance of the model using the provided data.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use for database operations.
            data (dict): A dictionary of fields and values to initialize the model instance.
            validate (Callable[[dict], dict] | None, optional): An optional callable to validate or transform the input data before model instantiation. Defaults to None.
            commit_self (bool, optional): If True, commits the transaction and refreshes the object from the database. If False, only flushes the session. Defaults to True.

        Returns:
            T: The newly created and persisted model instance.

        Raises:
            DatabaseException: If an error occurs while creating the model instance or committing the transaction.
        """
        try:
            if validate:
                data = validate(data)

            obj = self.model(**data)
            session.add(obj)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            await session.refresh(obj)
            return obj
        except (SQLAlchemyError, TimeoutError, ValueError) as e:
            raise DatabaseException(
                f"Error creating {self.model.__name__}: {str(e)}"
            ) from e

    async def update(
        self,
        session: AsyncSession,
        id: UUID | str,
        updates: dict,
        commit_self: bool = True,
    ) -> T | None:
        """
        Asynchronously updates a record in the database with the given ID using the provided updates.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use for the update operation.
            id (UUID | str): The unique identifier of the record to update.
            updates (dict): A dictionary containing the fields and their new values to update in the record.
            commit_self (bool, optional): If True, commits the transaction after the update; otherwise, flushes the session. Defaults to True.

        Returns:
            T | None: The updated record as an instance of the model, or None if no record was found with the given ID.

        Raises:
            DatabaseException: If an error occurs while updating the record or committing the transaction.
        """
        try:
            stmt: Update = (
                sa_update(self.model)
                .where(self.model.id == id)  # type: ignore[attr-defined]
                .values(**updates)
                .returning(self.model)
                .execution_options(synchronize_session="fetch")
            )
            result = await session.execute(stmt)
            obj = result.scalar_one_or_none()

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return obj
        except (SQLAlchemyError, TimeoutError) as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with ID {id}: {str(e)}"
            ) from e


__all__ = ["BaseDB", "dialect_insert"]
