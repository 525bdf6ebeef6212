"""
CRUD operations for usage accounting models.

"""

from datetime import date, datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from carintel.core.db.crud.base import BaseDB, dialect_insert
from carintel.core.db.models.usage import UsageDailyAggregate, UsageLog
from carintel.core.exceptions.types import DatabaseException


class UsageLogDB(BaseDB[UsageLog]):
    """
    CRUD operations for UsageLog model.

    Note: UsageLog records are append-only.
    """

    def __init__(self):
        super().__init__(UsageLog)


class UsageDailyAggregateDB(BaseDB[UsageDailyAggregate]):
    """CRUD operations for UsageDailyAggregate model."""

    def __init__(self):
        super().__init__(UsageDailyAggregate)

    async def increment(
        self,
        session: AsyncSession,
        organization_id: UUID,
        usage_date: date,
        source: str,
        endpoint: str,
        requests: int = 1,
        tokens: int = 1,
        commit_self: bool = True,
    ) -> None:
        """
        Atomically add to the counters of a daily aggregate row.

        Uses ``INSERT ... ON CONFLICT DO UPDATE SET count = count + excluded``
        so concurrent writers never lose increments.

        Args:
            session: Database session.
            organization_id: Organization billed.
            usage_date: UTC calendar day.
            source: Client source tag.
            endpoint: Route template.
            requests: Requests to add.
            tokens: Tokens to add.
            commit_self: Whether to commit after the operation.

        Raises:
            DatabaseException: If an error occurs during the operation.
        """
        now = datetime.now(timezone.utc)
        table = UsageDailyAggregate.__table__
        try:
            stmt = dialect_insert(session, UsageDailyAggregate).values(
                id=uuid4(),
                organization_id=organization_id,
                usage_date=usage_date,
                source=source,
                endpoint=endpoint,
                request_count=requests,
                token_count=tokens,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["organization_id", "usage_date", "source", "endpoint"],
                set_={
                    "request_count": table.c.request_count
                    + stmt.excluded.request_count,
                    "token_count": table.c.token_count + stmt.excluded.token_count,
                    "updated_at": now,
                },
            )
            await session.execute(stmt)

            if commit_self:
                await session.commit()
            else:
                await session.flush()
        except (SQLAlchemyError, TimeoutError) as e:
            raise DatabaseException(
                f"Error incrementing usage aggregate for organization "
                f"{organization_id}: {str(e)}"
            ) from e

    async def sum_requests_since(
        self,
        session: AsyncSession,
        organization_id: UUID,
        since: date,
    ) -> int:
        """
        Total requests recorded for an organization from ``since`` onwards.

        Args:
            session: Database session.
            organization_id: Organization ID.
            since: First day included (e.g. the first of the month).

        Returns:
            The summed request count, 0 when no rows exist.
        """
        stmt = select(
            func.coalesce(func.sum(UsageDailyAggregate.request_count), 0)
        ).where(
            UsageDailyAggregate.organization_id == organization_id,
            UsageDailyAggregate.usage_date >= since,
        )
        try:
            result = await session.execute(stmt)
            return int(result.scalar_one())
        except (SQLAlchemyError, TimeoutError) as e:
            raise DatabaseException(
                f"Error summing usage for organization {organization_id}: {str(e)}"
            ) from e


# Global CRUD instances
usage_log_db = UsageLogDB()
usage_daily_aggregate_db = UsageDailyAggregateDB()


__all__ = [
    "UsageLogDB",
    "UsageDailyAggregateDB",
    "usage_log_db",
    "usage_daily_aggregate_db",
]
