from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    async_sessionmaker,
    AsyncAttrs,
)
from sqlalchemy.orm import DeclarativeBase

from carintel.core.config import settings

ASYNC_SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    """Pool options for the given URL; SQLite does not take queue pool sizing."""
    if url.startswith("sqlite"):
        return {"echo": settings.DEBUG}
    return {
        "echo": settings.DEBUG,
        "pool_size": 20,  # Increase pool size for concurrent connections
        "max_overflow": 30,  # Allow overflow connections
        "pool_pre_ping": True,  # Validate connections before use
        "pool_recycle": 3600,  # Recycle connections every hour
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT_SECONDS,
        # asyncpg cancels any statement running longer than this
        "connect_args": {"command_timeout": settings.DATABASE_COMMAND_TIMEOUT_SECONDS},
    }


async_engine: AsyncEngine = create_async_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL,
    **_engine_options(ASYNC_SQLALCHEMY_DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    autoflush=False,
    expire_on_commit=False,
    autobegin=True,  # Automatically begin transactions
)


# Base class for declarative_base
class Base(AsyncAttrs, DeclarativeBase):
    pass


async def init_db() -> None:
    """
    Initializes the database by creating all the tables defined in the metadata.

    Returns:
        None
    """
    # Register every model on the metadata before create_all
    import carintel.core.db.models  # noqa: F401
    import carintel.apps.vehicles.db.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """
    Dispose the database connection.

    Returns:
        None
    """
    await async_engine.dispose()
