"""
Pytest configuration and core fixtures.

Each test gets its own SQLite database file (aiosqlite) with the schema
created from the ORM metadata. Separate connections per session (NullPool)
let the usage recorder write while a request session is open, as in
production.
"""

import os
from datetime import datetime, timezone
from typing import AsyncGenerator
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool


def pytest_configure(config):
    """Configure pytest with custom settings."""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["RATE_LIMIT_BACKEND"] = "memory"
    os.environ["SENTRY_DSN"] = ""

    # The app engine is never used by tests, but settings require a URL
    test_db_url = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    os.environ["DATABASE_URL"] = test_db_url


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database per test with every table created."""
    from carintel.core.db import Base

    import carintel.core.db.models  # noqa: F401
    import carintel.apps.vehicles.db.models  # noqa: F401

    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'carintel.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield test_engine
    finally:
        await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================================
# Seed helpers
# ============================================================================


async def create_tier(
    session: AsyncSession,
    tier_id: str = "starter",
    rate_limit_per_minute: int = 60,
    monthly_limit: int | None = 10000,
):
    from carintel.core.db.models import SubscriptionTier

    tier = SubscriptionTier(
        id=tier_id,
        name=tier_id.title(),
        rate_limit_per_minute=rate_limit_per_minute,
        monthly_limit=monthly_limit,
    )
    session.add(tier)
    await session.commit()
    return tier


async def create_organization(session: AsyncSession, tier_id: str, **overrides):
    from carintel.core.db.models import Organization
    from carintel.core.enums import SubscriptionStatus

    organization = Organization(
        name=overrides.pop("name", "Acme Motors"),
        tier_id=tier_id,
        subscription_status=overrides.pop(
            "subscription_status", SubscriptionStatus.ACTIVE
        ),
        **overrides,
    )
    session.add(organization)
    await session.commit()
    return organization


async def create_api_key(
    session: AsyncSession, organization_id: UUID, **overrides
) -> tuple[str, "object"]:
    """Issue a key; returns (raw_key, APIKey)."""
    from carintel.core.db.models import APIKey
    from carintel.core.enums import KeyEnvironment
    from carintel.core.utils import generate_api_key

    environment = overrides.pop("environment", KeyEnvironment.LIVE)
    raw_key, key_hash, key_prefix = generate_api_key(environment)
    api_key = APIKey(
        organization_id=organization_id,
        key_hash=key_hash,
        key_prefix=key_prefix,
        environment=environment,
        **overrides,
    )
    session.add(api_key)
    await session.commit()
    return raw_key, api_key


async def add_usage(
    session: AsyncSession,
    organization_id: UUID,
    requests: int,
    usage_date=None,
    endpoint: str = "/v1/vehicles/lookup",
):
    """Pre-load daily aggregate counters for quota tests."""
    from carintel.core.db.crud import usage_daily_aggregate_db

    await usage_daily_aggregate_db.increment(
        session,
        organization_id=organization_id,
        usage_date=usage_date or datetime.now(timezone.utc).date(),
        source="api",
        endpoint=endpoint,
        requests=requests,
        tokens=requests,
    )


# ============================================================================
# Principal fixtures
# ============================================================================


@pytest.fixture
def make_tier(db_session: AsyncSession):
    async def _make(**kwargs):
        return await create_tier(db_session, **kwargs)

    return _make


@pytest.fixture
def make_organization(db_session: AsyncSession):
    async def _make(tier_id: str, **kwargs):
        return await create_organization(db_session, tier_id, **kwargs)

    return _make


@pytest.fixture
def make_api_key(db_session: AsyncSession):
    async def _make(organization_id: UUID, **kwargs):
        return await create_api_key(db_session, organization_id, **kwargs)

    return _make


@pytest.fixture
def seed_usage(db_session: AsyncSession):
    async def _seed(organization_id: UUID, requests: int, **kwargs):
        await add_usage(db_session, organization_id, requests, **kwargs)

    return _seed


@pytest.fixture
async def tier(db_session: AsyncSession):
    return await create_tier(db_session)


@pytest.fixture
async def organization(db_session: AsyncSession, tier):
    return await create_organization(db_session, tier.id)


@pytest.fixture
async def api_key(db_session: AsyncSession, organization) -> tuple[str, object]:
    return await create_api_key(db_session, organization.id)


@pytest.fixture
def raw_key(api_key) -> str:
    return api_key[0]


@pytest.fixture
def auth_headers(raw_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {raw_key}"}


# ============================================================================
# Application fixtures
# ============================================================================


@pytest.fixture
async def usage_recorder(session_factory):
    from carintel.core.services.usage import UsageRecorder

    recorder = UsageRecorder(session_factory=session_factory)
    recorder.start()
    try:
        yield recorder
    finally:
        await recorder.aclose(timeout=1.0)


@pytest.fixture
def app(usage_recorder):
    """FastAPI application with per-test limiter and recorder on its state."""
    from carintel.core.services.rate_limit import MemoryBackend, RateLimiter
    from carintel.main import app as fastapi_app

    fastapi_app.state.rate_limiter = RateLimiter(MemoryBackend())
    fastapi_app.state.usage_recorder = usage_recorder
    return fastapi_app


@pytest.fixture
async def client(app, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client with session override.

    Every request gets its own session on the per-test database.
    """
    from carintel.core.dependencies import get_async_session

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_session

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_async_session, None)


@pytest.fixture
async def authenticated_client(
    client: AsyncClient,
    auth_headers: dict[str, str],
) -> AsyncClient:
    """Provide authenticated async client."""
    client.headers.update(auth_headers)
    return client
