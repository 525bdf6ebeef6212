"""
Test suite for BaseDB CRUD operations and the usage aggregate counters.

Run all tests:
    pytest tests/core/db/crud/test_base_crud.py -v
"""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


def broken_session(error: Exception | None = None) -> AsyncMock:
    session = AsyncMock(spec=AsyncSession)
    session.execute.side_effect = error or OperationalError(
        "SELECT 1", {}, Exception("server closed the connection")
    )
    return session


class TestBaseDBReads:

    @pytest.mark.asyncio
    async def test_get_by_id(self, db_session, tier):
        from carintel.core.db.crud import subscription_tier_db

        found = await subscription_tier_db.get_by_id(db_session, "starter")
        missing = await subscription_tier_db.get_by_id(db_session, "platinum")

        assert found.rate_limit_per_minute == 60
        assert missing is None

    @pytest.mark.asyncio
    async def test_get_by_conditions_order_and_limit(self, db_session):
        from carintel.apps.vehicles.db.crud import vehicle_spec_db
        from carintel.apps.vehicles.db.models import VehicleSpec

        for year in (2021, 2023, 2022):
            db_session.add(VehicleSpec(year=year, make="Mazda", model="CX-5"))
        await db_session.commit()

        rows = await vehicle_spec_db.get_by_conditions(
            db_session,
            [VehicleSpec.make == "Mazda"],
            order_by=[VehicleSpec.year.desc()],
            limit=2,
        )

        assert [r.year for r in rows] == [2023, 2022]

    @pytest.mark.asyncio
    async def test_get_distinct_skips_null(self, db_session):
        from carintel.apps.vehicles.db.crud import vehicle_spec_db
        from carintel.apps.vehicles.db.models import VehicleSpec

        db_session.add_all(
            [
                VehicleSpec(year=2024, make="Mazda", model="CX-5", trim="Touring"),
                VehicleSpec(year=2023, make="Mazda", model="CX-5", trim="Touring"),
                VehicleSpec(year=2024, make="Mazda", model="CX-5", trim="Carbon"),
                VehicleSpec(year=2024, make="Mazda", model="CX-5", trim=None),
            ]
        )
        await db_session.commit()

        trims = await vehicle_spec_db.get_distinct(db_session, VehicleSpec.trim)

        assert trims == ["Carbon", "Touring"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda db, s: db.get_by_id(s, "starter"),
            lambda db, s: db.get_by_filters(s, {"name": "Starter"}),
            lambda db, s: db.get_by_conditions(s, []),
        ],
    )
    async def test_store_fault_becomes_database_exception(self, call):
        from carintel.core.db.crud import subscription_tier_db
        from carintel.core.exceptions.types import DatabaseException

        with pytest.raises(DatabaseException) as exc_info:
            await call(subscription_tier_db, broken_session())

        assert isinstance(exc_info.value.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_statement_timeout_becomes_database_exception(self):
        from carintel.core.db.crud import api_key_db
        from carintel.core.exceptions.types import DatabaseException

        session = broken_session(TimeoutError())

        with pytest.raises(DatabaseException) as exc_info:
            await api_key_db.get_by_key_hash(session, "0" * 64)

        assert isinstance(exc_info.value.__cause__, TimeoutError)

    @pytest.mark.asyncio
    async def test_usage_timeout_becomes_database_exception(self):
        from carintel.core.db.crud import usage_daily_aggregate_db
        from carintel.core.exceptions.types import DatabaseException

        with pytest.raises(DatabaseException):
            await usage_daily_aggregate_db.sum_requests_since(
                broken_session(TimeoutError()), uuid4(), date(2024, 6, 1)
            )


class TestBaseDBWrites:

    @pytest.mark.asyncio
    async def test_create(self, db_session):
        from carintel.core.db.crud import subscription_tier_db

        tier = await subscription_tier_db.create(
            db_session,
            {"id": "pro", "name": "Pro", "rate_limit_per_minute": 300, "monthly_limit": None},
        )

        assert tier.id == "pro"
        assert tier.monthly_limit is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "rate_limit,monthly_limit", [(0, 1000), (-5, 1000), (60, 0)]
    )
    async def test_create_rejects_non_positive_limits(
        self, db_session, rate_limit, monthly_limit
    ):
        from carintel.core.db.crud import subscription_tier_db
        from carintel.core.exceptions.types import DatabaseException

        with pytest.raises(DatabaseException):
            await subscription_tier_db.create(
                db_session,
                {
                    "id": "broken",
                    "name": "Broken",
                    "rate_limit_per_minute": rate_limit,
                    "monthly_limit": monthly_limit,
                },
            )

    @pytest.mark.asyncio
    async def test_update_unknown_id_returns_none(self, db_session, tier):
        from carintel.core.db.crud import api_key_db

        assert await api_key_db.update(db_session, uuid4(), {"name": "x"}) is None


class TestUsageAggregates:

    @pytest.mark.asyncio
    async def test_increment_accumulates(self, db_session, organization):
        from sqlalchemy import select

        from carintel.core.db.crud import usage_daily_aggregate_db
        from carintel.core.db.models import UsageDailyAggregate

        for _ in range(2):
            await usage_daily_aggregate_db.increment(
                db_session,
                organization_id=organization.id,
                usage_date=date(2024, 6, 1),
                source="api",
                endpoint="/v1/vehicles/makes",
                requests=3,
                tokens=3,
            )

        rows = (await db_session.execute(select(UsageDailyAggregate))).scalars().all()
        assert len(rows) == 1
        assert rows[0].request_count == 6
        assert rows[0].token_count == 6

    @pytest.mark.asyncio
    async def test_sum_requests_since(self, db_session, organization, seed_usage):
        from carintel.core.db.crud import usage_daily_aggregate_db

        await seed_usage(organization.id, 4, usage_date=date(2024, 5, 31))
        await seed_usage(organization.id, 5, usage_date=date(2024, 6, 1))
        await seed_usage(
            organization.id,
            7,
            usage_date=date(2024, 6, 15),
            endpoint="/v1/vehicles/makes",
        )

        total = await usage_daily_aggregate_db.sum_requests_since(
            db_session, organization.id, date(2024, 6, 1)
        )

        assert total == 12

    @pytest.mark.asyncio
    async def test_sum_without_usage_is_zero(self, db_session, organization):
        from carintel.core.db.crud import usage_daily_aggregate_db

        total = await usage_daily_aggregate_db.sum_requests_since(
            db_session, organization.id, date(2024, 6, 1)
        )

        assert total == 0
