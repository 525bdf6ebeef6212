"""
Tests for the fire-and-forget usage recorder.
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import select


def make_event(api_key, **overrides):
    from carintel.core.services.usage import UsageEvent

    data = {
        "api_key_id": api_key.id,
        "organization_id": api_key.organization_id,
        "endpoint": "/v1/vehicles/lookup",
        "method": "GET",
        "source": "api",
        "status_code": 200,
        "response_time_ms": 12,
    }
    data.update(overrides)
    return UsageEvent(**data)


class TestUsageEvent:

    def test_defaults(self):
        from carintel.core.services.usage import UsageEvent

        event = UsageEvent(
            api_key_id=uuid4(),
            organization_id=uuid4(),
            endpoint="/v1/vehicles/makes",
            method="GET",
            source="api",
            status_code=200,
            response_time_ms=3,
        )

        assert event.tokens_used == 1
        assert event.request_params is None
        assert event.occurred_at.tzinfo is not None


class TestUsageRecorderWrite:
    """Direct writes against the test database."""

    @pytest.mark.asyncio
    async def test_write_creates_log_and_aggregate(self, session_factory, api_key):
        from carintel.core.db.models import UsageDailyAggregate, UsageLog
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        key = api_key[1]

        await recorder.write(
            make_event(key, request_params={"year": "2024"}, user_agent="pytest")
        )

        async with session_factory() as session:
            logs = (await session.execute(select(UsageLog))).scalars().all()
            aggregates = (
                (await session.execute(select(UsageDailyAggregate))).scalars().all()
            )

        assert len(logs) == 1
        assert logs[0].api_key_id == key.id
        assert logs[0].status_code == 200
        assert logs[0].request_params == {"year": "2024"}
        assert logs[0].user_agent == "pytest"
        assert len(aggregates) == 1
        assert aggregates[0].request_count == 1
        assert aggregates[0].token_count == 1
        assert aggregates[0].usage_date == datetime.now(timezone.utc).date()

    @pytest.mark.asyncio
    async def test_aggregate_increments_per_key(self, session_factory, api_key):
        from carintel.core.db.models import UsageDailyAggregate
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        key = api_key[1]

        await recorder.write(make_event(key))
        await recorder.write(make_event(key, status_code=404))
        await recorder.write(make_event(key, endpoint="/v1/vehicles/makes"))
        await recorder.write(make_event(key, source="dashboard"))

        async with session_factory() as session:
            rows = (
                (
                    await session.execute(
                        select(UsageDailyAggregate).order_by(
                            UsageDailyAggregate.source, UsageDailyAggregate.endpoint
                        )
                    )
                )
                .scalars()
                .all()
            )

        counts = {(row.source, row.endpoint): row.request_count for row in rows}
        assert counts == {
            ("api", "/v1/vehicles/lookup"): 2,
            ("api", "/v1/vehicles/makes"): 1,
            ("dashboard", "/v1/vehicles/lookup"): 1,
        }


class TestUsageRecorderQueue:
    """Background worker behavior."""

    @pytest.mark.asyncio
    async def test_record_is_written_by_worker(self, session_factory, api_key):
        from carintel.core.db.models import UsageLog
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        recorder.start()
        try:
            recorder.record(make_event(api_key[1]))
            await recorder.flush()
        finally:
            await recorder.aclose(timeout=1.0)

        async with session_factory() as session:
            logs = (await session.execute(select(UsageLog))).scalars().all()
        assert len(logs) == 1

    @pytest.mark.asyncio
    async def test_record_never_raises_when_queue_full(self, session_factory):
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory, max_size=1)
        key = SimpleNamespace(id=uuid4(), organization_id=uuid4())

        recorder.record(make_event(key))
        recorder.record(make_event(key))
        recorder.record(make_event(key))

        assert recorder.dropped == 2

    @pytest.mark.asyncio
    async def test_write_failure_is_logged_and_swallowed(self, session_factory):
        from carintel.core.exceptions.types import DatabaseException
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        key = SimpleNamespace(id=uuid4(), organization_id=uuid4())

        with patch.object(
            recorder,
            "write",
            new=AsyncMock(side_effect=[DatabaseException("down"), None]),
        ) as mock_write, patch(
            "carintel.core.services.usage.usage_logger"
        ) as mock_logger:
            recorder.start()
            recorder.record(make_event(key))
            recorder.record(make_event(key))
            await recorder.flush()

            assert mock_write.await_count == 2
            mock_logger.error.assert_called_once()
            assert recorder.is_running is True

        await recorder.aclose(timeout=1.0)

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, session_factory):
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        recorder.start()
        worker = recorder._worker
        recorder.start()

        assert recorder._worker is worker
        await recorder.aclose(timeout=1.0)

    @pytest.mark.asyncio
    async def test_aclose_stops_worker(self, session_factory):
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        recorder.start()

        await recorder.aclose(timeout=1.0)

        assert recorder.is_running is False

    @pytest.mark.asyncio
    async def test_aclose_times_out_on_stuck_write(self, session_factory):
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)
        key = SimpleNamespace(id=uuid4(), organization_id=uuid4())

        async def never_finishes(event):
            await asyncio.sleep(3600)

        with patch.object(recorder, "write", new=never_finishes):
            recorder.start()
            recorder.record(make_event(key))
            await asyncio.sleep(0)
            await recorder.aclose(timeout=0.05)

        assert recorder.is_running is False

    @pytest.mark.asyncio
    async def test_aclose_without_start(self, session_factory):
        from carintel.core.services.usage import UsageRecorder

        recorder = UsageRecorder(session_factory=session_factory)

        await recorder.aclose()

        assert recorder.is_running is False
