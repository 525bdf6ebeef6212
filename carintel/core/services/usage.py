"""
Usage recording.

Each served request produces a ``UsageEvent``. Events are handed to a
bounded in-process queue and written by a background worker, so recording
never delays or alters the response. Every event writes two things in one
transaction: the ``usage_logs`` fact row and the daily aggregate increment.

Failures are logged (and reach Sentry through the ERROR level) and then
discarded. Usage may undercount during a store outage.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carintel.core.config import settings, usage_logger
from carintel.core.db import AsyncSessionLocal
from carintel.core.db.crud import usage_daily_aggregate_db, usage_log_db


@dataclass
class UsageEvent:
    """One served request, as billed."""

    api_key_id: UUID
    organization_id: UUID
    endpoint: str
    method: str
    source: str
    status_code: int
    response_time_ms: int
    request_params: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    tokens_used: int = 1
    occurred_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class UsageRecorder:
    """
    Fire-and-forget usage sink backed by an ``asyncio.Queue``.

    Example:
        >>> recorder = UsageRecorder()
        >>> recorder.start()
        >>> recorder.record(event)  # never raises, never blocks
        >>> await recorder.aclose()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        max_size: int | None = None,
    ):
        self._session_factory = session_factory or AsyncSessionLocal
        self._queue: asyncio.Queue[UsageEvent] = asyncio.Queue(
            maxsize=max_size if max_size is not None else settings.USAGE_QUEUE_MAX_SIZE
        )
        self._worker: asyncio.Task | None = None
        self.dropped = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the background worker on the running event loop."""
        if self.is_running:
            return
        self._worker = asyncio.create_task(self._run(), name="usage-recorder")
        usage_logger.info("Usage recorder started")

    def record(self, event: UsageEvent) -> None:
        """
        Queue an event for writing.

        Never raises. When the queue is full the event is dropped and counted.
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            usage_logger.warning(
                f"Usage queue full, dropping event for organization "
                f"{event.organization_id} ({event.endpoint})"
            )

    async def write(self, event: UsageEvent) -> None:
        """
        Persist one event: the fact row plus the daily aggregate, atomically.

        Raises:
            DatabaseException: If the store rejects either write.
        """
        async with self._session_factory.begin() as session:
            await usage_log_db.create(
                session,
                {
                    "api_key_id": event.api_key_id,
                    "organization_id": event.organization_id,
                    "endpoint": event.endpoint,
                    "method": event.method,
                    "source": event.source,
                    "status_code": event.status_code,
                    "response_time_ms": event.response_time_ms,
                    "tokens_used": event.tokens_used,
                    "request_params": event.request_params,
                    "ip_address": event.ip_address,
                    "user_agent": event.user_agent,
                },
                commit_self=False,
            )
            await usage_daily_aggregate_db.increment(
                session,
                organization_id=event.organization_id,
                usage_date=event.occurred_at.astimezone(timezone.utc).date(),
                source=event.source,
                endpoint=event.endpoint,
                requests=1,
                tokens=event.tokens_used,
                commit_self=False,
            )

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.write(event)
            except Exception as e:
                usage_logger.error(
                    f"Failed to record usage for organization "
                    f"{event.organization_id} ({event.endpoint}): {str(e)}"
                )
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def aclose(self, timeout: float | None = None) -> None:
        """
        Drain the queue for up to ``timeout`` seconds, then stop the worker.

        Events still queued after the timeout are lost and logged.
        """
        if self._worker is None:
            return
        timeout = timeout if timeout is not None else settings.USAGE_SHUTDOWN_DRAIN_SECONDS
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            usage_logger.warning(
                f"Usage queue not drained on shutdown, "
                f"{self._queue.qsize()} events discarded"
            )
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        usage_logger.info("Usage recorder stopped")


__all__ = ["UsageEvent", "UsageRecorder"]
