"""
Per-organization rate limiting with configurable backends.

Two backends share one contract:

- ``MemoryBackend``: in-process fixed window. Approximate; each process
  keeps its own counters, so multi-process deployments under-count.
- ``RedisBackend``: shared atomic counter across every serving node.
  Fails open when Redis is unavailable.

The limiter instance is created once at startup and injected, never held
as module state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import math
import time
from typing import Callable, Literal
from uuid import UUID

from carintel.core.config import rate_limit_logger, settings
from carintel.core.services.redis_service import RedisService


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed.
        remaining: Number of remaining requests in the current window.
        limit: The maximum number of requests allowed.
        retry_after: Seconds until the client can retry (only if not allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    retry_after: int | None = None


class RateLimitBackend(ABC):
    """
    Abstract base class for rate limit backends.
    """

    @abstractmethod
    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        """
        Count a request and decide whether it is allowed.

        Args:
            key: The rate limit key (e.g., "rate_limit:org:<uuid>").
            limit: Maximum number of requests allowed in the window.
            window: Time window in seconds.

        Returns:
            RateLimitResult with the check outcome.
        """
        pass

    @abstractmethod
    async def reset(self, key: str) -> None:
        """
        Reset the rate limit for a key.

        Args:
            key: The rate limit key to reset.
        """
        pass


class MemoryBackend(RateLimitBackend):
    """
    In-memory fixed-window backend.

    A window starts with the first request and is replaced once more than
    ``window`` seconds have elapsed. Denied requests are not counted.

    Note:
        Requests arriving either side of a window reset can reach twice the
        limit within ``window`` seconds. Data is lost on restart.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._store: dict[str, tuple[int, float]] = {}

    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        now = self._clock()
        entry = self._store.get(key)

        if entry is None or now - entry[1] > window:
            self._store[key] = (1, now)
            return RateLimitResult(allowed=True, remaining=limit - 1, limit=limit)

        count, window_start = entry
        if count >= limit:
            elapsed = now - window_start
            retry_after = max(1, math.ceil(window - elapsed))
            rate_limit_logger.warning(
                f"Rate limit exceeded for key: {key}, retry after: {retry_after}s"
            )
            return RateLimitResult(
                allowed=False, remaining=0, limit=limit, retry_after=retry_after
            )

        self._store[key] = (count + 1, window_start)
        return RateLimitResult(allowed=True, remaining=limit - count - 1, limit=limit)

    async def reset(self, key: str) -> None:
        self._store.pop(key, None)


class RedisBackend(RateLimitBackend):
    """
    Redis-based backend for multi-node deployments.

    Uses a single atomic Lua call (INCR + EXPIRE on first hit + TTL), so
    concurrent nodes never lose increments.
    """

    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        """
        Count a request against the shared window.

        If Redis is unavailable the request is allowed.

        Args:
            key: The rate limit key.
            limit: Maximum requests allowed.
            window: Time window in seconds.

        Returns:
            RateLimitResult with the check outcome.
        """
        result = await RedisService.rate_limit_incr(key, window)

        if result is None:
            rate_limit_logger.warning(
                f"Redis error during rate limit check for key: {key}, allowing request"
            )
            return RateLimitResult(allowed=True, remaining=limit - 1, limit=limit)

        count, ttl = result
        if ttl < 0:
            ttl = window

        if count > limit:
            rate_limit_logger.warning(
                f"Rate limit exceeded for key: {key}, count: {count}, retry after: {ttl}s"
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                limit=limit,
                retry_after=max(1, ttl),
            )

        return RateLimitResult(allowed=True, remaining=limit - count, limit=limit)

    async def reset(self, key: str) -> None:
        await RedisService.delete(key)


class RateLimiter:
    """
    Per-organization rate limiter over a pluggable backend.

    Example:
        >>> limiter = RateLimiter(MemoryBackend())
        >>> result = await limiter.check(org_id, limit=60)
        >>> if not result.allowed:
        ...     raise RateLimitExceededException(retry_after=result.retry_after)
    """

    def __init__(self, backend: RateLimitBackend, window: int | None = None):
        self._backend = backend
        self.window = window if window is not None else settings.RATE_LIMIT_WINDOW_SECONDS
        rate_limit_logger.debug(
            f"RateLimiter initialized with {type(backend).__name__}"
        )

    @classmethod
    def from_settings(
        cls, backend: Literal["memory", "redis"] | None = None
    ) -> "RateLimiter":
        """
        Build a limiter for the configured backend.

        Args:
            backend: The backend type. Defaults to settings.RATE_LIMIT_BACKEND.
        """
        if backend is None:
            backend = settings.RATE_LIMIT_BACKEND

        if backend == "redis":
            return cls(RedisBackend())
        if settings.ENVIRONMENT == "production":
            rate_limit_logger.warning(
                "In-memory rate limiting is per process; limits are approximate "
                "when more than one worker serves traffic"
            )
        return cls(MemoryBackend())

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    async def check(self, organization_id: UUID | str, limit: int) -> RateLimitResult:
        """
        Check whether an organization may make another request this window.

        Args:
            organization_id: The organization being charged.
            limit: The tier's per-minute limit.

        Returns:
            RateLimitResult with the check outcome.
        """
        return await self._backend.check(
            format_rate_limit_key(organization_id), limit, self.window
        )

    async def reset(self, organization_id: UUID | str) -> None:
        await self._backend.reset(format_rate_limit_key(organization_id))


def format_rate_limit_key(organization_id: UUID | str) -> str:
    """
    Format a rate limit key with consistent structure.

    Example:
        >>> format_rate_limit_key("0b6f...")
        'rate_limit:org:0b6f...'
    """
    return f"rate_limit:org:{organization_id}"


__all__ = [
    "RateLimitResult",
    "RateLimitBackend",
    "MemoryBackend",
    "RedisBackend",
    "RateLimiter",
    "format_rate_limit_key",
]
