"""
Redis service for the shared rate-limit counter.

This module provides a singleton Redis client for async operations. The
only hot-path use is the atomic per-organization window counter.
"""

from __future__ import annotations

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from carintel.core.config import redis_logger, settings


class RedisService:
    """
    Singleton Redis service for async Redis operations.

    Attributes:
        _client: The async Redis client instance.
        _url: The Redis connection URL.

    Example:
        >>> await RedisService.init("redis://localhost:6379/0")
        >>> await RedisService.rate_limit_incr("rate_limit:org:abc", 60)
        (1, 60)
        >>> await RedisService.aclose()
    """

    _client: Redis | None = None
    _url: str = settings.REDIS_URL

    @classmethod
    async def init(cls, url: str | None = None) -> None:
        """
        Initialize the Redis service with the given URL.

        If a client already exists, it is closed before creating a new one.

        Args:
            url: The Redis connection URL. If None, uses settings.REDIS_URL.
        """
        if url is not None:
            cls._url = url

        await cls.aclose()

        try:
            cls._client = Redis.from_url(
                cls._url,
                encoding="utf-8",
                decode_responses=False,  # We handle decoding manually
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
                # No retries: the rate limiter fails open on the first error
                retry=Retry(NoBackoff(), 0),
            )
            redis_logger.info("Redis client initialized")
        except Exception as e:
            redis_logger.error(f"Failed to initialize Redis client: {str(e)}")
            raise

    @classmethod
    async def aclose(cls) -> None:
        """
        Close the Redis client connection.

        Safe to call even if the client is not initialized.
        """
        if cls._client is not None:
            try:
                await cls._client.aclose()
                redis_logger.info("Redis client closed successfully")
            except Exception as e:
                redis_logger.warning(f"Error closing Redis client: {str(e)}")
            finally:
                cls._client = None

    @classmethod
    async def ping(cls) -> bool:
        """
        Ping the Redis server to check connectivity.

        Returns:
            bool: True if ping succeeds, False otherwise.
        """
        if cls._client is None:
            redis_logger.warning("Redis ping attempted but client not initialized")
            return False

        try:
            result = await cls._client.ping()  # type: ignore[misc]
            return bool(result)
        except Exception as e:
            redis_logger.error(f"Redis ping failed: {str(e)}")
            return False

    @classmethod
    async def delete(cls, key: str) -> bool:
        """
        Delete a key from Redis.

        Args:
            key: The key to delete.

        Returns:
            bool: True if the key was deleted, False otherwise.
        """
        if cls._client is None:
            redis_logger.warning(
                f"Redis delete({key}) attempted but client not initialized"
            )
            return False

        try:
            result = await cls._client.delete(key)
            return result > 0
        except Exception as e:
            redis_logger.error(f"Redis delete({key}) failed: {str(e)}")
            return False

    # INCR, first-hit EXPIRE and TTL in one atomic server-side call
    _RATE_LIMIT_SCRIPT = """
    local count = redis.call('INCR', KEYS[1])
    if count == 1 then
        redis.call('EXPIRE', KEYS[1], ARGV[1])
    end
    local ttl = redis.call('TTL', KEYS[1])
    return {count, ttl}
    """

    @classmethod
    async def rate_limit_incr(
        cls, key: str, window_seconds: int = 60
    ) -> tuple[int, int] | None:
        """
        Atomically increment a rate limit counter and get its TTL in one round trip.

        Uses a Lua script to:
        1. Increment the counter (creates with value 1 if not exists)
        2. Set expiration only if this is the first request in the window
        3. Get the remaining TTL

        Args:
            key: The rate limit key (e.g., "rate_limit:org:{organization_id}").
            window_seconds: The rate limit window in seconds. Defaults to 60.

        Returns:
            Tuple of (count, ttl) or None if Redis is unavailable.
            - count: Current request count in the window
            - ttl: Seconds remaining until window resets
        """
        if cls._client is None:
            redis_logger.warning(
                f"Redis rate_limit_incr({key}) attempted but client not initialized"
            )
            return None

        try:
            result = await cls._client.eval(  # type: ignore[misc]
                cls._RATE_LIMIT_SCRIPT,
                1,  # number of keys
                key,  # KEYS[1]
                str(window_seconds),  # ARGV[1]
            )
            count, ttl = int(result[0]), int(result[1])
            redis_logger.debug(f"Redis rate_limit_incr({key}) count={count}, ttl={ttl}")
            return (count, ttl)
        except Exception as e:
            redis_logger.error(f"Redis rate_limit_incr({key}) failed: {str(e)}")
            return None


__all__ = ["RedisService"]
