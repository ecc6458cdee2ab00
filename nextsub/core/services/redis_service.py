"""
Redis service for shared rate-limit counters.

This module provides a singleton async Redis client. When the rate limiter
runs with the Redis backend, every API process shares the same fixed-window
counters through it.
"""

from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from nextsub.core.config import redis_logger, settings
from nextsub.core.services.base import SingletonService


class RedisService(SingletonService):
    """
    Singleton Redis service for async Redis operations.

    Attributes:
        _client: The async Redis client instance.
        _url: The Redis connection URL.

    Example:
        >>> await RedisService.init("redis://localhost:6379/0")
        >>> await RedisService.rate_limit_incr("rate_limit:ip:1.2.3.4:verify_code", 3600)
        (1, 3600)
        >>> await RedisService.aclose()
    """

    _client: Redis | None = None
    _url: str = settings.REDIS_URL

    # INCR, start the window on the first hit, report what is left of it.
    # A key without TTL (e.g. left by a crashed writer) gets one too.
    _RATE_LIMIT_SCRIPT = """
    local count = redis.call('INCR', KEYS[1])
    local ttl = redis.call('TTL', KEYS[1])
    if count == 1 or ttl < 0 then
        redis.call('EXPIRE', KEYS[1], ARGV[1])
        ttl = tonumber(ARGV[1])
    end
    return {count, ttl}
    """

    @classmethod
    async def init(cls, url: str | None = None) -> None:
        """
        Initialize the Redis service with the given URL.

        An existing client is closed before the new one is created.

        Args:
            url: The Redis connection URL. If None, uses settings.REDIS_URL.
        """
        if url is not None:
            cls._url = url

        await cls.aclose()

        cls._client = Redis.from_url(
            cls._url,
            encoding="utf-8",
            decode_responses=False,  # We handle decoding manually
        )
        cls._initialized = True
        redis_logger.info("Redis client initialized")

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
            except RedisError as e:
                redis_logger.warning(f"Error closing Redis client: {str(e)}")
            finally:
                cls._client = None
                cls._initialized = False

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
        except RedisError as e:
            redis_logger.error(f"Redis ping failed: {str(e)}")
            return False

    @classmethod
    async def rate_limit_incr(
        cls, key: str, window_seconds: int = 60
    ) -> tuple[int, int] | None:
        """
        Atomically increment a fixed-window counter and read its TTL in one round trip.

        Args:
            key: The rate limit key (e.g. "rate_limit:ip:{client}:{action}").
            window_seconds: The window length in seconds.

        Returns:
            Tuple of (count, ttl) or None if Redis is unavailable.
            - count: Requests counted in the current window, including this one
            - ttl: Seconds remaining until the window resets
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
        except RedisError as e:
            redis_logger.error(f"Redis rate_limit_incr({key}) failed: {str(e)}")
            return None


__all__ = ["RedisService"]
