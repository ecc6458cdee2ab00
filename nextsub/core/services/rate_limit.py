"""
Fixed-window rate limiting with configurable backends.

Counters are keyed by client and action. The first request of a window
starts it with a count of 1; every further request increments the count and
is allowed while the count stays within the limit. When the window elapses
the counter restarts. A burst of up to twice the limit across a window
boundary is possible and accepted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
import math
import threading
from typing import Literal

from nextsub.core.config import rate_limit_logger, settings
from nextsub.core.enums import RateLimitAction
from nextsub.core.exceptions.types import DatabaseException
from nextsub.core.services.redis_service import RedisService
from nextsub.core.utils import utc_now

# Memory backend store size at which expired counters are swept
MEMORY_PRUNE_THRESHOLD = 1024


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed.
        remaining: Number of remaining requests in the current window.
        limit: The maximum number of requests allowed.
        reset_at: When the rate limit window resets.
        retry_after: Seconds until the client can retry (only if not allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    reset_at: datetime
    retry_after: int | None = None

    @property
    def headers(self) -> dict[str, str]:
        """X-RateLimit-* response headers describing this result."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at.isoformat(),
        }


def _seconds_until(reset_at: datetime, now: datetime) -> int:
    return max(1, math.ceil((reset_at - now).total_seconds()))


def _result_for_count(
    count: int, limit: int, reset_at: datetime, now: datetime
) -> RateLimitResult:
    if count > limit:
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=limit,
            reset_at=reset_at,
            retry_after=_seconds_until(reset_at, now),
        )
    return RateLimitResult(
        allowed=True,
        remaining=limit - count,
        limit=limit,
        reset_at=reset_at,
    )


class RateLimitBackend(ABC):
    """
    Abstract base class for rate limit backends.

    Implementations must make the read-modify-write of a counter atomic.
    """

    @abstractmethod
    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        """
        Count a request and decide whether it is allowed.

        Args:
            key: The rate limit key (e.g. "rate_limit:ip:10.0.0.1:request_code").
            limit: Maximum number of requests allowed in the window.
            window: Window length in seconds.

        Returns:
            RateLimitResult with the check outcome.
        """


class MemoryBackend(RateLimitBackend):
    """
    In-memory rate limit backend using a dictionary.

    Suitable for single-process deployments and development. Counters are
    lost on restart and are not shared between workers; use RedisBackend for
    anything larger. Once the store holds more than `prune_threshold` keys,
    counters whose window has elapsed are dropped on the next check.
    """

    def __init__(self, prune_threshold: int = MEMORY_PRUNE_THRESHOLD):
        """Initialize the memory backend with an empty store."""
        self._store: dict[str, tuple[int, datetime]] = {}
        self._lock = threading.Lock()
        self._prune_threshold = prune_threshold

    def __len__(self) -> int:
        return len(self._store)

    def _prune(self, now: datetime) -> None:
        # Caller holds the lock
        expired = [key for key, (_, reset_at) in self._store.items() if now >= reset_at]
        for key in expired:
            del self._store[key]
        if expired:
            rate_limit_logger.debug(f"Pruned {len(expired)} expired rate limit keys")

    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        now = utc_now()

        with self._lock:
            if len(self._store) >= self._prune_threshold:
                self._prune(now)
            entry = self._store.get(key)
            if entry is None or now >= entry[1]:
                count, reset_at = 1, now + timedelta(seconds=window)
            else:
                count, reset_at = entry[0] + 1, entry[1]
            self._store[key] = (count, reset_at)

        result = _result_for_count(count, limit, reset_at, now)
        if result.allowed:
            rate_limit_logger.debug(
                f"Rate limit check passed for key: {key}, remaining: {result.remaining}"
            )
        else:
            rate_limit_logger.warning(
                f"Rate limit exceeded for key: {key}, retry after: {result.retry_after}s"
            )
        return result

    def clear(self) -> None:
        """Drop every counter. Used between tests."""
        with self._lock:
            self._store.clear()


class RedisBackend(RateLimitBackend):
    """
    Redis-based rate limit backend.

    Shares counters between processes. The increment, the window start and
    the TTL read are one Lua script, and Redis expires idle keys itself. If
    Redis cannot be reached the limiter fails closed: the request is rejected
    with a store error instead of bypassing the limit.
    """

    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        now = utc_now()
        outcome = await RedisService.rate_limit_incr(key, window)

        if outcome is None:
            rate_limit_logger.error(
                f"Redis unavailable during rate limit check for key: {key}, rejecting request"
            )
            raise DatabaseException("Rate limit store unavailable.")

        count, ttl = outcome
        reset_at = now + timedelta(seconds=ttl if ttl > 0 else window)
        result = _result_for_count(count, limit, reset_at, now)

        if not result.allowed:
            rate_limit_logger.warning(
                f"Rate limit exceeded for key: {key}, count: {count}, retry after: {result.retry_after}s"
            )
        return result


class RateLimiter:
    """
    Rate limiter with configurable backend.

    Args:
        backend: The backend to use ("memory" or "redis").
                 If None, uses settings.RATE_LIMIT_BACKEND.

    Example:
        >>> limiter = RateLimiter(backend="memory")
        >>> result = await limiter.check_and_increment(
        ...     "10.0.0.1", RateLimitAction.REQUEST_CODE, limit=6, window=3600
        ... )
        >>> if not result.allowed:
        ...     raise RateLimitExceededException(retry_after=result.retry_after)
    """

    def __init__(self, backend: Literal["memory", "redis"] | None = None):
        if backend is None:
            backend = settings.RATE_LIMIT_BACKEND

        if backend == "redis":
            self._backend: RateLimitBackend = RedisBackend()
        else:
            self._backend = MemoryBackend()

        rate_limit_logger.debug(f"RateLimiter initialized with {backend} backend")

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    async def check_and_increment(
        self,
        client_key: str,
        action: RateLimitAction,
        limit: int,
        window: int,
    ) -> RateLimitResult:
        """
        Count a request by a client for an action.

        Args:
            client_key: Network address of the client.
            action: The guarded action.
            limit: Maximum requests allowed in the window.
            window: Window length in seconds.

        Returns:
            RateLimitResult; `retry_after` is at least 1 when denied.

        Raises:
            DatabaseException: If the shared counter store is unavailable.
        """
        key = format_rate_limit_key(client_key, action.value)
        return await self._backend.check(key, limit, window)


def format_rate_limit_key(identifier: str, action: str) -> str:
    """
    Format a rate limit key with consistent structure.

    Args:
        identifier: The client address.
        action: The guarded action.

    Returns:
        Formatted rate limit key string.

    Example:
        >>> format_rate_limit_key("192.168.1.1", "request_code")
        'rate_limit:ip:192.168.1.1:request_code'
    """
    return f"rate_limit:ip:{identifier}:{action}"


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter; the memory backend only works if it is shared."""
    return RateLimiter()


__all__ = [
    "RateLimitResult",
    "RateLimitBackend",
    "MemoryBackend",
    "RedisBackend",
    "RateLimiter",
    "format_rate_limit_key",
    "get_rate_limiter",
]
