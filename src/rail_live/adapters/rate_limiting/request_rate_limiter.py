"""Fixed-window request rate limiter backed by throttled-py's asyncio API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from throttled.asyncio import RateLimiterType, Throttled, rate_limiter, store

from rail_live.domain.contracts.request_rate_limiter import RequestRateLimiterProtocol
from rail_live.domain.models.rate_limit_result import RateLimitResult

logger = logging.getLogger(__name__)

REDIS_RETRY_COOLDOWN_SECONDS = 30.0


class RequestRateLimiter(RequestRateLimiterProtocol):
    """Counts requests per ``{operation}:{identity}`` in fixed windows.

    A Redis store keeps the count consistent across processes. When Redis is not
    configured or fails, an in-process store with independent windows per key is
    used instead, and Redis is tried again after a cooldown.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        redis_url: str | None = None,
        redis_token: str | None = None,
        redis_retry_cooldown_seconds: float = REDIS_RETRY_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Requests allowed per window.
            window_seconds: Window length.
            redis_url: Optional Redis URL for the shared store.
            redis_token: Optional Redis password.
            redis_retry_cooldown_seconds: How long to stay on the local store after a Redis error.
            clock: Monotonic time source for the cooldown.
        """
        if limit < 1 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._quota = rate_limiter.per_duration(timedelta(seconds=window_seconds), limit=limit)
        self._memory_throttle = self._build_throttle(store.MemoryStore())
        self._redis_throttle: Throttled | None = None
        if redis_url:
            options = {"PASSWORD": redis_token} if redis_token else {}
            self._redis_throttle = self._build_throttle(
                store.RedisStore(server=redis_url, options=options)
            )
        self._redis_retry_cooldown_seconds = redis_retry_cooldown_seconds
        self._redis_retry_at = 0.0
        self._clock = clock
        backend = "redis" if redis_url else "memory"
        logger.info(f"Rate limiting enabled: {limit} requests per {window_seconds}s per client ({backend})")

    def _build_throttle(self, backing_store: Any) -> Throttled:
        return Throttled(
            using=RateLimiterType.FIXED_WINDOW.value,
            quota=self._quota,
            store=backing_store,
        )

    @property
    def using_redis(self) -> bool:
        """Whether the next request will be counted in Redis."""
        return self._redis_throttle is not None and self._clock() >= self._redis_retry_at

    async def _limit(self, key: str) -> Any:
        if self._redis_throttle is not None and self.using_redis:
            try:
                return await self._redis_throttle.limit(key)
            except Exception as e:
                self._redis_retry_at = self._clock() + self._redis_retry_cooldown_seconds
                logger.warning(
                    f"Redis rate limit store failed, using in-process counters for "
                    f"{self._redis_retry_cooldown_seconds}s: {e}"
                )
        return await self._memory_throttle.limit(key)

    async def consume(self, identity: str, operation: str) -> RateLimitResult:
        """Count one request from a caller for an operation.

        Returns:
            Whether it is allowed, the remaining quota and when the window resets.
        """
        result = await self._limit(f"{operation}:{identity}")
        state = result.state
        reset_after = float(getattr(state, "reset_after", self.window_seconds))
        retry_after = float(getattr(state, "retry_after", 0.0)) if result.limited else 0.0
        if result.limited and retry_after <= 0:
            retry_after = reset_after
        return RateLimitResult(
            allowed=not result.limited,
            remaining=int(getattr(state, "remaining", 0)),
            reset_at=datetime.now(UTC) + timedelta(seconds=reset_after),
            retry_after_seconds=retry_after,
        )
