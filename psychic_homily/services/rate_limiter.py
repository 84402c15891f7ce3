"""Per-key token-bucket rate limiter.

Each key (a client IP, optionally namespaced by rule) owns a bucket of
``capacity`` tokens that refills continuously at ``capacity`` tokens per
``period`` seconds.  A request spends one token; an empty bucket means
"retry later".  Bucket state lives in an ICacheProvider, so with the
in-memory TTL cache idle keys simply expire instead of accumulating.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

import structlog

from psychic_homily.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class _Bucket:
    tokens: float
    updated_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: float


class TokenBucketRateLimiter:
    """Token bucket keyed by string.

    Parameters
    ----------
    cache:
        Where bucket state is stored between requests.
    capacity:
        Burst size and number of tokens restored per ``period``.
    period:
        Refill window in seconds (60 gives "N requests per minute").
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        cache: ICacheProvider,
        *,
        capacity: int,
        period: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._cache = cache
        self._capacity = capacity
        self._period = period
        self._rate = capacity / period
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    async def acquire(self, key: str) -> RateLimitDecision:
        """Spend one token for *key* if available."""
        # Read-modify-write of the bucket must not interleave across tasks.
        async with self._lock:
            now = self._clock()
            bucket: _Bucket | None = await self._cache.get(key)
            if bucket is None:
                tokens = float(self._capacity)
            else:
                elapsed = max(0.0, now - bucket.updated_at)
                tokens = min(float(self._capacity), bucket.tokens + elapsed * self._rate)

            if tokens >= 1.0:
                tokens -= 1.0
                await self._cache.set(key, _Bucket(tokens=tokens, updated_at=now))
                return RateLimitDecision(allowed=True, remaining=int(tokens), retry_after=0.0)

            await self._cache.set(key, _Bucket(tokens=tokens, updated_at=now))
            retry_after = (1.0 - tokens) / self._rate
            return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

    async def reset(self, key: str) -> None:
        await self._cache.delete(key)
