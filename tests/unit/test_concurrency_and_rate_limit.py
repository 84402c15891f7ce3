"""Unit tests for the advisory lock registry and the token bucket limiter."""

from __future__ import annotations

import asyncio

import pytest

from psychic_homily.providers.cache.memory_cache import MemoryCacheProvider
from psychic_homily.services.rate_limiter import TokenBucketRateLimiter
from psychic_homily.utils.concurrency import AdvisoryLockRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ─── AdvisoryLockRegistry ─────────────────────────────────────────

class TestAdvisoryLockRegistry:
    async def test_same_key_is_serialised(self) -> None:
        locks = AdvisoryLockRegistry()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold(("valley bar", "2026-05-01")):
                events.append(f"{name}:enter")
                await asyncio.sleep(0.01)
                events.append(f"{name}:exit")

        await asyncio.gather(worker("a"), worker("b"))
        # No interleaving: each worker exits before the other enters.
        assert events in (
            ["a:enter", "a:exit", "b:enter", "b:exit"],
            ["b:enter", "b:exit", "a:enter", "a:exit"],
        )

    async def test_different_keys_run_concurrently(self) -> None:
        locks = AdvisoryLockRegistry()
        inside = asyncio.Event()
        release = asyncio.Event()

        async def holder() -> None:
            async with locks.hold("first"):
                inside.set()
                await release.wait()

        task = asyncio.create_task(holder())
        await inside.wait()
        async with locks.hold("second"):
            pass
        release.set()
        await task

    async def test_entries_are_released(self) -> None:
        locks = AdvisoryLockRegistry()
        async with locks.hold_many(["b", "a", "a"]):
            assert sorted(locks.active_keys()) == ["a", "b"]
        assert locks.active_keys() == []

    async def test_released_after_exception(self) -> None:
        locks = AdvisoryLockRegistry()
        with pytest.raises(RuntimeError):
            async with locks.hold("k"):
                raise RuntimeError("boom")
        assert locks.active_keys() == []


# ─── TokenBucketRateLimiter ───────────────────────────────────────

class TestTokenBucketRateLimiter:
    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def limiter(self, clock: FakeClock) -> TokenBucketRateLimiter:
        return TokenBucketRateLimiter(MemoryCacheProvider(), capacity=3, period=60.0, clock=clock)

    async def test_allows_burst_up_to_capacity(self, limiter) -> None:
        decisions = [await limiter.acquire("api:1.2.3.4") for _ in range(3)]
        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    async def test_rejects_when_empty(self, limiter) -> None:
        for _ in range(3):
            await limiter.acquire("ip")
        decision = await limiter.acquire("ip")
        assert not decision.allowed
        assert decision.remaining == 0
        # One token every 20 seconds at 3 per minute.
        assert decision.retry_after == pytest.approx(20.0)

    async def test_refills_over_time(self, limiter, clock) -> None:
        for _ in range(3):
            await limiter.acquire("ip")
        clock.advance(20.0)
        assert (await limiter.acquire("ip")).allowed
        assert not (await limiter.acquire("ip")).allowed

    async def test_refill_is_capped_at_capacity(self, limiter, clock) -> None:
        await limiter.acquire("ip")
        clock.advance(3600)
        decision = await limiter.acquire("ip")
        assert decision.remaining == 2

    async def test_keys_are_independent(self, limiter) -> None:
        for _ in range(3):
            await limiter.acquire("a")
        assert not (await limiter.acquire("a")).allowed
        assert (await limiter.acquire("b")).allowed

    async def test_reset_restores_full_bucket(self, limiter) -> None:
        for _ in range(3):
            await limiter.acquire("ip")
        await limiter.reset("ip")
        assert (await limiter.acquire("ip")).remaining == 2

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(MemoryCacheProvider(), capacity=0)


# ─── MemoryCacheProvider ──────────────────────────────────────────

class TestMemoryCacheProvider:
    async def test_set_get_delete(self) -> None:
        cache = MemoryCacheProvider(max_size=10, ttl=60)
        await cache.set("k", {"v": 1})
        assert await cache.get("k") == {"v": 1}
        await cache.delete("k")
        assert await cache.get("k") is None

    async def test_clear(self) -> None:
        cache = MemoryCacheProvider()
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.clear()
        assert len(cache) == 0
