"""Tests for the result cache."""

import pytest

from nest_tools.core import ResultCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_get_returns_stored_value() -> None:
    cache = ResultCache(ttl_seconds=60, clock=FakeClock())

    await cache.set(("projects", 10), "result")

    assert await cache.get(("projects", 10)) == "result"
    assert await cache.get(("projects", 20)) is None
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_entries_expire() -> None:
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=60, clock=clock)
    await cache.set("key", "value")

    clock.now += 59
    assert await cache.get("key") == "value"

    clock.now += 1
    assert await cache.get("key") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_clear() -> None:
    cache = ResultCache()
    await cache.set("a", 1)
    await cache.set("b", 2)

    await cache.clear()

    assert len(cache) == 0
    assert await cache.get("a") is None


@pytest.mark.asyncio
async def test_set_drops_expired_entries() -> None:
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=1, clock=clock)
    for i in range(1000):
        await cache.set(("projects", i), i)

    clock.now += 100
    await cache.set("fresh", "value")

    assert len(cache) == 1
    assert await cache.get("fresh") == "value"
