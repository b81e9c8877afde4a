from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from pyinfoboard._cache import TTLCache
from pyinfoboard.exceptions import InfoboardTransportError


@dataclass
class FakeClock:
    now: float = 1000.0

    def __call__(self) -> float:
        return self.now


@dataclass
class CountingLoader:
    payload: object = "payload"
    calls: int = 0
    fail: bool = False

    async def __call__(self) -> object:
        self.calls += 1
        if self.fail:
            raise RuntimeError("boom")
        return self.payload


@pytest.mark.asyncio
async def test_hit_does_not_invoke_loader() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    loader = CountingLoader(payload={"a": 1})

    first = await cache.get_or_fetch("k", loader, ttl=60)
    clock.now += 59.9
    second = await cache.get_or_fetch("k", loader, ttl=60)

    assert first == second == {"a": 1}
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_entry_at_exact_ttl_boundary_is_reloaded() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    loader = CountingLoader()

    await cache.get_or_fetch("k", loader, ttl=60)
    clock.now += 60
    await cache.get_or_fetch("k", loader, ttl=60)

    assert loader.calls == 2


@pytest.mark.asyncio
async def test_expired_entry_is_evicted_even_when_reload_fails() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    await cache.get_or_fetch("k", CountingLoader(), ttl=10)
    assert "k" in cache

    clock.now += 11
    with pytest.raises(RuntimeError):
        await cache.get_or_fetch("k", CountingLoader(fail=True), ttl=10)

    assert "k" not in cache
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_failure_is_not_cached() -> None:
    cache = TTLCache(clock=FakeClock())
    loader = CountingLoader(fail=True)

    with pytest.raises(RuntimeError):
        await cache.get_or_fetch("k", loader, ttl=60)

    loader.fail = False
    assert await cache.get_or_fetch("k", loader, ttl=60) == "payload"
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_disabled_cache_always_loads_and_stores_nothing() -> None:
    cache = TTLCache(enabled=False, clock=FakeClock())
    loader = CountingLoader()

    await cache.get_or_fetch("k", loader, ttl=60)
    await cache.get_or_fetch("k", loader, ttl=60)

    assert loader.calls == 2
    assert len(cache) == 0
    assert cache.enabled is False


@pytest.mark.asyncio
async def test_clear_drops_entries() -> None:
    cache = TTLCache(clock=FakeClock())
    loader = CountingLoader()
    await cache.get_or_fetch("a", loader, ttl=60)
    await cache.get_or_fetch("b", loader, ttl=60)

    cache.clear()

    assert len(cache) == 0
    await cache.get_or_fetch("a", loader, ttl=60)
    assert loader.calls == 3


async def _slow_loader(release: asyncio.Event, counter: list[int]) -> str:
    counter.append(1)
    await release.wait()
    return "value"


@pytest.mark.asyncio
async def test_concurrent_identical_keys_are_not_coalesced_by_default() -> None:
    cache = TTLCache(clock=FakeClock())
    release = asyncio.Event()
    counter: list[int] = []

    tasks = [
        asyncio.create_task(cache.get_or_fetch("k", lambda: _slow_loader(release, counter), ttl=60))
        for _ in range(3)
    ]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks)

    assert results == ["value"] * 3
    assert len(counter) == 3


@pytest.mark.asyncio
async def test_coalesced_callers_share_one_in_flight_load() -> None:
    cache = TTLCache(coalesce_in_flight=True, clock=FakeClock())
    release = asyncio.Event()
    counter: list[int] = []

    tasks = [
        asyncio.create_task(cache.get_or_fetch("k", lambda: _slow_loader(release, counter), ttl=60))
        for _ in range(3)
    ]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks)

    assert results == ["value"] * 3
    assert len(counter) == 1
    assert "k" in cache


@pytest.mark.asyncio
async def test_coalesced_failure_reaches_every_waiter_and_is_not_cached() -> None:
    cache = TTLCache(coalesce_in_flight=True, clock=FakeClock())
    release = asyncio.Event()

    async def failing() -> str:
        await release.wait()
        raise RuntimeError("down")

    tasks = [asyncio.create_task(cache.get_or_fetch("k", failing, ttl=60)) for _ in range(2)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert all(isinstance(r, RuntimeError) for r in results)
    assert "k" not in cache


@pytest.mark.asyncio
async def test_cancelled_owner_fails_joined_callers_without_cancelling_them() -> None:
    cache = TTLCache(coalesce_in_flight=True, clock=FakeClock())
    never = asyncio.Event()

    async def hanging() -> str:
        await never.wait()
        return "never"

    owner = asyncio.create_task(cache.get_or_fetch("k", hanging, ttl=60))
    await asyncio.sleep(0)
    joined = asyncio.create_task(cache.get_or_fetch("k", hanging, ttl=60))
    await asyncio.sleep(0)

    owner.cancel()
    results = await asyncio.gather(owner, joined, return_exceptions=True)

    assert isinstance(results[0], asyncio.CancelledError)
    assert isinstance(results[1], InfoboardTransportError)
    assert not joined.cancelled()
    assert "k" not in cache
