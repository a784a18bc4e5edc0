import asyncio
from unittest.mock import AsyncMock

import pytest

from sessionhub.modules.session import SessionCache


def held_loader(data):
    """Loader that blocks until its release event is set."""
    release = asyncio.Event()
    state = {"in_flight": 0, "max_in_flight": 0}

    async def load():
        state["in_flight"] += 1
        state["max_in_flight"] = max(state["max_in_flight"], state["in_flight"])
        try:
            await release.wait()
            return data
        finally:
            state["in_flight"] -= 1

    return AsyncMock(side_effect=load), release, state


@pytest.mark.asyncio
async def test_concurrent_cold_calls_share_one_load(stored_sessions, clock):
    """N callers on a cold cache trigger exactly one store read."""
    loader, release, state = held_loader(stored_sessions)
    cache = SessionCache(loader, ttl=15, clock=clock)

    tasks = [asyncio.create_task(cache.get_snapshot()) for _ in range(10)]
    await asyncio.sleep(0)
    assert cache.is_loading

    release.set()
    results = await asyncio.gather(*tasks)

    assert loader.call_count == 1
    assert state["max_in_flight"] == 1
    assert all(result is results[0] for result in results)
    assert results[0].data == stored_sessions
    assert not cache.is_loading


@pytest.mark.asyncio
async def test_two_calls_before_load_resolves(stored_sessions, clock):
    loader, release, _ = held_loader(stored_sessions)
    cache = SessionCache(loader, clock=clock)

    first = asyncio.create_task(cache.get_snapshot())
    second = asyncio.create_task(cache.get_snapshot())
    await asyncio.sleep(0)
    release.set()

    assert (await first) is (await second)
    loader.assert_called_once()


@pytest.mark.asyncio
async def test_hit_within_ttl_returns_cached_object(stored_sessions, clock):
    loader = AsyncMock(return_value=stored_sessions)
    cache = SessionCache(loader, ttl=15, clock=clock)

    first = await cache.get_snapshot()
    clock.advance(14.9)
    second = await cache.get_snapshot()

    assert first is second
    assert loader.call_count == 1
    assert cache.age() == pytest.approx(14.9)


@pytest.mark.asyncio
async def test_reload_after_ttl_expires(stored_sessions, clock):
    loader = AsyncMock(side_effect=[stored_sessions, {}])
    cache = SessionCache(loader, ttl=15, clock=clock)

    first = await cache.get_snapshot()
    clock.advance(15)
    second = await cache.get_snapshot()

    assert loader.call_count == 2
    assert first is not second
    assert second.data == {}


@pytest.mark.asyncio
async def test_invalidate_forces_exactly_one_reload(stored_sessions, clock):
    loader = AsyncMock(return_value=stored_sessions)
    cache = SessionCache(loader, ttl=15, clock=clock)

    await cache.get_snapshot()
    clock.advance(1)
    cache.invalidate()

    assert not cache.is_fresh()
    assert cache.age() is None

    await cache.get_snapshot()
    await cache.get_snapshot()

    assert loader.call_count == 2


@pytest.mark.asyncio
async def test_failed_load_is_not_cached(stored_sessions, clock):
    """A store failure answers empty once and the next call retries."""
    loader = AsyncMock(side_effect=[ConnectionError("redis down"), stored_sessions])
    cache = SessionCache(loader, clock=clock)

    failed = await cache.get_snapshot()
    assert not failed.ok
    assert isinstance(failed.error, ConnectionError)
    assert failed.data == {}
    assert not cache.is_fresh()

    recovered = await cache.get_snapshot()
    assert recovered.ok
    assert recovered.data == stored_sessions
    assert loader.call_count == 2


@pytest.mark.asyncio
async def test_failed_load_is_shared_by_concurrent_waiters(clock):
    release = asyncio.Event()

    async def failing():
        await release.wait()
        raise TimeoutError("store timeout")

    loader = AsyncMock(side_effect=failing)
    cache = SessionCache(loader, clock=clock)

    tasks = [asyncio.create_task(cache.get_snapshot()) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*tasks)

    assert loader.call_count == 1
    assert all(isinstance(result.error, TimeoutError) for result in results)
    assert not cache.is_loading


@pytest.mark.asyncio
async def test_non_mapping_result_is_a_store_error(clock):
    cache = SessionCache(AsyncMock(return_value=["not", "a", "dict"]), clock=clock)

    snapshot = await cache.get_snapshot()

    assert isinstance(snapshot.error, TypeError)
    assert snapshot.data == {}


@pytest.mark.asyncio
async def test_invalidate_during_load_waits_then_reloads(stored_sessions, clock):
    """A reload begun before invalidate() is not cached and never overlaps the next one."""
    loader, release, state = held_loader(stored_sessions)
    cache = SessionCache(loader, clock=clock)

    stale = asyncio.create_task(cache.get_snapshot())
    await asyncio.sleep(0)
    cache.invalidate()

    fresh = asyncio.create_task(cache.get_snapshot())
    await asyncio.sleep(0)
    assert loader.call_count == 1

    release.set()
    await stale
    await fresh

    assert loader.call_count == 2
    assert state["max_in_flight"] == 1
    assert cache.is_fresh()


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_reload(stored_sessions, clock):
    """One caller giving up must not take the reload away from the others."""
    loader, release, _ = held_loader(stored_sessions)
    cache = SessionCache(loader, clock=clock)

    first = asyncio.create_task(cache.get_snapshot())
    second = asyncio.create_task(cache.get_snapshot())
    await asyncio.sleep(0)

    first.cancel()
    await asyncio.sleep(0)
    release.set()

    snapshot = await second
    assert first.cancelled()
    assert snapshot.ok
    assert snapshot.data == stored_sessions
    assert loader.call_count == 1
    assert cache.is_fresh()
