"""Tests for InMemoryCacheStore and CacheNamespace."""

import asyncio

import pytest

from request_pipeline.cache import CacheEntry, InMemoryCacheStore


async def test_get_nonexistent(cache):
    assert await cache.get("key") is None


async def test_set_and_get(cache):
    await cache.set("k", {"val": 1})
    assert await cache.get("k") == {"val": 1}


async def test_overwrite_replaces_ttl(cache, clock):
    await cache.set("k", "short", ttl=5)
    await cache.set("k", "forever")
    clock.advance(10)
    assert await cache.get("k") == "forever"


async def test_ttl_scenario(cache, clock):
    await cache.set("u:1", {"name": "Jo"}, ttl=10)
    clock.advance(5)
    assert await cache.get("u:1") == {"name": "Jo"}
    clock.advance(6)
    assert await cache.get("u:1") is None


async def test_visible_strictly_before_ttl(cache, clock):
    await cache.set("k", "v", ttl=10)
    clock.advance(9.999)
    assert await cache.get("k") == "v"
    clock.advance(0.001)
    assert await cache.get("k") is None


async def test_expired_is_dropped_on_read(cache, clock):
    await cache.set("k", "v", ttl=1)
    clock.advance(1)
    await cache.get("k")
    assert len(cache) == 0


async def test_non_positive_ttl_stores_nothing(cache):
    await cache.set("k", "old")
    await cache.set("k", "new", ttl=0)
    assert await cache.get("k") is None


async def test_delete(cache):
    await cache.set("k", {"v": 1})
    await cache.delete("k")
    assert await cache.get("k") is None


async def test_delete_nonexistent(cache):
    await cache.delete("nope")  # should not raise


async def test_no_aliasing(cache):
    value = {"items": [1, 2]}
    await cache.set("k", value)
    value["items"].append(3)

    stored = await cache.get("k")
    assert stored == {"items": [1, 2]}

    stored["items"].append(4)
    assert await cache.get("k") == {"items": [1, 2]}


async def test_purge_expired(cache, clock):
    await cache.set("a", 1, ttl=5)
    await cache.set("b", 2, ttl=50)
    await cache.set("c", 3)
    clock.advance(10)

    assert await cache.purge_expired() == 1
    assert len(cache) == 2


async def test_get_or_set(cache):
    calls = []

    def compute():
        calls.append(1)
        return {"computed": True}

    assert await cache.get_or_set("k", compute) == {"computed": True}
    assert await cache.get_or_set("k", compute) == {"computed": True}
    assert len(calls) == 1


async def test_get_or_set_async_factory(cache, clock):
    async def compute():
        return "fresh"

    assert await cache.get_or_set("k", compute, ttl=5) == "fresh"
    clock.advance(5)
    assert await cache.get("k") is None


async def test_get_or_set_factory_errors_propagate(cache):
    def boom():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await cache.get_or_set("k", boom)


async def test_namespace_isolation(cache):
    users = cache.namespace("users")
    sessions = cache.namespace("sessions")
    await users.set("1", {"name": "Jo"})
    await sessions.set("1", {"token": "abc"})

    assert await users.get("1") == {"name": "Jo"}
    assert await sessions.get("1") == {"token": "abc"}
    assert await cache.get("users:1") == {"name": "Jo"}

    await users.delete("1")
    assert await users.get("1") is None
    assert await sessions.get("1") == {"token": "abc"}


async def test_nested_namespace(cache):
    nested = cache.namespace("svc").namespace("users")
    assert nested.prefix == "svc:users"
    await nested.set("1", "x")
    assert await cache.get("svc:users:1") == "x"


def test_empty_namespace_rejected(cache):
    with pytest.raises(ValueError):
        cache.namespace("")


async def test_concurrent_writers_last_write_wins(cache):
    await asyncio.gather(*(cache.set("k", i) for i in range(50)))
    assert await cache.get("k") in range(50)


def test_cache_entry_liveness():
    entry = CacheEntry(key="k", value=1, created_at=100.0, ttl=10)
    assert entry.expires_at == 110.0
    assert entry.is_live(109.9)
    assert not entry.is_live(110.0)
    assert CacheEntry(key="k", value=1, created_at=100.0).is_live(10**9)


def test_default_clock():
    assert len(InMemoryCacheStore()) == 0


async def test_lock_registry_does_not_grow_on_misses(cache, clock):
    for i in range(1000):
        assert await cache.get(f"miss:{i}") is None
    await cache.set("short", 1, ttl=1)
    clock.advance(1)
    await cache.get("short")

    assert len(cache) == 0
    assert len(cache._locks) == 0
