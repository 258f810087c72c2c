import time
from datetime import timedelta

import pytest

from bridgeinspect.cache import (
    CACHE_KEY_HIGH_RISK_ALERT,
    CACHE_KEY_OVERVIEW,
    CacheExpired,
    CacheMiss,
    MemoryCache,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    with MemoryCache(clock=clock) as instance:
        yield instance


def test_round_trip_of_structured_value(cache):
    value = {"bridge_count": 1, "names": ["a", "b"], "ratio": 0.5}
    cache.set("stats:overview:1", value)
    assert cache.get("stats:overview:1") == value


def test_returned_value_is_a_copy(cache):
    value = {"items": [1, 2]}
    cache.set("k", value)
    value["items"].append(3)
    assert cache.get("k") == {"items": [1, 2]}


def test_missing_key_raises_cache_miss(cache):
    with pytest.raises(CacheMiss):
        cache.get("absent")


def test_entry_expires_after_ttl(cache, clock):
    cache.set("k", "v", ttl=10)
    clock.advance(9)
    assert cache.get("k") == "v"
    clock.advance(2)
    with pytest.raises(CacheExpired):
        cache.get("k")


def test_timedelta_ttl_is_accepted(cache, clock):
    cache.set("k", [1], ttl=timedelta(minutes=1))
    clock.advance(61)
    with pytest.raises(CacheExpired):
        cache.get("k")


def test_zero_ttl_never_expires(cache, clock):
    cache.set("k", "v", ttl=0)
    clock.advance(10**9)
    assert cache.get("k") == "v"


def test_delete_removes_entry(cache):
    cache.set("k", "v")
    cache.delete("k")
    with pytest.raises(CacheMiss):
        cache.get("k")
    assert len(cache) == 0


def test_delete_pattern_removes_matching_keys_only(cache):
    cache.set("stats:overview:1", 1)
    cache.set("stats:overview:2", 2)
    cache.set("stats:ranking:1:10", 3)
    before = len(cache)
    removed = cache.delete_pattern("stats:overview:*")
    assert removed == before - len(cache)
    assert cache.get("stats:ranking:1:10") == 3
    with pytest.raises(CacheMiss):
        cache.get("stats:overview:1")


def test_clear_empties_cache(cache):
    cache.set("a", 1)
    cache.set("b", 2, ttl=5)
    cache.clear()
    assert len(cache) == 0


def test_cleanup_expired_drops_only_expired(cache, clock):
    cache.set("short", 1, ttl=1)
    cache.set("forever", 2)
    clock.advance(2)
    removed = cache.cleanup_expired()
    assert removed == 1
    assert cache.get("forever") == 2
    with pytest.raises(CacheMiss):
        cache.get("short")


def test_unserialisable_value_is_rejected(cache):
    with pytest.raises(TypeError):
        cache.set("k", object())
    assert len(cache) == 0


def test_background_sweep_removes_expired_entries(clock):
    cache = MemoryCache(cleanup_interval=0.01, clock=clock)
    try:
        cache.set("k", 1, ttl=1)
        clock.advance(5)
        deadline = time.monotonic() + 2
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(cache) == 0
    finally:
        cache.close()


def test_key_templates_match_documented_shapes():
    assert CACHE_KEY_OVERVIEW.format(1) == "stats:overview:1"
    assert CACHE_KEY_HIGH_RISK_ALERT.format(1, "urgent", 20) == "stats:alerts:1:urgent:20"