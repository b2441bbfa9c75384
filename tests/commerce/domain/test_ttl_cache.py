"""Tests for the in-memory TTL cache."""

import pytest
from commerce.utils.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


class TestTTLCache:
    def test_value_is_served_until_it_expires(self, clock):
        cache = TTLCache(60, clock=clock)
        cache.set("flowers:KWD", ["KNET"])

        clock.advance(59.9)
        assert cache.get("flowers:KWD") == ["KNET"]

        clock.advance(0.1)
        assert cache.get("flowers:KWD") is None

    def test_get_or_load_calls_loader_once_per_ttl(self, clock):
        cache = TTLCache(60, clock=clock)
        calls = []

        def loader():
            calls.append(1)
            return len(calls)

        assert cache.get_or_load("k", loader) == 1
        assert cache.get_or_load("k", loader) == 1
        clock.advance(61)
        assert cache.get_or_load("k", loader) == 2

    def test_loader_errors_are_not_cached(self, clock):
        cache = TTLCache(60, clock=clock)

        def broken():
            raise RuntimeError("gateway down")

        with pytest.raises(RuntimeError):
            cache.get_or_load("k", broken)
        assert cache.get_or_load("k", lambda: "ok") == "ok"

    def test_least_recently_used_entry_is_evicted(self, clock):
        cache = TTLCache(60, max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_invalidate(self, clock):
        cache = TTLCache(60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert cache.get("a") is None
        assert len(cache) == 1

        cache.invalidate()
        assert len(cache) == 0

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            TTLCache(0)
