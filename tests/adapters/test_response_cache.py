"""Tests for the in-memory ResponseCache and NullCache."""

import pytest

from roamsync.adapters.cache import NullCache, ResponseCache

from tests.fakes import FakeClock


class TestResponseCache:
    """Test suite for ResponseCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return ResponseCache(default_ttl_seconds=300, clock=clock)

    def test_get_missing_returns_none(self, cache):
        assert cache.get("GET /spots?#-") is None

    def test_entry_fresh_just_below_ttl(self, cache, clock):
        cache.set("k", {"a": 1}, ttl=10)
        clock.advance(9.99)
        assert cache.get("k") == {"a": 1}

    def test_entry_expires_at_ttl(self, cache, clock):
        cache.set("k", "v", ttl=10)
        clock.advance(10)

        assert cache.get("k") is None
        # Lazily removed on access
        assert cache.size() == 0

    def test_expired_entry_stays_until_accessed(self, cache, clock):
        cache.set("k", "v", ttl=1)
        clock.advance(5)
        assert cache.size() == 1

    def test_default_ttl_applies(self, cache, clock):
        cache.set("k", "v")
        clock.advance(299)
        assert cache.get("k") == "v"
        clock.advance(1)
        assert cache.get("k") is None

    def test_set_overwrites_and_restarts_ttl(self, cache, clock):
        cache.set("k", "old", ttl=10)
        clock.advance(8)
        cache.set("k", "new", ttl=10)
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_invalidate_by_substring(self, cache):
        cache.set("GET /spots?limit=5#-", 1)
        cache.set("GET /spots/nearby?latitude=1#-", 2)
        cache.set("GET /users/u1/profile?#-", 3)

        removed = cache.invalidate("spots")

        assert removed == 2
        assert cache.keys() == ["GET /users/u1/profile?#-"]

    def test_invalidate_everything(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.invalidate() == 2
        assert cache.size() == 0

    def test_invalidate_without_match(self, cache):
        cache.set("a", 1)
        assert cache.invalidate("zzz") == 0
        assert cache.size() == 1

    def test_max_entries_evicts_oldest(self, clock):
        cache = ResponseCache(max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert sorted(cache.keys()) == ["a", "c"]

    def test_zero_bound_never_raises(self, clock):
        cache = ResponseCache(max_entries=0, clock=clock)

        cache.set("GET /spots?#-", {"x": 1})
        cache.set("GET /spots/1?#-", {"x": 2})

        assert cache.size() <= 1

    def test_stats(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 50.0
        assert stats["size"] == 1


class TestNullCache:
    """Test suite for NullCache."""

    def test_always_misses(self):
        cache = NullCache()
        cache.set("k", "v", ttl=100)

        assert cache.get("k") is None
        assert cache.size() == 0
        assert cache.invalidate() == 0
        assert cache.stats()["size"] == 0
