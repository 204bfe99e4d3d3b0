"""Tests for the TTL response cache."""

from datetime import timedelta

from medinventory.services.cache import CacheEntry, ResponseCache


def _cache(clock, **kw) -> ResponseCache:
    return ResponseCache(clock=clock, **kw)


# ---------------------------------------------------------------------------
# CacheEntry
# ---------------------------------------------------------------------------


class TestCacheEntry:
    def test_not_expired_at_exact_ttl(self):
        entry = CacheEntry(value=1, stored_at=0.0, ttl=timedelta(seconds=10))
        assert entry.is_expired(10.0) is False

    def test_expired_past_ttl(self):
        entry = CacheEntry(value=1, stored_at=0.0, ttl=timedelta(seconds=10))
        assert entry.is_expired(10.001) is True


# ---------------------------------------------------------------------------
# get / set / has
# ---------------------------------------------------------------------------


class TestGetSet:
    def test_missing_key_returns_none(self, clock):
        assert _cache(clock).get("nope") is None

    def test_set_then_get(self, clock):
        cache = _cache(clock)
        cache.set("k", {"a": 1})
        assert cache.get("k") == {"a": 1}

    def test_falsy_values_are_cached(self, clock):
        cache = _cache(clock)
        cache.set("empty", [])
        assert cache.get("empty") == []
        assert cache.has("empty") is True

    def test_overwrite_replaces_value_and_expiry(self, clock):
        cache = _cache(clock)
        cache.set("k", "old", ttl=timedelta(minutes=1))
        clock.advance(50)
        cache.set("k", "new", ttl=timedelta(minutes=1))
        clock.advance(50)
        assert cache.get("k") == "new"

    def test_default_ttl_is_five_minutes(self, clock):
        cache = _cache(clock)
        cache.set("k", "v")
        clock.advance(5 * 60 - 0.1)
        assert cache.get("k") == "v"
        clock.advance(0.2)
        assert cache.get("k") is None

    def test_explicit_ttl(self, clock):
        cache = _cache(clock)
        cache.set("k", "v", ttl=timedelta(minutes=30))
        clock.advance(30 * 60 - 0.1)
        assert cache.has("k") is True
        clock.advance(0.2)
        assert cache.has("k") is False

    def test_zero_ttl_uses_default(self, clock):
        cache = _cache(clock)
        cache.set("k", "v", ttl=timedelta(0))
        clock.advance(60)
        assert cache.get("k") == "v"

    def test_expired_read_evicts_entry(self, clock):
        cache = _cache(clock)
        cache.set("k", "v", ttl=timedelta(seconds=1))
        clock.advance(2)
        assert cache.get("k") is None
        clock.now -= 2  # even if time went back, the entry is gone
        assert cache.get("k") is None

    def test_has_evicts_expired_entry(self, clock):
        cache = _cache(clock)
        cache.set("k", "v", ttl=timedelta(seconds=1))
        clock.advance(2)
        assert cache.has("k") is False
        assert cache.stats().size == 0


# ---------------------------------------------------------------------------
# clear / stats
# ---------------------------------------------------------------------------


class TestClearAndStats:
    def test_clear_empties_cache(self, clock):
        cache = _cache(clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        stats = cache.stats()
        assert stats.size == 0
        assert stats.keys == []

    def test_stats_reports_live_keys(self, clock):
        cache = _cache(clock)
        cache.set("a", 1)
        cache.set("b", 2)
        stats = cache.stats()
        assert stats.size == 2
        assert sorted(stats.keys) == ["a", "b"]

    def test_stats_sweeps_expired_entries(self, clock):
        cache = _cache(clock)
        cache.set("short", 1, ttl=timedelta(seconds=1))
        cache.set("long", 2, ttl=timedelta(minutes=10))
        clock.advance(5)
        stats = cache.stats()
        assert stats.size == 1
        assert stats.keys == ["long"]
        assert stats.expirations == 1

    def test_hit_and_miss_counters(self, clock):
        cache = _cache(clock)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.to_dict()["hit_rate"] == "50.00%"


# ---------------------------------------------------------------------------
# generate_key
# ---------------------------------------------------------------------------


class TestGenerateKey:
    def test_insertion_order_does_not_matter(self):
        a = ResponseCache.generate_key("trends", {"a": 1, "b": {"x": 1, "y": 2}})
        b = ResponseCache.generate_key("trends", {"b": {"y": 2, "x": 1}, "a": 1})
        assert a == b

    def test_operation_is_part_of_key(self):
        params = {"products": [{"id": "1", "stock": 5}]}
        assert ResponseCache.generate_key(
            "trends", params
        ) != ResponseCache.generate_key("insights", params)

    def test_different_values_differ(self):
        assert ResponseCache.generate_key("qa", {"q": "a"}) != ResponseCache.generate_key(
            "qa", {"q": "b"}
        )

    def test_long_keys_are_hashed(self):
        params = {"products": [{"id": str(i), "stock": i} for i in range(50)]}
        key = ResponseCache.generate_key("trends", params)
        assert key.startswith("trends:")
        assert len(key) == len("trends:") + 16
        assert key == ResponseCache.generate_key("trends", params)

    def test_non_json_values_are_stringified(self):
        key = ResponseCache.generate_key("x", {"when": timedelta(seconds=1)})
        assert "0:00:01" in key
