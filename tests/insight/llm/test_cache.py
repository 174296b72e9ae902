"""
Unit tests for the response cache.

**Test Coverage:**
- Fingerprint determinism and sensitivity
- Get/set with hits and misses
- TTL expiry driven by the injected clock
- LRU eviction at capacity
- Statistics
"""

import pytest

from insight.llm.cache import CacheManager, MISS, fingerprint
from insight.llm.providers.base import Message, RequestOptions


MESSAGES = [Message("system", "Be brief."), Message("user", "Analyze ai agent")]


# ============================================================================
# Fingerprint
# ============================================================================

class TestFingerprint:
    """Test cache key generation."""

    def test_identical_requests_share_key(self):
        options = RequestOptions(format="json", strict_format=True, temperature=0.2)
        assert fingerprint(MESSAGES, options, "gpt-4") == fingerprint(list(MESSAGES), options, "gpt-4")

    def test_sha256_hex(self):
        key = fingerprint(MESSAGES, RequestOptions())
        assert len(key) == 64
        int(key, 16)

    @pytest.mark.parametrize("changed", [
        RequestOptions(temperature=0.9),
        RequestOptions(max_tokens=50),
        RequestOptions(format="json"),
        RequestOptions(format="json", strict_format=True),
    ])
    def test_output_affecting_options_change_key(self, changed):
        assert fingerprint(MESSAGES, RequestOptions()) != fingerprint(MESSAGES, changed)

    def test_model_changes_key(self):
        options = RequestOptions()
        assert fingerprint(MESSAGES, options, "gpt-4") != fingerprint(MESSAGES, options, "gpt-3.5-turbo")

    def test_message_order_changes_key(self):
        reordered = [MESSAGES[1], MESSAGES[0]]
        assert fingerprint(MESSAGES, RequestOptions()) != fingerprint(reordered, RequestOptions())

    def test_transport_options_do_not_change_key(self):
        base = RequestOptions()
        tuned = RequestOptions(max_retries=5, retry_delay=0.1, enable_cache=False, batch=False, stream=True)
        assert fingerprint(MESSAGES, base) == fingerprint(MESSAGES, tuned)


# ============================================================================
# Get / Set
# ============================================================================

class TestCacheManager:
    """Test cache storage."""

    def test_miss_then_hit(self):
        cache = CacheManager()
        assert cache.get("k") is MISS
        cache.set("k", {"a": 1})
        assert cache.get("k") == {"a": 1}
        assert "k" in cache
        assert len(cache) == 1

    def test_none_is_cacheable(self):
        cache = CacheManager()
        cache.set("k", None)
        assert cache.get("k") is None

    def test_miss_is_falsy(self):
        assert not MISS
        assert repr(MISS) == "MISS"

    def test_overwrite_keeps_single_entry(self):
        cache = CacheManager(max_entries=2)
        cache.set("k", 1)
        cache.set("k", 2)
        assert cache.get("k") == 2
        assert len(cache) == 1
        assert cache.stats()["evictions"] == 0

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            CacheManager(max_entries=0)
        with pytest.raises(ValueError):
            CacheManager(ttl_seconds=0)


# ============================================================================
# TTL
# ============================================================================

class TestExpiry:
    """Test TTL expiry with a fake clock."""

    def test_entry_expires_after_ttl(self, fake_clock):
        cache = CacheManager(ttl_seconds=10, clock=fake_clock)
        cache.set("k", "v")

        fake_clock.advance(9.9)
        assert cache.get("k") == "v"

        fake_clock.advance(0.1)
        assert cache.get("k") is MISS
        assert len(cache) == 0

    def test_per_entry_ttl(self, fake_clock):
        cache = CacheManager(ttl_seconds=100, clock=fake_clock)
        cache.set("short", 1, ttl=1)
        cache.set("long", 2)
        fake_clock.advance(5)
        assert "short" not in cache
        assert "long" in cache

    def test_purge_expired(self, fake_clock):
        cache = CacheManager(ttl_seconds=10, clock=fake_clock)
        cache.set("a", 1)
        fake_clock.advance(5)
        cache.set("b", 2)
        fake_clock.advance(6)
        assert cache.purge_expired() == 1
        assert cache.get("b") == 2


# ============================================================================
# LRU Eviction
# ============================================================================

class TestEviction:
    """Test least-recently-used eviction."""

    def test_inserting_beyond_capacity_evicts_exactly_one(self):
        cache = CacheManager(max_entries=3)
        for key in ("a", "b", "c"):
            cache.set(key, key)

        cache.set("d", "d")

        assert len(cache) == 3
        assert cache.get("a") is MISS
        assert all(cache.get(key) == key for key in ("b", "c", "d"))
        assert cache.stats()["evictions"] == 1

    def test_get_refreshes_recency(self):
        cache = CacheManager(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")

        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is MISS


# ============================================================================
# Statistics
# ============================================================================

class TestStats:
    """Test cache statistics."""

    def test_hit_rate(self):
        cache = CacheManager(max_entries=10, ttl_seconds=60)
        cache.set("k", 1)
        cache.get("k")
        cache.get("k")
        cache.get("missing")

        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(2 / 3)
        assert stats["size"] == 1
        assert stats["max_entries"] == 10
        assert stats["ttl_seconds"] == 60

    def test_clear(self):
        cache = CacheManager()
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.clear() == 2
        assert len(cache) == 0
        assert cache.stats()["hit_rate"] == 0.0
