"""Tests for the expiring cache."""

import pytest

from arbscout.core.cache import DEFAULT_TTLS, ExpiringCache, resolve_ttls
from conftest import FakeClock


class TestExpiringCache:
    """Tests for ExpiringCache."""

    @pytest.fixture
    def cache(self, clock):
        return ExpiringCache(clock=clock)

    def test_get_within_ttl(self, cache, clock):
        """Entry is returned while younger than its TTL."""
        cache.set("quote:binance:BTC/USDT", 42.0, ttl=10)
        clock.advance(9)
        assert cache.get("quote:binance:BTC/USDT") == 42.0

    def test_expired_entry_is_absent(self, cache, clock):
        """Entry is absent once its TTL has elapsed."""
        cache.set("k", "v", ttl=10)
        clock.advance(11)
        assert cache.get("k") is None
        assert not cache.has("k")

    def test_per_entry_ttl(self, cache, clock):
        """Entries in different namespaces expire independently."""
        cache.set("quote:x", 1, ttl=10)
        cache.set("withdraw_fee:x", 2, ttl=3600)
        clock.advance(60)
        assert cache.get("quote:x") is None
        assert cache.get("withdraw_fee:x") == 2

    def test_set_replaces_and_restarts_ttl(self, cache, clock):
        """A second set replaces the value and its stored_at."""
        cache.set("k", "old", ttl=10)
        clock.advance(8)
        cache.set("k", "new", ttl=10)
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_live_at_exact_ttl(self, cache, clock):
        cache.set("k", "v", ttl=10)
        clock.advance(10)
        assert cache.get("k") == "v"
        assert cache.sweep() == 0
        clock.advance(0.001)
        assert cache.get("k") is None

    def test_sweep_removes_only_expired(self, cache, clock):
        """sweep() reclaims expired entries and reports the count."""
        cache.set("a", 1, ttl=5)
        cache.set("b", 2, ttl=5)
        cache.set("c", 3, ttl=100)
        clock.advance(6)
        assert cache.sweep() == 2
        assert len(cache) == 1
        assert cache.get("c") == 3

    def test_delete_and_clear(self, cache):
        cache.set("a", 1, ttl=5)
        cache.set("b", 2, ttl=5)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_rejects_non_positive_ttl(self, cache):
        with pytest.raises(ValueError):
            cache.set("k", "v", ttl=0)

    def test_closed_cache_drops_writes(self, cache):
        """After close() writes are ignored but reads still work."""
        cache.set("k", "v", ttl=10)
        cache.close()
        cache.set("other", "x", ttl=10)
        assert cache.closed
        assert cache.get("other") is None
        assert cache.get("k") == "v"

    def test_stats_counts_hits_and_misses(self, cache):
        cache.set("k", "v", ttl=10)
        cache.get("k")
        cache.get("missing")
        stats = cache.stats
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5


class TestResolveTtls:
    """Tests for cache TTL configuration."""

    def test_defaults(self):
        assert resolve_ttls(None) == DEFAULT_TTLS

    def test_overrides_merge(self):
        ttls = resolve_ttls({"cache_ttl": {"quotes": 5}})
        assert ttls["quotes"] == 5
        assert ttls["universe"] == DEFAULT_TTLS["universe"]

    def test_clock_injection(self):
        clock = FakeClock(start=0)
        cache = ExpiringCache(clock=clock)
        cache.set("k", 1, ttl=1)
        entry = cache.get_entry("k")
        assert entry.stored_at == 0
        assert entry.expires_at == 1
