"""
Expiring cache for Arbscout.

Key -> value store where every entry carries its own time-to-live. Used by
the market-data provider, the universe provider and the transfer-status
service to avoid re-querying venues inside a freshness window.

Freshness is governed purely by TTL (no LRU, no size bound). Reads treat an
expired entry as absent and evict it; sweep() reclaims space for entries
that are never read again.
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cachetools import TLRUCache

from arbscout.core.logging import get_logger

logger = get_logger("cache")


# Namespace TTL defaults in seconds, overridable via config.yaml cache_ttl.
DEFAULT_TTLS = {
    "quotes": 10,
    "withdrawal_fees": 3600,
    "exchange_status": 3600,
    "universe": 3600,
}


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with the moment it was stored and its lifetime."""
    value: Any
    stored_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


def _entry_expiry(_key: str, entry: CacheEntry, _now: float) -> float:
    # TLRUCache drops an item once timer() >= expiry; keep it live at expires_at itself.
    return math.nextafter(entry.expires_at, math.inf)


class ExpiringCache:
    """
    TTL cache with per-entry lifetimes.

    Features:
    - TTL chosen per set() call (per key namespace)
    - Lazy expiry on read
    - sweep() for periodic space reclamation
    - close() to stop accepting writes during shutdown

    Entries are replaced whole on set(), so a reader sees either the old
    entry or the new one.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._cache = TLRUCache(maxsize=math.inf, ttu=_entry_expiry, timer=clock)
        self._closed = False
        self._stats = {"hits": 0, "misses": 0}

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache, or None if missing or expired."""
        entry = self._cache.get(key)
        if entry is None or entry.is_expired(self._clock()):
            self._cache.pop(key, None)
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return entry.value

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get the raw entry (value plus timing) if still live."""
        entry = self._cache.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key for ttl seconds."""
        if self._closed:
            logger.debug(f"Cache closed, dropping write: {key}")
            return
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._cache[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)

    def has(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        return self.get_entry(key) is not None

    def delete(self, key: str) -> bool:
        """Delete key from cache. Returns True if something was removed."""
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all cached values."""
        self._cache.clear()
        logger.info("Cache cleared")

    def sweep(self) -> int:
        """Remove every expired entry. Returns number removed."""
        removed = len(self._cache.expire())
        if removed:
            logger.debug(f"Cache sweep: removed {removed} expired entries")
        return removed

    def close(self) -> None:
        """Stop accepting writes. Reads keep working until clear()."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._cache)

    @property
    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0
        return {
            **self._stats,
            "total": total,
            "hit_rate": round(hit_rate, 3),
            "size": len(self._cache),
        }


def resolve_ttls(config: Optional[dict] = None) -> dict[str, float]:
    """Merge configured namespace TTLs over the defaults."""
    ttls = dict(DEFAULT_TTLS)
    if config:
        for name, value in (config.get("cache_ttl") or {}).items():
            ttls[name] = float(value)
    return ttls
