"""
Time-windowed in-memory cache.
Entries remember when they were fetched; freshness is decided by the caller,
since quotes and instrument catalogs tolerate very different staleness.
Stale entries are ignored, not deleted, until a refetch overwrites them.
"""
import time
from typing import Any, Callable, NamedTuple


class CacheEntry(NamedTuple):
    value: Any
    fetched_at: float


class CacheStore:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._store: dict[str, CacheEntry] = {}
        self._clock = clock
        self.hits = 0
        self.misses = 0

    def get(self, key: str, freshness_window: float) -> Any | None:
        """Return the value if it was fetched less than `freshness_window` seconds ago."""
        entry = self._store.get(key)
        if entry is not None and self._clock() - entry.fetched_at < freshness_window:
            self.hits += 1
            return entry.value
        self.misses += 1
        return None

    def set(self, key: str, value: Any):
        """Store a value, replacing any previous entry for the key."""
        self._store[key] = CacheEntry(value, self._clock())

    def entry(self, key: str) -> CacheEntry | None:
        return self._store.get(key)

    def clear(self):
        """Clear all cached values."""
        print(f"[CACHE] Clearing {len(self._store)} entries")
        self._store.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict:
        return {"size": self.size, "hits": self.hits, "misses": self.misses}

    @property
    def size(self):
        return len(self._store)


def cache_key(category: str, symbol: str) -> str:
    return f"{category}:{symbol}".upper()


QUOTE_TTL = 300
SERIES_TTL = 900
INDICATOR_TTL = 900
SENTIMENT_TTL = 600
INTELLIGENCE_TTL = 1800
CATALOG_TTL = 86400

# Failed catalog loads are not retried inside this window.
CATALOG_RETRY_TTL = 300
