# src/cache/bounded_store.py — v2
"""Size-bounded cache store (CACHE_BACKEND=bounded).

Backed by ``cachetools.TLRUCache``: each entry's time-to-use is its own
``expires_at``, and the least recently used entry is evicted once
``max_entries`` is reached.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from cachetools import TLRUCache

from querycache.cache.base_cache_store import BaseCacheStore, Clock
from querycache.cache.fingerprint import QueryFingerprint
from querycache.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class BoundedCacheStore(BaseCacheStore):
    """Thread-safe LRU store with per-entry expiry."""

    def __init__(self, max_entries: int = 1024, clock: Clock | None = None) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        super().__init__(clock)
        self._max_entries = max_entries
        self._cache: TLRUCache[QueryFingerprint, CacheEntry] = TLRUCache(
            maxsize=max_entries,
            ttu=_time_to_use,
            timer=self._clock,
        )
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: QueryFingerprint) -> CacheEntry | None:
        """Retrieve entry by key; TLRUCache hides expired entries."""
        with self._lock:
            return self._cache.get(key)

    def set(self, key: QueryFingerprint, entry: CacheEntry) -> None:
        """Store an entry, evicting the least recently used one if full."""
        with self._lock:
            self._cache[key] = entry

    def remove(self, key: QueryFingerprint) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            before = len(self._cache)
            self._cache.expire()
            removed = before - len(self._cache)
        if removed:
            logger.debug("Purged %d expired cache entries", removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


def _time_to_use(key: QueryFingerprint, entry: CacheEntry, now: datetime) -> datetime:
    return entry.expires_at if entry.expires_at is not None else datetime.max.replace(
        tzinfo=now.tzinfo
    )
