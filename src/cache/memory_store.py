# src/cache/memory_store.py — v2
"""In-process, unbounded cache store (default CACHE_BACKEND=memory).

Entries live in a dict guarded by a lock. Expiry is lazy: an expired entry
is dropped the first time ``get`` sees it, or by ``purge_expired``.
"""

from __future__ import annotations

import logging
import threading

from querycache.cache.base_cache_store import BaseCacheStore, Clock
from querycache.cache.fingerprint import QueryFingerprint
from querycache.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """Thread-safe dict-backed cache store."""

    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__(clock)
        self._entries: dict[QueryFingerprint, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: QueryFingerprint) -> CacheEntry | None:
        """Retrieve entry by key, dropping it if expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug("Expired cache entry %s", key.hex)
                return None
            return entry

    def set(self, key: QueryFingerprint, entry: CacheEntry) -> None:
        """Store an entry (last write wins)."""
        with self._lock:
            self._entries[key] = entry

    def remove(self, key: QueryFingerprint) -> bool:
        """Remove an entry if present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
