# src/tracking/stats.py — v1
"""Process-wide hit/miss counters for the query cache.

Counters only grow between explicit ``reset()`` calls and are updated
under a lock, so concurrent lookups never lose an increment.
"""

from __future__ import annotations

import threading

from querycache.cache.models import CacheStatsSnapshot


class CacheStats:
    """Thread-safe lookup counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._stores = 0
        self._evictions = 0

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def record_store(self) -> None:
        with self._lock:
            self._stores += 1

    def record_eviction(self) -> None:
        with self._lock:
            self._evictions += 1

    def snapshot(self) -> CacheStatsSnapshot:
        """Consistent copy of all counters."""
        with self._lock:
            return CacheStatsSnapshot(
                hits=self._hits,
                misses=self._misses,
                stores=self._stores,
                evictions=self._evictions,
            )

    def reset(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0
            self._stores = 0
            self._evictions = 0
