# src/cache/models.py — v2
"""Cache domain models: CacheEntry and CacheStatsSnapshot."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from querycache.cache.fingerprint import QueryFingerprint
from querycache.query.replay import ReplayIterator


class CacheEntry(BaseModel):
    """One stored query result, live or fully buffered.

    ``iterator`` is the owning replay iterator. While it is still draining
    the provider, every hit shares its cursor; once it completes, hits
    replay its buffer.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    key: QueryFingerprint
    iterator: ReplayIterator
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        """Whether the entry's absolute expiry has passed at ``now``."""
        return self.expires_at is not None and now >= self.expires_at


class CacheStatsSnapshot(BaseModel):
    """Point-in-time copy of the cache counters."""

    hits: int = 0
    misses: int = 0
    stores: int = 0
    evictions: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        """Hits over lookups; 0.0 before the first lookup."""
        return self.hits / self.lookups if self.lookups else 0.0
