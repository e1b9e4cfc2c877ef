# src/cache/base_cache_store.py — v3
"""Abstract cache store interface.

Stores map a ``QueryFingerprint`` to a ``CacheEntry``. Implementations
must tolerate concurrent ``get``/``set``/``remove`` from several threads.
Each store owns the clock that decides expiry; callers stamp
``expires_at`` from ``store.clock`` so one time source governs an entry.
There is deliberately no check-then-create operation: two threads missing
on the same key both run the provider and the last ``set`` wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from querycache.cache.fingerprint import QueryFingerprint
from querycache.cache.models import CacheEntry

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default store clock."""
    return datetime.now(timezone.utc)


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now

    @property
    def clock(self) -> Clock:
        """Time source used for this store's expiry checks."""
        return self._clock

    @abstractmethod
    def get(self, key: QueryFingerprint) -> CacheEntry | None:
        """Retrieve a live, unexpired entry, or None."""

    @abstractmethod
    def set(self, key: QueryFingerprint, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous one; expiry is ``entry.expires_at``."""

    @abstractmethod
    def remove(self, key: QueryFingerprint) -> bool:
        """Remove an entry. Returns True if one was present."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of entries currently held, expired or not."""
