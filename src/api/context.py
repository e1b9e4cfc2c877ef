# src/api/context.py — v2
"""Explicit cache context plus a process-wide default for simple callers.

A ``QueryCacheContext`` bundles everything a cached query needs: the
store, the counters and the hit/miss subscribers. Time always comes from
the store's own clock. Tests and embedding applications build their own;
everything else shares the default returned by ``get_default_context()``.
"""

from __future__ import annotations

import logging
import threading

from querycache.cache.base_cache_store import BaseCacheStore, Clock, utc_now
from querycache.cache.cache_factory import create_cache_store
from querycache.config.settings import Settings, load_settings
from querycache.tracking.events import CacheEvents
from querycache.tracking.stats import CacheStats

logger = logging.getLogger(__name__)


class QueryCacheContext:
    """Store, counters and events shared by cached queries."""

    def __init__(
        self,
        store: BaseCacheStore | None,
        stats: CacheStats | None = None,
        events: CacheEvents | None = None,
    ) -> None:
        self.store = store
        self.stats = stats or CacheStats()
        self.events = events or CacheEvents()

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, clock: Clock | None = None
    ) -> QueryCacheContext:
        """Build a context whose store comes from the configured backend."""
        return cls(store=create_cache_store(settings, clock=clock))

    @property
    def clock(self) -> Clock:
        """The store's clock, or UTC wall time when no store is configured."""
        return self.store.clock if self.store is not None else utc_now

    @property
    def configured(self) -> bool:
        return self.store is not None

    def reset(self) -> None:
        """Drop all entries and zero the counters. Subscribers are kept."""
        if self.store is not None:
            self.store.clear()
        self.stats.reset()
        logger.debug("Query cache context reset")

    def __repr__(self) -> str:
        store = type(self.store).__name__ if self.store is not None else None
        return f"QueryCacheContext(store={store})"


_default_lock = threading.Lock()
_default_context: QueryCacheContext | None = None


def get_default_context() -> QueryCacheContext:
    """Return the process-wide context, building it from settings on first use."""
    global _default_context
    with _default_lock:
        if _default_context is None:
            _default_context = QueryCacheContext.from_settings(load_settings())
            logger.debug("Initialized default query cache context: %r", _default_context)
        return _default_context


def set_default_context(context: QueryCacheContext | None) -> None:
    """Replace the process-wide context. ``None`` rebuilds it lazily."""
    global _default_context
    with _default_lock:
        _default_context = context


def reset_default_context() -> None:
    """Forget the process-wide context so the next lookup rebuilds it."""
    set_default_context(None)
