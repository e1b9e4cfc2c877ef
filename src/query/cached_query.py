# src/query/cached_query.py — v2
"""Transparent caching wrapper around a deferred query.

``CachedQuery`` looks like the query it wraps (same descriptor, element
type and iteration contract). Each ``iter()`` call fingerprints the
descriptor and consults the store:

- hit on a live entry: the stored ``ReplayIterator`` itself is returned,
  so every consumer shares the first pass's cursor;
- hit on a completed entry: a fresh cursor over the replay buffer;
- hit on a truncated entry: the entry is evicted and the lookup misses;
- miss: the provider is executed behind a new ``ReplayIterator``, stored
  only when a positive TTL was given.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import timedelta
from functools import cached_property
from typing import TYPE_CHECKING, Any, TypeVar

from querycache.cache.fingerprint import QueryFingerprint, compute_fingerprint
from querycache.cache.models import CacheEntry
from querycache.logging.context import query_context
from querycache.query.base_query import BaseQuery
from querycache.query.replay import ReplayIterator

if TYPE_CHECKING:
    from querycache.api.context import QueryCacheContext
    from querycache.cache.base_cache_store import BaseCacheStore
    from querycache.descriptor.nodes import Node

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CachedQuery(BaseQuery[T]):
    """Query wrapper that serves results from a cache store when it can.

    Args:
        query: The wrapped (provider) query.
        store: Store holding entries for this query.
        context: Source of counters and events. Entry timestamps come
            from ``store.clock``, the same clock the store expires by.
        ttl: Lifetime of a stored entry. None = lookup-only; zero = never
            written.
    """

    def __init__(
        self,
        query: BaseQuery[T],
        store: BaseCacheStore,
        context: QueryCacheContext,
        ttl: timedelta | None = None,
    ) -> None:
        self._query = query
        self._store = store
        self._context = context
        self._ttl = ttl

    # --- Same surface as the wrapped query ---

    @property
    def descriptor(self) -> Node:
        return self._query.descriptor

    @property
    def element_type(self) -> Any:
        return self._query.element_type

    @property
    def provider(self) -> BaseQuery[T]:
        return self._query

    @property
    def cache_store(self) -> BaseCacheStore:
        return self._store

    # --- Cache settings ---

    @property
    def ttl(self) -> timedelta | None:
        return self._ttl

    @property
    def lookup_only(self) -> bool:
        """True when a miss never writes a new entry."""
        return self._ttl is None or self._ttl <= timedelta(0)

    @cached_property
    def fingerprint(self) -> QueryFingerprint:
        return compute_fingerprint(self._query.descriptor)

    # --- Iteration ---

    def iterate(self) -> Iterator[T]:
        key = self.fingerprint
        with query_context(key.hex, "lookup"):
            iterator = self._lookup(key)
            if iterator is not None:
                self._context.stats.record_hit()
                logger.debug("Cache hit")
                self._context.events.emit("hit", self._query)
                return iterator

            live = ReplayIterator(self._query.iterate())
            if not self.lookup_only:
                now = self._store.clock()
                self._store.set(
                    key,
                    CacheEntry(
                        key=key,
                        iterator=live,
                        created_at=now,
                        expires_at=now + self._ttl,
                    ),
                )
                self._context.stats.record_store()
                logger.debug("Cache miss, stored for %ss", self._ttl.total_seconds())
            else:
                logger.debug("Cache miss (lookup-only)")
            self._context.stats.record_miss()
            self._context.events.emit("miss", self._query)
            return live

    def _lookup(self, key: QueryFingerprint) -> Iterator[T] | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        owner = entry.iterator
        if owner.truncated:
            # a prefix is not the result; force a fresh pass
            if self._store.remove(key):
                self._context.stats.record_eviction()
            logger.warning(
                "Evicted truncated cache entry after %d elements", len(owner.buffered)
            )
            return None
        if owner.completed:
            return owner.replay()
        return owner

    # --- Disposal ---

    def dispose(self) -> bool:
        """Remove this query's entry from the store, whatever its state.

        Returns:
            True if an entry was removed.
        """
        key = self.fingerprint
        with query_context(key.hex, "dispose"):
            removed = self._store.remove(key)
            if removed:
                self._context.stats.record_eviction()
                logger.debug("Disposed cache entry")
            return removed

    def close(self) -> None:
        self.dispose()

    def __enter__(self) -> CachedQuery[T]:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"CachedQuery({self._query!r}, ttl={self._ttl}, store={type(self._store).__name__})"
