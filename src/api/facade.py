# src/api/facade.py — v1
"""Public API facade: wrap deferred queries for transparent caching.

Usage:
    from querycache.api.facade import cacheable, dispose

    blogs = list(cacheable(query, ttl=timedelta(minutes=10)))  # miss, stored
    again = list(cacheable(query))                               # hit, replayed
    dispose(cacheable(query))                                    # force next miss
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, TypeVar

from querycache.api.context import QueryCacheContext, get_default_context
from querycache.core.errors import InvalidArgumentError, NotConfiguredError
from querycache.query.cached_query import CachedQuery

if TYPE_CHECKING:
    from querycache.cache.base_cache_store import BaseCacheStore
    from querycache.query.base_query import BaseQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")

TTL = timedelta | int | float


def cacheable(
    query: BaseQuery[T],
    ttl: TTL | None = None,
    *,
    context: QueryCacheContext | None = None,
    store: BaseCacheStore | None = None,
) -> CachedQuery[T]:
    """Wrap ``query`` so its results are served from the cache.

    Args:
        query: Deferred query exposing ``descriptor`` and ``iterate()``.
        ttl: Entry lifetime as a ``timedelta`` or seconds. None means
            lookup-only (serve existing entries, never write); zero never
            writes either.
        context: Context supplying counters and events. Defaults to
            the process-wide context.
        store: Store to use. Defaults to the query's own store, then the
            context's.

    Returns:
        CachedQuery with the same iteration contract as ``query``.

    Raises:
        InvalidArgumentError: If ``query`` or its descriptor is missing, or
            ``ttl`` is negative.
        NotConfiguredError: If no cache store can be resolved.
    """
    if query is None:
        raise InvalidArgumentError("query is required")
    if not callable(getattr(query, "iterate", None)):
        raise InvalidArgumentError(f"{type(query).__name__} is not a deferred query")
    if getattr(query, "descriptor", None) is None:
        raise InvalidArgumentError("query has no descriptor")

    duration = _normalize_ttl(ttl)
    ctx = context if context is not None else get_default_context()
    resolved = _resolve_store(query, store, ctx)
    return CachedQuery(query, store=resolved, context=ctx, ttl=duration)


def dispose(wrapped: CachedQuery[T]) -> bool:
    """Evict the entry of a cached query so the next lookup misses."""
    if not isinstance(wrapped, CachedQuery):
        raise InvalidArgumentError("dispose() expects a query returned by cacheable()")
    return wrapped.dispose()


def _normalize_ttl(ttl: TTL | None) -> timedelta | None:
    if ttl is None:
        return None
    if isinstance(ttl, bool) or not isinstance(ttl, (timedelta, int, float)):
        raise InvalidArgumentError(f"ttl must be a timedelta or seconds, got {ttl!r}")
    duration = ttl if isinstance(ttl, timedelta) else timedelta(seconds=ttl)
    if duration < timedelta(0):
        raise InvalidArgumentError(f"ttl must be >= 0, got {ttl!r}")
    return duration


def _resolve_store(
    query: BaseQuery[T],
    store: BaseCacheStore | None,
    context: QueryCacheContext,
) -> BaseCacheStore:
    if store is not None:
        return store
    own = getattr(query, "cache_store", None)
    if own is not None:
        return own
    if context.store is not None:
        return context.store
    raise NotConfiguredError(
        "No cache store configured: pass store=, or enable QUERYCACHE_CACHE_ENABLED"
    )
