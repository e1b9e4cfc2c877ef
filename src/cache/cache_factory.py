# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from querycache.cache.base_cache_store import BaseCacheStore, Clock
from querycache.config.settings import Settings


class UnsupportedCacheBackendError(ValueError):
    """Raised when CACHE_BACKEND names no known store."""


def create_cache_store(
    settings: Settings | None = None,
    clock: Clock | None = None,
) -> BaseCacheStore | None:
    """Instantiate the configured cache backend.

    Args:
        settings: Library settings. Defaults to an unbounded memory store.
        clock: Optional clock used by the store for expiry checks.

    Returns:
        Configured BaseCacheStore, or None when caching is disabled.
    """
    if settings is not None and not settings.cache_enabled:
        return None

    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from querycache.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore(clock=clock)

    if backend == "bounded":
        from querycache.cache.bounded_store import BoundedCacheStore
        return BoundedCacheStore(max_entries=settings.cache_max_entries, clock=clock)

    raise UnsupportedCacheBackendError(f"Unsupported cache backend: {backend!r}")
