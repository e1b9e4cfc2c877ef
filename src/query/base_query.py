# src/query/base_query.py — v1
"""Abstract deferred query: a descriptor plus a way to execute it.

This is the provider-facing interface the cache consumes. Nothing runs
until ``iterate()`` is called.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from querycache.cache.base_cache_store import BaseCacheStore
    from querycache.descriptor.nodes import Node

T = TypeVar("T")


class BaseQuery(ABC, Generic[T]):
    """Lazily executed query described by an immutable descriptor."""

    @property
    @abstractmethod
    def descriptor(self) -> Node:
        """Root node of the query's descriptor tree."""

    @property
    @abstractmethod
    def element_type(self) -> Any:
        """Type of the elements the query yields."""

    @abstractmethod
    def iterate(self) -> Iterator[T]:
        """Execute the query and return a fresh pull iterator."""

    @property
    def cache_store(self) -> BaseCacheStore | None:
        """Store supplied by the provider itself, if any."""
        return None

    def __iter__(self) -> Iterator[T]:
        return self.iterate()
