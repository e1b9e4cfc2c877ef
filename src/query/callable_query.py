# src/query/callable_query.py — v1
"""Stock ``BaseQuery`` backed by a zero-argument callable.

Usage:
    query = CallableQuery(descriptor, Blog, lambda: session.fetch_blogs(min_rank=3))
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any, TypeVar

from querycache.core.errors import InvalidArgumentError
from querycache.query.base_query import BaseQuery

if TYPE_CHECKING:
    from querycache.cache.base_cache_store import BaseCacheStore
    from querycache.descriptor.nodes import Node

T = TypeVar("T")


class RestartableIterator(Iterator[T]):
    """Iterator that can start over by calling its source again."""

    def __init__(self, source: Callable[[], Iterable[T]]) -> None:
        self._source = source
        self._iterator: Iterator[T] = iter(source())

    def __next__(self) -> T:
        return next(self._iterator)

    def reset(self) -> None:
        self.close()
        self._iterator = iter(self._source())

    def close(self) -> None:
        close = getattr(self._iterator, "close", None)
        if callable(close):
            close()


class CallableQuery(BaseQuery[T]):
    """Deferred query whose execution is a plain callable.

    Args:
        descriptor: Descriptor identifying the query.
        element_type: Type of yielded elements.
        source: Called once per execution; returns an iterable of results.
        cache_store: Optional store this query should be cached in.
        restartable: Hand out iterators that support ``reset()``.
    """

    def __init__(
        self,
        descriptor: Node,
        element_type: Any,
        source: Callable[[], Iterable[T]],
        cache_store: BaseCacheStore | None = None,
        restartable: bool = False,
    ) -> None:
        if not callable(source):
            raise InvalidArgumentError("source must be callable")
        self._descriptor = descriptor
        self._element_type = element_type
        self._source = source
        self._cache_store = cache_store
        self._restartable = restartable
        self.executions = 0

    @property
    def descriptor(self) -> Node:
        return self._descriptor

    @property
    def element_type(self) -> Any:
        return self._element_type

    @property
    def cache_store(self) -> BaseCacheStore | None:
        return self._cache_store

    def iterate(self) -> Iterator[T]:
        self.executions += 1
        if self._restartable:
            return RestartableIterator(self._source)
        return iter(self._source())

    def __repr__(self) -> str:
        return f"CallableQuery(kind={getattr(self._descriptor, 'kind', None)!r})"
