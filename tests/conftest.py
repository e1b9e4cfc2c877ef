# tests/conftest.py — v4
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, sample descriptors over a small Blog model,
counting queries and isolated cache contexts. No sleeping, no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from querycache.api.context import QueryCacheContext, reset_default_context
from querycache.cache.memory_store import MemoryCacheStore
from querycache.descriptor import builders as q
from querycache.descriptor.nodes import MethodRef, Node
from querycache.query.callable_query import CallableQuery


# === Sample model ===


@dataclass
class Blog:
    blog_id: int
    url: str | None
    rank: int = 0


class Queryable:
    """Declaring type for the query operator method identities."""


WHERE = MethodRef(Queryable, "where", (Iterable, object))
ORDER_BY = MethodRef(Queryable, "order_by", (Iterable, object))

BLOGS = [
    Blog(1, "https://a.example", rank=5),
    Blog(2, None, rank=3),
    Blog(3, "https://c.example", rank=9),
    Blog(4, "https://d.example", rank=1),
]


def blogs_source() -> Node:
    return q.constant("blogs", Iterable)


def url_not_null() -> Node:
    """``blogs.where(b => b.url != None)`` built from scratch every call."""
    b = q.parameter(Blog, "b")
    predicate = q.lambda_(q.not_equal(q.member(b, "url", str), q.constant(None, object)), b)
    return q.call(WHERE, blogs_source(), q.quote(predicate), type_=Iterable)


def rank_above(threshold: int) -> Node:
    """``blogs.where(b => b.rank > threshold)``."""
    b = q.parameter(Blog, "b")
    predicate = q.lambda_(q.greater_than(q.member(b, "rank", int), q.constant(threshold)), b)
    return q.call(WHERE, blogs_source(), q.quote(predicate), type_=Iterable)


# === Clock ===


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# === Queries ===


class CountingSource:
    """Source callable that counts executions and pulled elements."""

    def __init__(self, items: Iterable[object], fail_after: int | None = None) -> None:
        self.items = list(items)
        self.fail_after = fail_after
        self.calls = 0
        self.pulled = 0
        self.closed = 0

    def __call__(self) -> Iterator[object]:
        self.calls += 1
        return self._generate()

    def _generate(self) -> Iterator[object]:
        try:
            for index, item in enumerate(self.items):
                if self.fail_after is not None and index >= self.fail_after:
                    raise OSError("connection reset by peer")
                self.pulled += 1
                yield item
        except GeneratorExit:
            self.closed += 1
            raise


def make_query(descriptor: Node, items: Iterable[object] | None = None, **kwargs) -> CallableQuery:
    source = CountingSource(BLOGS if items is None else items)
    query = CallableQuery(descriptor, Blog, source, **kwargs)
    query.source = source  # type: ignore[attr-defined]
    return query


# === FIXTURES ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryCacheStore:
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def context(store: MemoryCacheStore) -> QueryCacheContext:
    """Isolated context over a memory store driven by the fake clock."""
    return QueryCacheContext(store=store)


@pytest.fixture(autouse=True)
def _isolated_default_context(monkeypatch: pytest.MonkeyPatch):
    """Keep the process-wide context and env settings out of every test."""
    for var in ("QUERYCACHE_CACHE_ENABLED", "QUERYCACHE_CACHE_BACKEND"):
        monkeypatch.delenv(var, raising=False)
    reset_default_context()
    yield
    reset_default_context()
