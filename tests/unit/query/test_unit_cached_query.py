# tests/unit/query/test_unit_cached_query.py — v2
"""Tests for query/cached_query.py — lookup, store, replay and disposal."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from conftest import (
    BLOGS,
    Blog,
    CountingSource,
    FakeClock,
    make_query,
    rank_above,
    url_not_null,
)
from querycache.api.context import QueryCacheContext
from querycache.cache.fingerprint import compute_fingerprint
from querycache.cache.memory_store import MemoryCacheStore
from querycache.core.errors import UnsupportedDescriptorShapeError
from querycache.descriptor.nodes import Extension, NodeKind
from querycache.query.cached_query import CachedQuery
from querycache.query.callable_query import CallableQuery
from querycache.query.replay import ReplayBufferIterator, ReplayIterator

TTL = timedelta(seconds=60)


def _wrap(context, query, ttl=TTL) -> CachedQuery:
    return CachedQuery(query, store=context.store, context=context, ttl=ttl)


class TestSurface:
    def test_mirrors_wrapped_query(self, context):
        query = make_query(url_not_null())
        cached = _wrap(context, query)
        assert cached.descriptor is query.descriptor
        assert cached.element_type is Blog
        assert cached.provider is query
        assert cached.cache_store is context.store

    def test_lookup_only(self, context):
        assert _wrap(context, make_query(url_not_null()), ttl=None).lookup_only
        assert _wrap(context, make_query(url_not_null()), ttl=timedelta(0)).lookup_only
        assert not _wrap(context, make_query(url_not_null())).lookup_only

    def test_fingerprint_matches_descriptor(self, context):
        cached = _wrap(context, make_query(url_not_null()))
        assert cached.fingerprint == compute_fingerprint(url_not_null())

    def test_nothing_runs_on_construction(self, context):
        query = make_query(url_not_null())
        _wrap(context, query)
        assert query.source.calls == 0
        assert len(context.store) == 0


class TestMissAndHit:
    def test_first_iteration_misses_and_stores(self, context):
        query = make_query(url_not_null())
        assert list(_wrap(context, query)) == BLOGS
        snap = context.stats.snapshot()
        assert (snap.hits, snap.misses, snap.stores) == (0, 1, 1)
        assert len(context.store) == 1
        assert query.source.calls == 1

    def test_equivalent_query_hits(self, context):
        list(_wrap(context, make_query(url_not_null())))
        second = make_query(url_not_null())
        assert list(_wrap(context, second, ttl=None)) == BLOGS
        assert second.source.calls == 0
        assert context.stats.hits == 1
        assert context.stats.misses == 1

    def test_completed_entry_returns_fresh_replay_cursor(self, context):
        list(_wrap(context, make_query(url_not_null())))
        a = iter(_wrap(context, make_query(url_not_null())))
        b = iter(_wrap(context, make_query(url_not_null())))
        assert isinstance(a, ReplayBufferIterator)
        assert a is not b
        assert next(a) == BLOGS[0]
        assert list(b) == BLOGS

    def test_replay_cursor_restarts(self, context):
        list(_wrap(context, make_query(url_not_null())))
        cursor = iter(_wrap(context, make_query(url_not_null())))
        assert list(cursor) == BLOGS
        cursor.reset()
        assert list(cursor) == BLOGS

    def test_different_literal_misses(self, context):
        list(_wrap(context, make_query(rank_above(3))))
        other = make_query(rank_above(4))
        list(_wrap(context, other))
        assert other.source.calls == 1
        assert context.stats.misses == 2
        assert len(context.store) == 2

    def test_live_entry_shares_cursor(self, context):
        first = iter(_wrap(context, make_query(url_not_null())))
        assert next(first) == BLOGS[0]
        second = iter(_wrap(context, make_query(url_not_null())))
        assert second is first
        assert list(second) == BLOGS[1:]
        assert list(_wrap(context, make_query(url_not_null()))) == BLOGS

    def test_hit_on_every_iteration(self, context):
        list(_wrap(context, make_query(url_not_null())))
        cached = _wrap(context, make_query(url_not_null()))
        list(cached)
        list(cached)
        assert context.stats.hits == 2


class TestLookupOnly:
    def test_none_ttl_never_stores(self, context):
        query = make_query(url_not_null())
        cached = _wrap(context, query, ttl=None)
        assert list(cached) == BLOGS
        assert list(cached) == BLOGS
        assert len(context.store) == 0
        assert query.source.calls == 2
        assert context.stats.misses == 2

    def test_zero_ttl_never_stores(self, context):
        list(_wrap(context, make_query(url_not_null()), ttl=timedelta(0)))
        assert len(context.store) == 0
        assert context.stats.snapshot().stores == 0

    def test_miss_returns_replay_iterator(self, context):
        it = iter(_wrap(context, make_query(url_not_null()), ttl=None))
        assert isinstance(it, ReplayIterator)


class TestExpiry:
    def test_served_before_expiry(self, context, clock):
        list(_wrap(context, make_query(url_not_null()), ttl=timedelta(seconds=2)))
        clock.advance(1)
        second = make_query(url_not_null())
        list(_wrap(context, second, ttl=None))
        assert second.source.calls == 0

    def test_expired_entry_misses(self, context, clock):
        list(_wrap(context, make_query(url_not_null()), ttl=timedelta(seconds=2)))
        clock.advance(3)
        second = make_query(url_not_null())
        assert list(_wrap(context, second, ttl=None)) == BLOGS
        assert second.source.calls == 1
        assert context.stats.misses == 2
        assert context.stats.hits == 0


class TestClock:
    def test_store_clock_far_from_wall_time(self):
        clock = FakeClock(datetime(2020, 1, 1, tzinfo=timezone.utc))
        context = QueryCacheContext(store=MemoryCacheStore(clock=clock))
        list(_wrap(context, make_query(url_not_null()), ttl=timedelta(hours=1)))
        second = make_query(url_not_null())
        list(_wrap(context, second, ttl=None))
        assert second.source.calls == 0
        assert context.stats.hits == 1

    def test_entry_stamped_by_store_clock(self, context, clock):
        cached = _wrap(context, make_query(url_not_null()), ttl=timedelta(seconds=5))
        iter(cached)
        entry = context.store.get(cached.fingerprint)
        assert entry.created_at == clock()
        assert entry.expires_at == clock() + timedelta(seconds=5)

    def test_query_own_store_uses_its_own_clock(self, context):
        own_clock = FakeClock(datetime(2020, 1, 1, tzinfo=timezone.utc))
        own = MemoryCacheStore(clock=own_clock)
        query = make_query(url_not_null())
        cached = CachedQuery(query, store=own, context=context, ttl=timedelta(seconds=2))
        list(cached)
        list(cached)
        assert query.source.calls == 1
        own_clock.advance(3)
        list(cached)
        assert query.source.calls == 2


class TestEarlyTermination:
    def test_closed_pass_is_evicted(self, context, caplog):
        first = iter(_wrap(context, make_query(url_not_null())))
        next(first)
        first.close()
        second = make_query(url_not_null())
        with caplog.at_level(logging.WARNING, logger="querycache"):
            assert list(_wrap(context, second)) == BLOGS
        assert second.source.calls == 1
        assert context.stats.snapshot().evictions == 1
        assert "truncated" in caplog.text

    def test_provider_error_propagates_and_leaves_no_servable_entry(self, context):
        failing = CallableQuery(url_not_null(), Blog, CountingSource(BLOGS, fail_after=2))
        with pytest.raises(OSError, match="connection reset"):
            list(_wrap(context, failing))
        retry = make_query(url_not_null())
        assert list(_wrap(context, retry)) == BLOGS
        assert retry.source.calls == 1

    def test_consumer_sharing_failed_pass_gets_the_error(self, context):
        failing = CallableQuery(url_not_null(), Blog, CountingSource(BLOGS, fail_after=2))
        first = iter(_wrap(context, failing))
        second = iter(_wrap(context, make_query(url_not_null())))
        assert second is first
        assert [next(first), next(first)] == BLOGS[:2]
        with pytest.raises(OSError):
            next(first)
        with pytest.raises(OSError, match="connection reset"):
            list(second)

    def test_refreshed_entry_is_served_afterwards(self, context):
        first = iter(_wrap(context, make_query(url_not_null())))
        next(first)
        first.close()
        list(_wrap(context, make_query(url_not_null())))
        third = make_query(url_not_null())
        assert list(_wrap(context, third)) == BLOGS
        assert third.source.calls == 0


class TestDisposal:
    def test_dispose_before_consumption(self, context):
        cached = _wrap(context, make_query(url_not_null()))
        iter(cached)
        assert cached.dispose() is True
        second = make_query(url_not_null())
        list(_wrap(context, second))
        assert second.source.calls == 1

    def test_dispose_without_entry(self, context):
        assert _wrap(context, make_query(url_not_null())).dispose() is False
        assert context.stats.snapshot().evictions == 0

    def test_dispose_counts_eviction(self, context):
        cached = _wrap(context, make_query(url_not_null()))
        list(cached)
        cached.dispose()
        assert context.stats.snapshot().evictions == 1
        assert len(context.store) == 0

    def test_context_manager_disposes(self, context):
        with _wrap(context, make_query(url_not_null())) as cached:
            list(cached)
            assert len(context.store) == 1
        assert len(context.store) == 0

    def test_close_disposes(self, context):
        cached = _wrap(context, make_query(url_not_null()))
        list(cached)
        cached.close()
        assert len(context.store) == 0


class TestEvents:
    def test_miss_then_hit_notifications(self, context):
        seen: list[tuple[str, object]] = []
        context.events.subscribe_miss(lambda q: seen.append(("miss", q)))
        context.events.subscribe_hit(lambda q: seen.append(("hit", q)))
        first, second = make_query(url_not_null()), make_query(url_not_null())
        list(_wrap(context, first))
        assert seen == [("miss", first)]
        iter(_wrap(context, second))
        assert seen == [("miss", first), ("hit", second)]

    def test_listener_error_propagates(self, context):
        def boom(query):
            raise RuntimeError("listener failed")

        context.events.subscribe_miss(boom)
        with pytest.raises(RuntimeError, match="listener failed"):
            iter(_wrap(context, make_query(url_not_null())))


class TestUnsupportedShape:
    def test_fails_before_running_provider(self, context):
        query = make_query(Extension(kind=NodeKind.BLOCK, type=object))
        with pytest.raises(UnsupportedDescriptorShapeError):
            iter(_wrap(context, query))
        assert query.source.calls == 0
        assert context.stats.misses == 0
