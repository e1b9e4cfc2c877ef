# src/__init__.py — v1
"""querycache: transparent result cache for deferred query pipelines."""

from querycache.api.context import (
    QueryCacheContext,
    get_default_context,
    reset_default_context,
    set_default_context,
)
from querycache.api.facade import cacheable, dispose
from querycache.cache.fingerprint import (
    QueryFingerprint,
    compute_fingerprint,
    structurally_equal,
)
from querycache.core.errors import (
    InvalidArgumentError,
    IteratorStateError,
    NotConfiguredError,
    QueryCacheError,
    ResetUnsupportedError,
    UnsupportedDescriptorShapeError,
)
from querycache.query.base_query import BaseQuery
from querycache.query.cached_query import CachedQuery
from querycache.query.callable_query import CallableQuery
from querycache.version import __version__

__all__ = [
    "BaseQuery",
    "CachedQuery",
    "CallableQuery",
    "InvalidArgumentError",
    "IteratorStateError",
    "NotConfiguredError",
    "QueryCacheContext",
    "QueryCacheError",
    "QueryFingerprint",
    "ResetUnsupportedError",
    "UnsupportedDescriptorShapeError",
    "__version__",
    "cacheable",
    "compute_fingerprint",
    "dispose",
    "get_default_context",
    "reset_default_context",
    "set_default_context",
    "structurally_equal",
]
