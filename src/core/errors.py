# src/core/errors.py — v1
"""Error taxonomy shared by the descriptor, cache and query layers.

Provider failures are never wrapped: anything raised while pulling elements
from the underlying query reaches the caller unchanged.
"""

from __future__ import annotations


class QueryCacheError(Exception):
    """Base class for all errors raised by querycache itself."""


class InvalidArgumentError(QueryCacheError, ValueError):
    """Raised eagerly for caller bugs (missing descriptor, negative TTL)."""


class NotConfiguredError(QueryCacheError, RuntimeError):
    """Raised when no usable cache store can be resolved for a query."""


class UnsupportedDescriptorShapeError(QueryCacheError, TypeError):
    """Raised when the fingerprinter meets a node or binding it cannot handle.

    Fatal: the canonicalizer must be extended. Never downgraded to a miss.
    """

    def __init__(self, shape: object) -> None:
        self.shape = shape
        super().__init__(f"Unsupported descriptor shape: {shape!r}")


class ResetUnsupportedError(QueryCacheError, RuntimeError):
    """Raised when the provider's iterator cannot be restarted."""


class IteratorStateError(QueryCacheError, RuntimeError):
    """Raised when a replay iterator is used outside its valid states."""
