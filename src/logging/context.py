# src/logging/context.py — v2
"""Contextual logging support: attach the query fingerprint and operation
to every record emitted while a cached query is being resolved.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

_query_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "query_key", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    query_key: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(query_key=_query_key.get(), operation=_operation.get())


@contextmanager
def query_context(query_key: str, operation: str) -> Iterator[LogContext]:
    """Bind query context for the duration of a block, restoring it after."""
    key_token = _query_key.set(query_key)
    op_token = _operation.set(operation)
    try:
        yield get_context()
    finally:
        _operation.reset(op_token)
        _query_key.reset(key_token)


def clear_context() -> None:
    """Reset all context variables."""
    _query_key.set(None)
    _operation.set(None)
