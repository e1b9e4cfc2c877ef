# src/tracking/events.py — v1
"""Synchronous hit/miss notifications.

Subscribers are plain callables receiving the originating query. They run
on the calling thread, in subscription order, before the cached query
hands its iterator back. Exceptions raised by a subscriber propagate.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Literal

Listener = Callable[[Any], None]
EventName = Literal["hit", "miss"]


class CacheEvents:
    """Subscriber registry for cache hit and miss events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {"hit": [], "miss": []}

    def subscribe(self, event: EventName, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``event``.

        Returns:
            A zero-argument callable that unsubscribes the listener.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown cache event: {event!r}")
        with self._lock:
            self._listeners[event].append(listener)
        return lambda: self.unsubscribe(event, listener)

    def subscribe_hit(self, listener: Listener) -> Callable[[], None]:
        return self.subscribe("hit", listener)

    def subscribe_miss(self, listener: Listener) -> Callable[[], None]:
        return self.subscribe("miss", listener)

    def unsubscribe(self, event: EventName, listener: Listener) -> bool:
        """Remove one registration of ``listener``. Returns True if found."""
        with self._lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)
                return True
        return False

    def listeners(self, event: EventName) -> list[Listener]:
        with self._lock:
            return list(self._listeners.get(event, []))

    def emit(self, event: EventName, query: Any) -> None:
        """Invoke every listener of ``event`` with ``query``."""
        for listener in self.listeners(event):
            listener(query)

    def clear(self) -> None:
        with self._lock:
            for listeners in self._listeners.values():
                listeners.clear()
