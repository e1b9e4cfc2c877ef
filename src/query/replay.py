# src/query/replay.py — v2
"""Replay iterators: record a first pass over a provider, replay it later.

``ReplayIterator`` wraps exactly one provider iterator. Pulling an element
(``advance``) and recording it (``record``) are separate steps; ``__next__``
does both. Once the provider is drained the recorded elements become a
``ReplayBuffer`` that any number of independent cursors can walk.

State machine::

    FRESH --advance--> POSITIONED --record--> RECORDED --advance--> ...
      any --provider exhausted / close / provider error--> EXHAUSTED

A replay iterator is not thread-safe. Consumers sharing a live one share
its cursor. If the provider raised, every later pull raises the same
error, so no consumer mistakes the prefix for the whole result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from enum import Enum
from typing import Any, Generic, TypeVar

from querycache.core.errors import IteratorStateError, ResetUnsupportedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET: Any = object()


class ReplayState(str, Enum):
    FRESH = "fresh"
    POSITIONED = "positioned"
    RECORDED = "recorded"
    EXHAUSTED = "exhausted"


class ReplayBuffer(Sequence[T], Generic[T]):
    """Finalized, restartable record of a completed first pass."""

    __slots__ = ("_elements",)

    def __init__(self, elements: Iterable[T]) -> None:
        self._elements: tuple[T, ...] = tuple(elements)

    @property
    def elements(self) -> tuple[T, ...]:
        return self._elements

    def __iter__(self) -> ReplayBufferIterator[T]:
        return ReplayBufferIterator(self)

    def __len__(self) -> int:
        return len(self._elements)

    def __getitem__(self, index):  # type: ignore[override]
        return self._elements[index]

    def __repr__(self) -> str:
        return f"ReplayBuffer(len={len(self._elements)})"


class ReplayBufferIterator(Iterator[T], Generic[T]):
    """Independent cursor over a ``ReplayBuffer``. Never touches the provider."""

    def __init__(self, buffer: ReplayBuffer[T]) -> None:
        self._buffer = buffer
        self._position = 0
        self._closed = False

    @property
    def buffer(self) -> ReplayBuffer[T]:
        return self._buffer

    @property
    def position(self) -> int:
        return self._position

    def __iter__(self) -> ReplayBufferIterator[T]:
        return self

    def __next__(self) -> T:
        if self._closed or self._position >= len(self._buffer):
            raise StopIteration
        item = self._buffer[self._position]
        self._position += 1
        return item

    def reset(self) -> None:
        """Rewind to the first element."""
        self._position = 0
        self._closed = False

    def close(self) -> None:
        self._closed = True


class ReplayIterator(Iterator[T], Generic[T]):
    """Buffers the elements of one provider iterator as they are consumed."""

    def __init__(self, source: Iterator[T]) -> None:
        self._source = source
        self._buffer: list[T] = []
        self._current: Any = _UNSET
        self._state = ReplayState.FRESH
        self._completed = False
        self._truncated = False
        self._error: Exception | None = None
        self._replay_buffer: ReplayBuffer[T] | None = None

    # --- State ---

    @property
    def state(self) -> ReplayState:
        return self._state

    @property
    def exhausted(self) -> bool:
        return self._state is ReplayState.EXHAUSTED

    @property
    def completed(self) -> bool:
        """True once the provider signalled its natural end."""
        return self._completed

    @property
    def truncated(self) -> bool:
        """True if the pass ended early (close or provider error).

        A truncated buffer is only a prefix of the real result and must not
        be replayed as if it were complete.
        """
        return self._truncated

    @property
    def error(self) -> Exception | None:
        """The provider error that ended the pass, if any."""
        return self._error

    @property
    def buffered(self) -> tuple[T, ...]:
        return tuple(self._buffer)

    # --- Pull protocol ---

    def advance(self) -> bool:
        """Pull the next element from the provider.

        Returns:
            True if an element is now positioned, False once exhausted.

        Raises:
            Exception: The provider's own error, on the failing pull and
                on every pull after it.
        """
        if self._state is ReplayState.EXHAUSTED:
            if self._error is not None:
                raise self._error
            return False
        try:
            item = next(self._source)
        except StopIteration:
            self._finish(completed=True)
            return False
        except Exception as e:
            self._error = e
            self._finish(completed=False)
            raise
        except BaseException:
            self._finish(completed=False)
            raise
        self._current = item
        self._state = ReplayState.POSITIONED
        return True

    def peek(self) -> T:
        """Return the positioned element without recording it."""
        if self._state not in (ReplayState.POSITIONED, ReplayState.RECORDED):
            raise IteratorStateError(f"No current element in state {self._state.value}")
        return self._current

    def record(self) -> T:
        """Append the positioned element to the buffer (once) and return it."""
        item = self.peek()
        if self._state is ReplayState.POSITIONED:
            self._buffer.append(item)
            self._state = ReplayState.RECORDED
        return item

    def __iter__(self) -> ReplayIterator[T]:
        return self

    def __next__(self) -> T:
        if not self.advance():
            raise StopIteration
        return self.record()

    # --- Lifecycle ---

    def reset(self) -> None:
        """Clear the buffer and restart the provider iterator.

        Raises:
            ResetUnsupportedError: If the provider iterator has no ``reset``.
        """
        reset = getattr(self._source, "reset", None)
        if not callable(reset):
            raise ResetUnsupportedError(
                f"{type(self._source).__name__} cannot be restarted"
            )
        self._buffer.clear()
        self._current = _UNSET
        self._state = ReplayState.FRESH
        self._completed = False
        self._truncated = False
        self._error = None
        self._replay_buffer = None
        reset()

    def close(self) -> None:
        """Release the provider iterator and mark this pass exhausted.

        Closing before the provider's natural end flags the pass truncated.
        """
        if self._state is not ReplayState.EXHAUSTED:
            self._finish(completed=False)
        close = getattr(self._source, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> ReplayIterator[T]:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def replay(self) -> ReplayBufferIterator[T]:
        """Fresh independent cursor over the completed buffer."""
        if not self._completed or self._replay_buffer is None:
            raise IteratorStateError("Only a completed pass can be replayed")
        return iter(self._replay_buffer)

    def _finish(self, completed: bool) -> None:
        self._state = ReplayState.EXHAUSTED
        self._current = _UNSET
        self._completed = completed
        self._truncated = not completed
        if completed:
            self._replay_buffer = ReplayBuffer(self._buffer)
        else:
            logger.debug("Replay pass ended early after %d elements", len(self._buffer))

    def __repr__(self) -> str:
        return (
            f"ReplayIterator(state={self._state.value}, buffered={len(self._buffer)}, "
            f"truncated={self._truncated})"
        )
