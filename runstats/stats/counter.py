"""Thread-safe accumulating counter."""

from __future__ import annotations

import threading


class Counter:
    """Keeps track of how many times an event occurred.

    Values are plain Python ints, so they never wrap. Callers are expected to
    only add non-negative amounts, but the type does not enforce it.
    """

    __slots__ = ("_lock", "_value")

    def __init__(self, value: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = value

    def increment(self, by: int = 1) -> int:
        """Add ``by`` and return the post-increment value."""

        with self._lock:
            self._value += by
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    def reset(self) -> None:
        self.set(0)

    def snapshot(self, reset: bool = False) -> int:
        """Return the current value, zeroing it in the same critical section if ``reset``."""

        with self._lock:
            value = self._value
            if reset:
                self._value = 0
            return value

    def __repr__(self) -> str:
        return f"Counter({self.value})"
