"""Thread-safe progress fraction shared by batch workers."""

import threading
from typing import Callable, List

ProgressListener = Callable[[float], None]


class ProgressState:
    """
    A single progress fraction in ``[0.0, 1.0]`` mutated by many workers.

    ``advance`` is an atomic add-and-fetch. Listeners run while the lock is
    held, so every listener sees a non-decreasing sequence of values.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0
        self._completed = 0
        self._listeners: List[ProgressListener] = []

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    @property
    def completed(self) -> int:
        """Number of ``advance`` calls since the last reset."""
        with self._lock:
            return self._completed

    def subscribe(self, listener: ProgressListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ProgressListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def advance(self, step: float) -> float:
        """Add ``step`` and return the new value, capped at 1.0."""
        if step < 0:
            raise ValueError(f"Progress step must not be negative, got {step}")
        with self._lock:
            self._value = min(1.0, self._value + step)
            self._completed += 1
            self._notify()
            return self._value

    def complete(self) -> None:
        """Force exactly 1.0, masking float accumulation drift."""
        with self._lock:
            self._value = 1.0
            self._notify()

    def reset(self) -> None:
        with self._lock:
            self._value = 0.0
            self._completed = 0

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self._value)
