"""
Progress tracking.

ByteCounter is shared by every transfer of one file; increments are
serialized with a lock so concurrent part completions never lose updates.
"""
import threading
from typing import Optional

from .protocols import ProgressSink


class ByteCounter:
    """
    Monotonic byte counter forwarding every change to an optional sink.

    Example:
        >>> counter = ByteCounter(total=10)
        >>> counter.add(4)
        4
        >>> counter.set(3)  # never lowers the count
        4
    """

    def __init__(self, total: int, sink: Optional[ProgressSink] = None):
        self._total = total
        self._sink = sink
        self._value = 0
        self._lock = threading.Lock()
        if sink is not None:
            sink.set_total(total)

    @property
    def total(self) -> int:
        return self._total

    @property
    def value(self) -> int:
        return self._value

    def add(self, amount: int) -> int:
        """Increment by amount and return the new value."""
        if amount < 0:
            raise ValueError("Progress increments cannot be negative")
        with self._lock:
            self._value += amount
            value = self._value
            if self._sink is not None:
                self._sink.update(value)
        return value

    def set(self, value: int) -> int:
        """Raise the counter to value; lower values are ignored."""
        with self._lock:
            if value > self._value:
                self._value = value
                if self._sink is not None:
                    self._sink.update(value)
            return self._value

    def finish(self, message: str) -> None:
        if self._sink is not None:
            self._sink.finish(message)
