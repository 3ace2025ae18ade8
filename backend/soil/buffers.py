"""
buffers.py — Bounded Reading History and Alert Log
===================================================

Two count-bounded containers owned by the engine:

    ReadingHistory — chronological, oldest evicted first (FIFO sliding
                     window feeding the trend chart).
    AlertLog       — newest first, oldest evicted once full; cleared
                     wholesale by the operator.

Only the engine mutates them, from inside a tick. Consumers read
``snapshot()`` copies.
"""

import logging
from collections import deque
from typing import Generic, TypeVar

from . import config
from .errors import ConfigError

logger = logging.getLogger("soil.buffers")

T = TypeVar("T")


class _BoundedBuffer(Generic[T]):

    def __init__(self, capacity: int):
        if capacity is None or int(capacity) < 1:
            raise ConfigError(f"Buffer capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self._items: deque[T] = deque(maxlen=self.capacity)

    def snapshot(self) -> list[T]:
        """Copy of the buffered items in display order."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        self._items.clear()


class ReadingHistory(_BoundedBuffer[T]):
    """
    FIFO window of the most recent readings.

    Attributes:
        capacity (int): Maximum number of readings kept.
    """

    def __init__(self, capacity: int = None):
        """
        Args:
            capacity: Defaults to config.HISTORY_CAPACITY (25).
        """
        super().__init__(capacity if capacity is not None else config.HISTORY_CAPACITY)

    def append(self, reading: T) -> None:
        """Add a reading at the end, evicting the oldest when full."""
        self._items.append(reading)
        logger.debug(f"History size: {len(self._items)}/{self.capacity}")


class AlertLog(_BoundedBuffer[T]):
    """Newest-first list of the most recent alerts."""

    def __init__(self, capacity: int = None):
        super().__init__(capacity if capacity is not None else config.ALERT_CAPACITY)

    def push(self, alert: T) -> None:
        """Insert an alert at the front, dropping the oldest when full."""
        self._items.appendleft(alert)

    def clear(self) -> None:
        """Drop every alert (operator action)."""
        dropped = len(self._items)
        self._items.clear()
        logger.info(f"Cleared {dropped} alerts")
