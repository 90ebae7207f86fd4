"""Time-bounded sliding window accumulator.

A window keeps only the values recorded within ``interval`` seconds of its
newest value. Two windows of equal length can be chained: the "current" window
forwards every value it evicts to its ``previous`` window, which then covers
the span immediately before it. This yields two adjacent, non-overlapping
windows (e.g. "the last 60s" and "the 60s before that") without storing the
history twice, which is what rate-of-change metrics are built on.

Example:
    previous = RollingWindow(interval=60)
    current = RollingWindow(interval=60, previous=previous)
    current.add(150.0, at=timestamp)
    change = current.average() - previous.average()
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta


class RollingWindow:
    """Sliding window by wall-clock interval, not by sample count.

    Attributes:
        interval: Retention span in seconds
        previous: Window receiving evicted values, if chained. The current
            window only uses it; both are owned by the caller.
    """

    def __init__(
        self,
        interval: float,
        previous: RollingWindow | None = None,
        transform: Callable[[float], float] | None = None,
    ) -> None:
        """Initialize an empty window.

        Args:
            interval: Retention span in seconds
            previous: Window that receives every evicted (already transformed) value
            transform: Applied to each incoming value before it is stored
        """
        self.interval = interval
        self.previous = previous
        self._span = timedelta(seconds=interval)
        self._transform = transform
        self._entries: deque[tuple[datetime, float]] = deque()
        self._sum = 0.0

    def add(self, value: float, at: datetime) -> None:
        """Record ``value`` at timestamp ``at``.

        Entries at or before ``at - interval`` are evicted first, oldest first,
        so no query ever sees a stale entry.
        """
        cutoff = at - self._span
        while self._entries and self._entries[0][0] <= cutoff:
            evicted_at, evicted_value = self._entries.popleft()
            self._sum -= evicted_value
            if self.previous is not None:
                self.previous.add(evicted_value, at=evicted_at)

        if self._transform is not None:
            value = self._transform(value)

        self._entries.append((at, value))
        self._sum += value

    def average(self) -> float:
        if not self._entries:
            return 0.0
        return self._sum / len(self._entries)

    def sum(self) -> float:
        if not self._entries:
            return 0.0
        return self._sum

    def duration(self) -> float:
        """Seconds between the oldest and newest retained entries."""
        if len(self._entries) < 2:
            return 0.0
        return (self._entries[-1][0] - self._entries[0][0]).total_seconds()

    @property
    def count(self) -> int:
        return len(self._entries)

    def timestamps(self) -> list[datetime]:
        """Retained timestamps, oldest first."""
        return [timestamp for timestamp, _ in self._entries]
