"""Unbounded running mean/min/max accumulator."""

from collections.abc import Callable


class SessionTotal:
    """Accumulate every value of a session.

    Values pass through ``transform`` before accumulation. There is no removal:
    the total only grows until the session ends and the instance is replaced.
    """

    def __init__(self, transform: Callable[[float], float] | None = None) -> None:
        self._transform = transform
        self._sum = 0.0
        self._count = 0
        self._min = 0.0
        self._max = 0.0

    @property
    def count(self) -> int:
        return self._count

    def add(self, value: float) -> None:
        if self._transform is not None:
            value = self._transform(value)

        self._sum += value
        self._count += 1

        if self._count == 1:
            self._min = value
            self._max = value
        else:
            self._min = min(self._min, value)
            self._max = max(self._max, value)

    def average(self) -> float:
        if self._count == 0:
            return 0.0
        return self._sum / self._count

    def get_min(self) -> float:
        return self._min

    def get_max(self) -> float:
        return self._max
