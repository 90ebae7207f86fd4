"""First-difference tracker for cumulative counters."""


class DeltaTracker:
    """Turn a cumulative counter (steps, distance) into per-tick increments.

    The baseline starts at 0, so the first delta is the first value itself.
    """

    def __init__(self) -> None:
        self.previous_value = 0.0

    def delta(self, value: float) -> float:
        """Return the increase since the previous call and remember ``value``."""
        result = value - self.previous_value
        self.previous_value = value
        return result

    def reset(self) -> None:
        self.previous_value = 0.0
