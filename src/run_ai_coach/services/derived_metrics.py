"""Derived running metrics.

Every helper guards its divisor and returns 0 instead of NaN or infinity:
"no data yet" and "standing still" are both reported as a zero rate.
"""

from datetime import datetime

from run_ai_coach.accumulators import RollingWindow


def session_duration(timestamp: datetime, started_at: datetime) -> float:
    """Seconds elapsed between session start and a sample."""
    return (timestamp - started_at).total_seconds()


def speed_to_pace_minutes_per_km(speed: float) -> float:
    """Convert speed in m/s to pace in min/km (0 at rest)."""
    if speed <= 0:
        return 0.0
    return 1000 / speed / 60


def cadence_spm(step_count: float, duration: float) -> float:
    """Steps per minute over a window of ``duration`` seconds."""
    if duration <= 0:
        return 0.0
    return step_count * 60 / duration


def stride_length_meters(distance: float, step_count: float) -> float:
    """Average distance covered per step."""
    if step_count <= 0:
        return 0.0
    return distance / step_count


def grade_percentage(elevation_change: float, horizontal_distance: float) -> float:
    """Vertical over horizontal distance, as a percentage."""
    if horizontal_distance <= 0:
        return 0.0
    return (elevation_change / horizontal_distance) * 100.0


def grade_adjustment_factor(grade: float) -> float:
    """Empirical pace correction for terrain slope (grade in percent)."""
    if grade > 0:
        return 1.0 + (0.03 * grade) + (0.0005 * grade * grade)
    if grade < 0:
        return 1.0 + (0.02 * grade) + (0.0003 * grade * grade)
    return 1.0


def grade_adjusted_pace(pace: float, grade: float) -> float:
    return pace * grade_adjustment_factor(grade)


def rate_of_change(current: RollingWindow, previous: RollingWindow) -> float:
    """Difference between two adjacent windows' averages.

    Returns 0 until the previous window has received its first evicted value.
    """
    if previous.count == 0:
        return 0.0
    return current.average() - previous.average()
