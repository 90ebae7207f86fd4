"""Metrics preprocessor: per-quantity accumulators and derived metrics.

Each incoming sample updates one set of accumulators per physical quantity:

    power        -> 30s window, session total
    pace         -> 30s window, 60s window (+ previous 60s), session total
    heart rate   -> 30s window, 60s window (+ previous 60s), session total
    steps        -> delta -> 30s / 60s windows (cadence, stride length)
    distance     -> delta -> 60s / 10s windows (stride length, grade)
    elevation    -> delta -> 3s window (+ previous 3s) -> session gain
                            -> 10s window (grade)
    session gain -> delta -> 30s window (recent gain)
    GAP          -> 60s window

Snapshots (``get_aggregates``) are recomputed from accumulator state on every
call and never cached.
"""

import threading
from collections.abc import Mapping
from typing import Any

import structlog

from run_ai_coach.accumulators import DeltaTracker, RollingWindow, SessionTotal
from run_ai_coach.schemas.metrics import Aggregates, RawSample
from run_ai_coach.services.derived_metrics import (
    cadence_spm,
    grade_adjusted_pace,
    grade_percentage,
    rate_of_change,
    session_duration,
    speed_to_pace_minutes_per_km,
    stride_length_meters,
)

logger = structlog.get_logger()


class MetricsPreprocessor:
    """Owns every accumulator of one workout session.

    All public methods hold a single lock, so sample ingestion and snapshot
    reads may come from different threads without torn reads.
    """

    def __init__(self) -> None:
        """Initialize preprocessor with empty accumulators."""
        self._lock = threading.Lock()
        self._last_point: RawSample | None = None
        self.logger = logger.bind(component="metrics_preprocessor")
        self._reset_accumulators()

    def _reset_accumulators(self) -> None:
        # Power
        self._power_30s = RollingWindow(interval=30)
        self._power_session = SessionTotal()

        # Pace (fed with speed, stored as min/km)
        self._pace_30s = RollingWindow(interval=30, transform=speed_to_pace_minutes_per_km)
        self._pace_60s_previous = RollingWindow(interval=60)
        self._pace_60s = RollingWindow(
            interval=60,
            previous=self._pace_60s_previous,
            transform=speed_to_pace_minutes_per_km,
        )
        self._pace_session = SessionTotal(transform=speed_to_pace_minutes_per_km)

        # Heart rate
        self._heart_rate_30s = RollingWindow(interval=30)
        self._heart_rate_60s_previous = RollingWindow(interval=60)
        self._heart_rate_60s = RollingWindow(interval=60, previous=self._heart_rate_60s_previous)
        self._heart_rate_session = SessionTotal()

        # Steps (cumulative counter -> per-tick increments)
        self._steps_30s_delta = DeltaTracker()
        self._steps_30s = RollingWindow(interval=30, transform=self._steps_30s_delta.delta)
        self._steps_60s_delta = DeltaTracker()
        self._steps_60s = RollingWindow(interval=60, transform=self._steps_60s_delta.delta)

        # Distance
        self._distance_60s_delta = DeltaTracker()
        self._distance_60s = RollingWindow(interval=60, transform=self._distance_60s_delta.delta)
        self._distance_10s_delta = DeltaTracker()
        self._distance_10s = RollingWindow(interval=10, transform=self._distance_10s_delta.delta)

        # Elevation
        self._elevation_3s_delta = DeltaTracker()
        self._elevation_3s_previous = RollingWindow(interval=3)
        self._elevation_3s = RollingWindow(
            interval=3,
            previous=self._elevation_3s_previous,
            transform=self._elevation_3s_delta.delta,
        )
        self._elevation_gain_session = 0.0
        self._elevation_gain_30s_delta = DeltaTracker()
        self._elevation_gain_30s = RollingWindow(
            interval=30, transform=self._elevation_gain_30s_delta.delta
        )
        self._elevation_10s_delta = DeltaTracker()
        self._elevation_10s = RollingWindow(interval=10, transform=self._elevation_10s_delta.delta)

        # Grade-adjusted pace
        self._gap_60s = RollingWindow(interval=60)

    def add_metrics(
        self,
        sample: RawSample | Mapping[str, Any],
        elevation: float | None = None,
    ) -> RawSample:
        """Feed one sample into every accumulator.

        Args:
            sample: Parsed sample, or a raw camelCase message to parse
            elevation: Elevation override from the elevation collaborator

        Returns:
            The sample as stored
        """
        if not isinstance(sample, RawSample):
            point = RawSample.from_message(sample, elevation=elevation)
        elif elevation is not None:
            point = sample.model_copy(update={"elevation": elevation})
        else:
            point = sample

        at = point.timestamp

        with self._lock:
            self._last_point = point

            self._power_30s.add(point.running_power, at=at)
            self._power_session.add(point.running_power)

            self._pace_30s.add(point.running_speed, at=at)
            self._pace_60s.add(point.running_speed, at=at)
            self._pace_session.add(point.running_speed)

            self._heart_rate_30s.add(point.heart_rate, at=at)
            self._heart_rate_60s.add(point.heart_rate, at=at)
            self._heart_rate_session.add(point.heart_rate)

            self._steps_30s.add(point.step_count, at=at)
            self._steps_60s.add(point.step_count, at=at)

            self._distance_60s.add(point.distance, at=at)

            # Only uphill movement of the smoothed elevation counts as gain
            self._elevation_3s.add(point.elevation, at=at)
            self._elevation_gain_session += max(
                0.0, self._elevation_3s.average() - self._elevation_3s_previous.average()
            )
            self._elevation_gain_30s.add(self._elevation_gain_session, at=at)

            self._elevation_10s.add(point.elevation, at=at)
            self._distance_10s.add(point.distance, at=at)
            grade = grade_percentage(self._elevation_10s.sum(), self._distance_10s.sum())
            pace = speed_to_pace_minutes_per_km(point.running_speed)
            self._gap_60s.add(grade_adjusted_pace(pace, grade), at=at)

        self.logger.debug(
            "Added metric point",
            timestamp=at.isoformat(),
            heart_rate=point.heart_rate,
            distance=point.distance,
        )
        return point

    def get_aggregates(self) -> Aggregates:
        """Compute a snapshot of every aggregate from current state."""
        with self._lock:
            point = self._last_point
            return Aggregates(
                session_duration=(
                    session_duration(point.timestamp, point.started_at) if point else 0.0
                ),
                power_watts_30s_window_average=self._power_30s.average(),
                session_power_watts_average=self._power_session.average(),
                pace_minutes_per_km_30s_window_average=self._pace_30s.average(),
                pace_minutes_per_km_60s_window_average=self._pace_60s.average(),
                pace_minutes_per_km_60s_window_rate_of_change=rate_of_change(
                    self._pace_60s, self._pace_60s_previous
                ),
                session_pace_minutes_per_km_average=self._pace_session.average(),
                heart_rate_bpm_30s_window_average=self._heart_rate_30s.average(),
                heart_rate_bpm_60s_window_average=self._heart_rate_60s.average(),
                heart_rate_bpm_60s_window_rate_of_change=rate_of_change(
                    self._heart_rate_60s, self._heart_rate_60s_previous
                ),
                session_heart_rate_bpm_average=self._heart_rate_session.average(),
                session_heart_rate_bpm_min=self._heart_rate_session.get_min(),
                session_heart_rate_bpm_max=self._heart_rate_session.get_max(),
                cadence_spm_30s_window=cadence_spm(
                    self._steps_30s.sum(), self._steps_30s.duration()
                ),
                cadence_spm_60s_window=cadence_spm(
                    self._steps_60s.sum(), self._steps_60s.duration()
                ),
                distance_meters=point.distance if point else 0.0,
                stride_length_meters=stride_length_meters(
                    self._distance_60s.sum(), self._steps_60s.sum()
                ),
                session_elevation_gain_meters=self._elevation_gain_session,
                elevation_gain_meters_30s_window=self._elevation_gain_30s.sum(),
                grade_percentage_10s_window=grade_percentage(
                    self._elevation_10s.sum(), self._distance_10s.sum()
                ),
                grade_adjusted_pace_60s_window=self._gap_60s.average(),
            )

    def get_latest_metrics(self) -> RawSample | None:
        with self._lock:
            return self._last_point

    def clear(self) -> None:
        """Discard all session state, as at session end."""
        with self._lock:
            self._last_point = None
            self._reset_accumulators()
        self.logger.info("Cleared session metrics")
