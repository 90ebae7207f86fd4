"""Pydantic schemas for raw sensor samples and aggregate snapshots."""

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_NUMERIC_FIELDS = (
    "heart_rate",
    "distance",
    "step_count",
    "active_energy",
    "elevation",
    "running_power",
    "running_speed",
)


def _from_unix_seconds(seconds: float) -> datetime:
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return EPOCH


class RawSample(BaseModel):
    """One sensor tick as delivered by the sample source.

    Every field is optional on the wire. Missing or malformed numbers become 0
    and missing timestamps become the Unix epoch, so a partial tick never halts
    a live session. Wire keys are camelCase (``heartRate``, ``startedAt``...),
    snake_case names are accepted as well.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    heart_rate: float = Field(default=0.0, description="Heart rate (BPM)")
    distance: float = Field(default=0.0, description="Cumulative distance (m)")
    step_count: float = Field(default=0.0, description="Cumulative step count")
    active_energy: float = Field(default=0.0, description="Cumulative active energy (kcal)")
    elevation: float = Field(
        default=0.0, description="Elevation change since session start (m)"
    )
    running_power: float = Field(default=0.0, description="Instantaneous running power (W)")
    running_speed: float = Field(default=0.0, description="Instantaneous running speed (m/s)")
    timestamp: datetime = Field(default=EPOCH, description="Sample time")
    started_at: datetime = Field(default=EPOCH, description="Session start time")

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _default_numeric(cls, value: Any) -> float:
        if value is None:
            return 0.0
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return number if math.isfinite(number) else 0.0

    @field_validator("timestamp", "started_at", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        if value is None:
            return EPOCH
        if isinstance(value, datetime):
            return value
        if isinstance(value, int | float):
            return _from_unix_seconds(value)
        if isinstance(value, str):
            try:
                return _from_unix_seconds(float(value))
            except ValueError:
                pass
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                return EPOCH
        return EPOCH

    @field_validator("timestamp", "started_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # Naive datetimes are treated as UTC so window arithmetic never mixes kinds
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_message(cls, data: Mapping[str, Any], elevation: float | None = None) -> "RawSample":
        """Build a sample from a transport message.

        Args:
            data: camelCase mapping received from the sample source
            elevation: Latest value from the elevation collaborator, if any

        Returns:
            Parsed, zero-defaulted sample
        """
        payload = dict(data)
        if elevation is not None:
            payload["elevation"] = elevation
        return cls.model_validate(payload)


class Aggregates(BaseModel):
    """Point-in-time snapshot of every aggregate and derived metric.

    All values default to 0, which is also the state after a session reset.
    """

    model_config = ConfigDict(frozen=True)

    session_duration: float = Field(default=0.0, description="Seconds since session start")
    power_watts_30s_window_average: float = Field(default=0.0, description="30s power (W)")
    session_power_watts_average: float = Field(default=0.0, description="Session power (W)")
    pace_minutes_per_km_30s_window_average: float = Field(
        default=0.0, description="30s pace (min/km)"
    )
    pace_minutes_per_km_60s_window_average: float = Field(
        default=0.0, description="60s pace (min/km)"
    )
    pace_minutes_per_km_60s_window_rate_of_change: float = Field(
        default=0.0, description="60s pace minus the preceding 60s pace"
    )
    session_pace_minutes_per_km_average: float = Field(
        default=0.0, description="Session pace (min/km)"
    )
    heart_rate_bpm_30s_window_average: float = Field(default=0.0, description="30s HR (BPM)")
    heart_rate_bpm_60s_window_average: float = Field(default=0.0, description="60s HR (BPM)")
    heart_rate_bpm_60s_window_rate_of_change: float = Field(
        default=0.0, description="60s HR minus the preceding 60s HR"
    )
    session_heart_rate_bpm_average: float = Field(default=0.0, description="Session HR (BPM)")
    session_heart_rate_bpm_min: float = Field(default=0.0, description="Session min HR (BPM)")
    session_heart_rate_bpm_max: float = Field(default=0.0, description="Session max HR (BPM)")
    cadence_spm_30s_window: float = Field(default=0.0, description="30s cadence (steps/min)")
    cadence_spm_60s_window: float = Field(default=0.0, description="60s cadence (steps/min)")
    distance_meters: float = Field(default=0.0, description="Latest cumulative distance (m)")
    stride_length_meters: float = Field(default=0.0, description="60s stride length (m/step)")
    session_elevation_gain_meters: float = Field(
        default=0.0, description="Session elevation gain (m)"
    )
    elevation_gain_meters_30s_window: float = Field(
        default=0.0, description="Elevation gained in the last 30s (m)"
    )
    grade_percentage_10s_window: float = Field(default=0.0, description="10s grade (%)")
    grade_adjusted_pace_60s_window: float = Field(
        default=0.0, description="60s grade-adjusted pace (min/km)"
    )
