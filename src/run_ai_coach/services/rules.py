"""Feedback rules evaluated by the FeedbackManager.

Rules run in priority order on every poll. Each returns a FeedbackDecision:

    TRIGGER  stop evaluating and generate feedback
    SKIP     stop evaluating, no feedback this poll
    NEXT     defer to the next rule

Default chain (see ``build_default_rules``):

    WorkoutStateRule      gate: inactive workout or feedback in flight
    MinimumIntervalRule   gate: last feedback too recent
    InitialFeedbackRule   first feedback after 30s
    FirstKilometerRule    gate: nothing else before 1 km
    KilometerRule         first 50 m of every kilometer
    PaceChangeRule        60s pace rate of change
    HeartRateChangeRule   60s heart rate rate of change
    ElevationChangeRule   10s grade
    MaxTimeRule           no feedback for 5 minutes
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from run_ai_coach.core.config import Settings, settings
from run_ai_coach.schemas.feedback import Feedback, FeedbackDecision
from run_ai_coach.schemas.metrics import Aggregates, RawSample


class FeedbackRule(ABC):
    """Base class for a single step of the rule chain."""

    @property
    def name(self) -> str:
        """Identifier recorded on feedback this rule triggers."""
        return type(self).__name__

    @abstractmethod
    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        """Decide what happens on this poll.

        Args:
            current: Latest aggregates snapshot
            raw_metrics: Latest raw sample, if any
            history: Feedback given so far this session, oldest first

        Returns:
            TRIGGER, SKIP or NEXT
        """


class WorkoutStateRule(FeedbackRule):
    """Skip while the workout is inactive or a generation is still running.

    Both flags belong to the session driver and are read through callables.
    """

    def __init__(
        self,
        is_workout_active: Callable[[], bool],
        is_executing_feedback: Callable[[], bool],
    ) -> None:
        self.is_workout_active = is_workout_active
        self.is_executing_feedback = is_executing_feedback

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if not self.is_workout_active():
            return FeedbackDecision.SKIP
        if self.is_executing_feedback():
            return FeedbackDecision.SKIP
        return FeedbackDecision.NEXT


class MinimumIntervalRule(FeedbackRule):
    """Skip when the last feedback is more recent than ``min_interval`` seconds."""

    def __init__(self, min_interval: float = 30.0) -> None:
        self.min_interval = min_interval

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if not history or raw_metrics is None:
            return FeedbackDecision.NEXT

        elapsed = (raw_metrics.timestamp - history[-1].timestamp).total_seconds()
        if elapsed < self.min_interval:
            return FeedbackDecision.SKIP
        return FeedbackDecision.NEXT


class InitialFeedbackRule(FeedbackRule):
    """Trigger the first feedback of the session once it has run long enough."""

    def __init__(self, minimum_duration: float = 30.0) -> None:
        self.minimum_duration = minimum_duration

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if current.session_duration > self.minimum_duration and not history:
            return FeedbackDecision.TRIGGER
        return FeedbackDecision.NEXT


class FirstKilometerRule(FeedbackRule):
    """Block every later rule until the first kilometer is done."""

    def __init__(self, distance: float = 1000.0) -> None:
        self.distance = distance

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if raw_metrics is None or raw_metrics.distance < self.distance:
            return FeedbackDecision.SKIP
        return FeedbackDecision.NEXT


class KilometerRule(FeedbackRule):
    """Trigger within the first meters of every completed kilometer."""

    def __init__(self, trigger_window: float = 50.0) -> None:
        self.trigger_window = trigger_window

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if raw_metrics is None:
            return FeedbackDecision.SKIP

        total_meters = raw_metrics.distance
        meters_into_kilometer = total_meters - math.floor(total_meters / 1000) * 1000
        if meters_into_kilometer <= self.trigger_window:
            return FeedbackDecision.TRIGGER
        return FeedbackDecision.NEXT


class PaceChangeRule(FeedbackRule):
    """Trigger on a significant 60s pace change (min/km)."""

    def __init__(self, threshold: float = 0.5) -> None:
        self.threshold = threshold

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if abs(current.pace_minutes_per_km_60s_window_rate_of_change) > self.threshold:
            return FeedbackDecision.TRIGGER
        return FeedbackDecision.NEXT


class HeartRateChangeRule(FeedbackRule):
    """Trigger on a significant 60s heart rate change (BPM)."""

    def __init__(self, threshold: float = 5.0) -> None:
        self.threshold = threshold

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if abs(current.heart_rate_bpm_60s_window_rate_of_change) > self.threshold:
            return FeedbackDecision.TRIGGER
        return FeedbackDecision.NEXT


class ElevationChangeRule(FeedbackRule):
    """Trigger on a steep 10s grade, uphill or downhill (percent)."""

    def __init__(self, threshold: float = 5.0) -> None:
        self.threshold = threshold

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if abs(current.grade_percentage_10s_window) > self.threshold:
            return FeedbackDecision.TRIGGER
        return FeedbackDecision.NEXT


class MaxTimeRule(FeedbackRule):
    """Trigger when the runner has heard nothing for ``max_interval`` seconds.

    Silence is measured on the sample clock, from the last feedback or, before
    any feedback, from the session start.
    """

    def __init__(self, max_interval: float = 5 * 60) -> None:
        self.max_interval = max_interval

    def should_trigger(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: Sequence[Feedback],
    ) -> FeedbackDecision:
        if raw_metrics is None:
            return FeedbackDecision.NEXT

        reference_time = history[-1].timestamp if history else raw_metrics.started_at
        elapsed = (raw_metrics.timestamp - reference_time).total_seconds()
        if elapsed > self.max_interval:
            return FeedbackDecision.TRIGGER
        return FeedbackDecision.NEXT


def build_default_rules(
    is_workout_active: Callable[[], bool],
    is_executing_feedback: Callable[[], bool],
    config: Settings | None = None,
) -> list[FeedbackRule]:
    """Build the canonical rule chain in priority order.

    Args:
        is_workout_active: Reports whether a workout is running
        is_executing_feedback: Reports whether a generation is in flight
        config: Threshold source (defaults to global settings)

    Returns:
        Ordered list of rules
    """
    config = config or settings

    rules: list[FeedbackRule] = [WorkoutStateRule(is_workout_active, is_executing_feedback)]
    if config.feedback_min_interval_seconds > 0:
        rules.append(MinimumIntervalRule(config.feedback_min_interval_seconds))
    rules.extend(
        [
            InitialFeedbackRule(config.initial_feedback_delay_seconds),
            FirstKilometerRule(),
            KilometerRule(config.kilometer_trigger_window_meters),
            PaceChangeRule(config.pace_change_threshold),
            HeartRateChangeRule(config.heart_rate_change_threshold),
            ElevationChangeRule(config.grade_threshold),
            MaxTimeRule(config.max_feedback_interval_seconds),
        ]
    )
    return rules
