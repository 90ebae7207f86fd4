"""Coaching session driver using APScheduler.

A CoachingSession is the explicitly constructed context of one workout. It
owns the metrics preprocessor, the feedback manager and the elevation
estimator, and polls the rule chain on a fixed cadence while the workout is
active.

Architecture:

    ┌──────────────────────────────────────────────────────────────┐
    │                      CoachingSession                          │
    │                                                               │
    │  ingest(message) ──> MetricsPreprocessor.add_metrics          │
    │  record_pressure ──> BarometricElevationEstimator             │
    │                                                               │
    │  ┌──────────────┐    ┌──────────────────────────────────────┐ │
    │  │ APScheduler  │ -> │ poll()                               │ │
    │  │ (interval)   │    │  get_aggregates + latest sample      │ │
    │  └──────────────┘    │  FeedbackManager.maybe_trigger       │ │
    │                      │  track in-flight generation          │ │
    │                      └──────────────────────────────────────┘ │
    └──────────────────────────────────────────────────────────────┘

Usage:
    session = CoachingSession(generator=OpenAIFeedbackGenerator())
    await session.start()
    session.ingest({"heartRate": 150, "timestamp": ..., "startedAt": ...})
    await session.stop()
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from run_ai_coach.core.config import Settings, settings
from run_ai_coach.schemas.feedback import Feedback
from run_ai_coach.schemas.metrics import RawSample
from run_ai_coach.services.elevation import BarometricElevationEstimator
from run_ai_coach.services.feedback import FeedbackGenerator, FeedbackManager
from run_ai_coach.services.preprocessor import MetricsPreprocessor
from run_ai_coach.services.rules import FeedbackRule, build_default_rules

if TYPE_CHECKING:
    from apscheduler.job import Job

logger = structlog.get_logger()


class CoachingSession:
    """State of one workout plus the polling loop that coaches it.

    Attributes:
        preprocessor: Accumulators for this session
        feedback_manager: Rule chain and feedback history
        elevation_estimator: Pressure to elevation conversion
        is_workout_active: Whether a workout is running
        scheduler: APScheduler instance driving ``poll``
    """

    def __init__(
        self,
        generator: FeedbackGenerator,
        config: Settings | None = None,
        rules: list[FeedbackRule] | None = None,
    ) -> None:
        """Initialize coaching session.

        Args:
            generator: Async feedback text generator
            config: Settings (defaults to global settings)
            rules: Custom rule chain (defaults to the canonical chain)
        """
        self.config = config or settings
        self.preprocessor = MetricsPreprocessor()
        self.elevation_estimator = BarometricElevationEstimator()
        self.feedback_manager = FeedbackManager(
            rules=rules
            if rules is not None
            else build_default_rules(
                is_workout_active=lambda: self.is_workout_active,
                is_executing_feedback=lambda: self.is_executing_feedback,
                config=self.config,
            ),
            generator=generator,
        )
        self.is_workout_active = False
        self.scheduler: AsyncIOScheduler | None = None
        self._poll_job: Job | None = None
        self._feedback_task: asyncio.Task[Feedback | None] | None = None
        self.logger = logger.bind(component="coaching_session")

    @property
    def is_executing_feedback(self) -> bool:
        """Whether a feedback generation is still in flight."""
        return self._feedback_task is not None and not self._feedback_task.done()

    @property
    def history(self) -> list[Feedback]:
        return self.feedback_manager.history

    async def start(self) -> None:
        """Start a workout: reset state and begin polling the rule chain."""
        if self.is_workout_active:
            self.logger.warning("Session already active")
            return

        self._reset()
        self.is_workout_active = True

        self.scheduler = AsyncIOScheduler()
        self._poll_job = self.scheduler.add_job(
            self.poll,
            trigger=IntervalTrigger(seconds=self.config.feedback_poll_interval_seconds),
            id="feedback_poll",
            name="Poll feedback rules",
            replace_existing=True,
            max_instances=1,
        )
        self.scheduler.start()

        self.logger.info(
            "Coaching session started",
            poll_interval_seconds=self.config.feedback_poll_interval_seconds,
        )

    async def stop(self) -> None:
        """End the workout: stop polling and discard all session state."""
        if not self.is_workout_active:
            return

        self.is_workout_active = False
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
            self._poll_job = None

        self._reset()
        self.logger.info("Coaching session stopped")

    def _reset(self) -> None:
        # Also cancels pending generations
        self.feedback_manager.clear()
        self.preprocessor.clear()
        self.elevation_estimator.reset()
        self._feedback_task = None

    def record_pressure(self, pressure_kpa: float) -> float:
        """Feed a barometer reading; returns the current elevation change."""
        return self.elevation_estimator.update(pressure_kpa)

    def ingest(self, message: RawSample | Mapping[str, Any]) -> RawSample:
        """Add one sample, tagged with the latest elevation estimate.

        Without any barometer reading this session, the sample's own elevation
        is kept.
        """
        elevation = (
            self.elevation_estimator.last_elevation
            if self.elevation_estimator.reference_pressure is not None
            else None
        )
        return self.preprocessor.add_metrics(message, elevation=elevation)

    async def poll(self) -> asyncio.Task[Feedback | None] | None:
        """Evaluate the rule chain once.

        Returns:
            The generation task if feedback was triggered, else None
        """
        task = self.feedback_manager.maybe_trigger_feedback(
            self.preprocessor.get_aggregates(),
            self.preprocessor.get_latest_metrics(),
        )
        if task is not None:
            self._feedback_task = task
        return task

    def get_status(self) -> dict[str, object]:
        """Session state for monitoring."""
        next_poll = None
        if self._poll_job is not None and self.scheduler is not None:
            next_run_time = self._poll_job.next_run_time
            if next_run_time:
                next_poll = next_run_time.isoformat()

        latest = self.preprocessor.get_latest_metrics()
        return {
            "is_workout_active": self.is_workout_active,
            "is_executing_feedback": self.is_executing_feedback,
            "feedback_count": len(self.feedback_manager.history),
            "last_sample_at": latest.timestamp.isoformat() if latest else None,
            "next_poll_at": next_poll,
        }
