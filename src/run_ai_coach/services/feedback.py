"""Feedback manager: runs the rule chain and records generated feedback."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime

import structlog

from run_ai_coach.schemas.feedback import Feedback, FeedbackDecision, GeneratedFeedback
from run_ai_coach.schemas.metrics import Aggregates, RawSample
from run_ai_coach.services.rules import FeedbackRule

logger = structlog.get_logger()

FeedbackGenerator = Callable[
    [Aggregates, RawSample | None, list[Feedback]],
    Awaitable[str | GeneratedFeedback],
]


class FeedbackManager:
    """Evaluate rules in priority order and generate feedback on trigger.

    Generation is fire-and-forget: ``maybe_trigger_feedback`` schedules an
    asyncio task and returns it immediately. When the task completes, a
    Feedback entry is appended to the history. A failing generator is logged
    and leaves the history untouched, so the same condition can fire again on
    the next poll.

    Callers are expected not to poll again while a generation is in flight
    (see WorkoutStateRule); the manager does not guard against it.
    """

    def __init__(self, rules: Sequence[FeedbackRule], generator: FeedbackGenerator) -> None:
        """Initialize feedback manager.

        Args:
            rules: Rule chain in priority order
            generator: Async callable producing feedback text
        """
        self.rules = list(rules)
        self.generator = generator
        self._history: list[Feedback] = []
        self._pending: set[asyncio.Task[Feedback | None]] = set()
        self.logger = logger.bind(component="feedback_manager")

    @property
    def history(self) -> list[Feedback]:
        """Feedback given this session, oldest first (copy)."""
        return list(self._history)

    def evaluate(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
    ) -> tuple[FeedbackRule | None, FeedbackDecision]:
        """Run the rule chain without side effects.

        Returns:
            The deciding rule and its verdict, or (None, NEXT) when every rule
            deferred
        """
        for rule in self.rules:
            decision = rule.should_trigger(current, raw_metrics, self._history)
            if decision is not FeedbackDecision.NEXT:
                return rule, decision
        return None, FeedbackDecision.NEXT

    def maybe_trigger_feedback(
        self,
        current: Aggregates,
        raw_metrics: RawSample | None,
    ) -> asyncio.Task[Feedback | None] | None:
        """Evaluate the rules and start a generation if one triggers.

        Must be called from a running event loop.

        Args:
            current: Latest aggregates snapshot
            raw_metrics: Latest raw sample, if any

        Returns:
            The generation task, or None when nothing triggered
        """
        rule, decision = self.evaluate(current, raw_metrics)
        if rule is None or decision is not FeedbackDecision.TRIGGER:
            return None

        timestamp = raw_metrics.timestamp if raw_metrics else datetime.now(UTC)
        self.logger.info("Feedback triggered", rule=rule.name, timestamp=timestamp.isoformat())

        task = asyncio.create_task(
            self._generate(rule.name, timestamp, current, raw_metrics, self.history)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _generate(
        self,
        rule_name: str,
        timestamp: datetime,
        current: Aggregates,
        raw_metrics: RawSample | None,
        history: list[Feedback],
    ) -> Feedback | None:
        try:
            result = await self.generator(current, raw_metrics, history)
            if isinstance(result, GeneratedFeedback):
                content, response_id = result.text, result.response_id
            else:
                content, response_id = result, None

            feedback = Feedback(
                timestamp=timestamp,
                content=content,
                rule_name=rule_name,
                response_id=response_id,
            )
        except Exception as e:
            self.logger.error("Failed to generate feedback", rule=rule_name, error=str(e))
            return None

        self._history.append(feedback)

        self.logger.info(
            "Feedback generated",
            rule=rule_name,
            response_id=response_id,
            history_size=len(self._history),
        )
        return feedback

    def clear(self) -> None:
        """Drop the history and cancel generations still in flight."""
        for task in self._pending:
            task.cancel()
        self._pending.clear()
        self._history.clear()
