"""Pydantic schemas for feedback decisions and history records."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FeedbackDecision(str, Enum):
    """Verdict a feedback rule returns to the chain evaluator."""

    TRIGGER = "trigger"  # Produce feedback now
    SKIP = "skip"  # Produce nothing this poll
    NEXT = "next"  # Let the next rule decide


class GeneratedFeedback(BaseModel):
    """Text returned by a feedback generator, with an optional chaining id."""

    text: str = Field(description="Feedback text to speak to the runner")
    response_id: str | None = Field(
        default=None, description="Upstream id used to chain the next generation"
    )


class Feedback(BaseModel):
    """One entry of the per-session feedback history."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(description="When the feedback was triggered")
    content: str = Field(description="Generated feedback text")
    rule_name: str = Field(description="Name of the rule that triggered it")
    response_id: str | None = Field(
        default=None, description="Upstream generator id for conversation chaining"
    )
