"""Pydantic schemas shared by the engine and its collaborators."""

from run_ai_coach.schemas.feedback import Feedback, FeedbackDecision, GeneratedFeedback
from run_ai_coach.schemas.metrics import Aggregates, RawSample

__all__ = [
    "Aggregates",
    "Feedback",
    "FeedbackDecision",
    "GeneratedFeedback",
    "RawSample",
]
