"""Engine services: preprocessing, feedback rules and session driving."""

from run_ai_coach.services.elevation import BarometricElevationEstimator
from run_ai_coach.services.feedback import FeedbackGenerator, FeedbackManager
from run_ai_coach.services.generator import OpenAIFeedbackGenerator
from run_ai_coach.services.preprocessor import MetricsPreprocessor
from run_ai_coach.services.session import CoachingSession

__all__ = [
    "BarometricElevationEstimator",
    "CoachingSession",
    "FeedbackGenerator",
    "FeedbackManager",
    "MetricsPreprocessor",
    "OpenAIFeedbackGenerator",
]
