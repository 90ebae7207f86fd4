"""Streaming statistics primitives."""

from run_ai_coach.accumulators.delta import DeltaTracker
from run_ai_coach.accumulators.rolling_window import RollingWindow
from run_ai_coach.accumulators.session_total import SessionTotal

__all__ = [
    "DeltaTracker",
    "RollingWindow",
    "SessionTotal",
]
