"""Real-time running coach: streaming metrics aggregation and feedback rules."""

__version__ = "0.1.0"
