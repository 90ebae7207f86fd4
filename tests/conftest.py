"""Shared test fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from run_ai_coach.schemas.metrics import RawSample


@pytest.fixture
def started_at() -> datetime:
    """Session start time."""
    return datetime(2025, 5, 14, 7, 0, 0, tzinfo=UTC)


@pytest.fixture
def make_sample(started_at: datetime) -> Callable[..., RawSample]:
    """Build a sample ``offset`` seconds into the session."""

    def _make(offset: float, **fields: float) -> RawSample:
        return RawSample(
            timestamp=started_at + timedelta(seconds=offset),
            started_at=started_at,
            **fields,
        )

    return _make
