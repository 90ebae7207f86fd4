"""Tests for CoachingSession and the barometric elevation estimator."""

import asyncio
import math
from unittest.mock import AsyncMock

import pytest

from run_ai_coach.core.config import Settings
from run_ai_coach.services.elevation import SCALE_HEIGHT, BarometricElevationEstimator
from run_ai_coach.services.session import CoachingSession


class TestBarometricElevationEstimator:
    """Tests for BarometricElevationEstimator."""

    def test_first_reading_is_reference(self) -> None:
        """Test the session starts at zero elevation change."""
        estimator = BarometricElevationEstimator()
        assert estimator.update(101.3) == 0.0
        assert estimator.reference_pressure == 101.3

    def test_lower_pressure_means_higher(self) -> None:
        """Test climbing lowers pressure and raises elevation."""
        estimator = BarometricElevationEstimator()
        estimator.update(101.3)
        elevation = estimator.update(101.0)
        assert elevation == pytest.approx(SCALE_HEIGHT * math.log(101.3 / 101.0))
        assert 20 < elevation < 30

    def test_invalid_reading_ignored(self) -> None:
        """Test non-positive pressure keeps the previous estimate."""
        estimator = BarometricElevationEstimator()
        estimator.update(101.3)
        previous = estimator.update(101.2)
        assert estimator.update(0.0) == previous

    def test_reset(self) -> None:
        """Test reset forgets the reference."""
        estimator = BarometricElevationEstimator()
        estimator.update(101.3)
        estimator.update(101.0)
        estimator.reset()
        assert estimator.last_elevation == 0.0
        assert estimator.update(100.0) == 0.0


class TestCoachingSession:
    """Tests for CoachingSession."""

    @pytest.fixture
    def config(self) -> Settings:
        return Settings(feedback_poll_interval_seconds=60, feedback_min_interval_seconds=30)

    @pytest.mark.asyncio
    async def test_inactive_session_never_triggers(self, config, make_sample) -> None:
        """Test the workout gate before start."""
        generator = AsyncMock(return_value="text")
        session = CoachingSession(generator, config=config)
        session.ingest(make_sample(600, distance=2000))

        assert await session.poll() is None
        generator.assert_not_called()

    @pytest.mark.asyncio
    async def test_initial_feedback_flow(self, config, make_sample) -> None:
        """Test start, ingest, poll and stop over a short session."""
        generator = AsyncMock(return_value="Welcome to your run!")
        session = CoachingSession(generator, config=config)
        await session.start()
        try:
            assert session.get_status()["next_poll_at"] is not None

            session.ingest(make_sample(10, heart_rate=140, distance=30))
            assert await session.poll() is None

            session.ingest(make_sample(31, heart_rate=145, distance=90))
            task = await session.poll()
            assert task is not None
            await task

            assert [f.rule_name for f in session.history] == ["InitialFeedbackRule"]
            assert session.get_status()["feedback_count"] == 1

            # Before the first kilometer nothing else fires
            session.ingest(make_sample(400, heart_rate=150, distance=900))
            assert await session.poll() is None
        finally:
            await session.stop()

        assert session.history == []
        assert session.preprocessor.get_latest_metrics() is None
        assert session.get_status()["is_workout_active"] is False

    @pytest.mark.asyncio
    async def test_in_flight_generation_blocks_polls(self, config, make_sample) -> None:
        """Test no second generation while one is pending."""
        release = asyncio.Event()

        async def generator(current, raw_metrics, history) -> str:
            await release.wait()
            return "done"

        session = CoachingSession(generator, config=config)
        await session.start()
        try:
            session.ingest(make_sample(31))
            task = await session.poll()
            assert task is not None
            assert session.is_executing_feedback

            session.ingest(make_sample(400, distance=1010))
            assert await session.poll() is None

            release.set()
            await task
            assert not session.is_executing_feedback
        finally:
            await session.stop()

    @pytest.mark.asyncio
    async def test_kilometer_feedback(self, config, make_sample) -> None:
        """Test a kilometer split fires once the first kilometer is done."""
        generator = AsyncMock(return_value="One kilometer down!")
        session = CoachingSession(generator, config=config)
        await session.start()
        try:
            session.ingest(make_sample(31))
            await (await session.poll())

            session.ingest(make_sample(330, distance=1020))
            task = await session.poll()
            await task
            assert session.history[-1].rule_name == "KilometerRule"

            # Same kilometer, past the trigger window
            session.ingest(make_sample(400, distance=1200))
            assert await session.poll() is None
        finally:
            await session.stop()

    @pytest.mark.asyncio
    async def test_pressure_feeds_elevation(self, config, make_sample) -> None:
        """Test barometer readings tag ingested samples."""
        session = CoachingSession(AsyncMock(return_value="text"), config=config)
        session.record_pressure(101.3)
        session.record_pressure(101.0)

        stored = session.ingest({"heartRate": 150, "elevation": 99})
        assert stored.elevation == pytest.approx(session.elevation_estimator.last_elevation)

    @pytest.mark.asyncio
    async def test_sample_elevation_kept_without_barometer(self, config) -> None:
        """Test the message elevation is used when no pressure was recorded."""
        session = CoachingSession(AsyncMock(return_value="text"), config=config)
        stored = session.ingest({"elevation": 4.5})
        assert stored.elevation == 4.5

    @pytest.mark.asyncio
    async def test_start_resets_previous_session(self, config, make_sample) -> None:
        """Test a new session starts from clean accumulators."""
        session = CoachingSession(AsyncMock(return_value="text"), config=config)
        session.ingest(make_sample(100, heart_rate=150))

        await session.start()
        try:
            assert session.preprocessor.get_latest_metrics() is None
        finally:
            await session.stop()
