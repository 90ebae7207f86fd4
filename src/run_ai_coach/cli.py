"""CLI entry point for run-ai-coach."""

import asyncio
import json
from pathlib import Path

import typer

from run_ai_coach import __version__
from run_ai_coach.core.config import settings
from run_ai_coach.core.logging import configure_logging
from run_ai_coach.schemas.feedback import Feedback
from run_ai_coach.schemas.metrics import Aggregates, RawSample
from run_ai_coach.services.feedback import FeedbackGenerator, FeedbackManager
from run_ai_coach.services.generator import OpenAIFeedbackGenerator
from run_ai_coach.services.preprocessor import MetricsPreprocessor
from run_ai_coach.services.rules import build_default_rules

app = typer.Typer(
    name="run-ai-coach",
    help="Streaming metrics aggregation and feedback rules for running sessions",
    no_args_is_help=True,
)


async def dry_run_generator(
    current: Aggregates,
    raw_metrics: RawSample | None,
    history: list[Feedback],
) -> str:
    """Offline generator: describes the moment instead of calling a model."""
    return (
        f"{current.distance_meters:.0f} m, "
        f"pace {current.pace_minutes_per_km_30s_window_average:.2f} min/km, "
        f"HR {current.heart_rate_bpm_30s_window_average:.0f} bpm"
    )


async def replay_samples(
    lines: list[str],
    generator: FeedbackGenerator,
    poll_interval: float,
) -> tuple[Aggregates, list[Feedback]]:
    """Feed recorded samples through the engine, polling on the sample clock.

    Args:
        lines: JSON lines, one raw sample message each
        generator: Feedback text generator
        poll_interval: Seconds of sample time between two polls

    Returns:
        Final aggregates and the feedback history
    """
    preprocessor = MetricsPreprocessor()
    manager = FeedbackManager(
        rules=build_default_rules(
            is_workout_active=lambda: True,
            is_executing_feedback=lambda: False,
        ),
        generator=generator,
    )

    last_poll = None
    for line in lines:
        if not line.strip():
            continue
        sample = preprocessor.add_metrics(json.loads(line))

        if last_poll is not None and (sample.timestamp - last_poll).total_seconds() < poll_interval:
            continue
        last_poll = sample.timestamp

        task = manager.maybe_trigger_feedback(
            preprocessor.get_aggregates(), preprocessor.get_latest_metrics()
        )
        if task is not None:
            await task

    return preprocessor.get_aggregates(), manager.history


@app.command()
def replay(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines sample file"),
    poll_interval: float | None = typer.Option(
        None, help="Seconds of sample time between polls (overrides config)"
    ),
    use_openai: bool = typer.Option(False, "--openai", help="Generate text with OpenAI"),
) -> None:
    """Replay a recorded session and print triggered feedback and final aggregates.

    Example:
        run-ai-coach replay samples.jsonl
        run-ai-coach replay samples.jsonl --poll-interval 10 --openai
    """
    configure_logging()

    if use_openai and not settings.has_openai_credentials():
        typer.echo("Error: OPENAI_API_KEY must be set to use --openai", err=True)
        raise typer.Exit(1)

    if poll_interval is None:
        poll_interval = settings.feedback_poll_interval_seconds

    generator: FeedbackGenerator = OpenAIFeedbackGenerator() if use_openai else dry_run_generator
    aggregates, history = asyncio.run(
        replay_samples(path.read_text().splitlines(), generator, poll_interval)
    )

    for feedback in history:
        typer.echo(f"[{feedback.timestamp.isoformat()}] {feedback.rule_name}: {feedback.content}")
    typer.echo(aggregates.model_dump_json(indent=2))


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"run-ai-coach v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
