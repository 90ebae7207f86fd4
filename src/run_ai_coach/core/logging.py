"""Structured logging configuration."""

import logging
import sys

import structlog

from run_ai_coach.core.config import settings


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_format: "json" or "console" (defaults to settings.log_format)
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
