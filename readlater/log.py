"""Structured logging configuration with structlog."""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

import structlog


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    *,
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure structured logging for the collector.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: ``production`` renders JSON lines, anything else renders
            human-friendly console output.
        stream: Where log lines go (stdout by default; the CLI uses stderr
            so command output stays pipeable).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    stream = stream or sys.stdout

    logging.basicConfig(format="%(message)s", stream=stream, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if environment.lower() == "production"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, typically bound to ``__name__``."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
