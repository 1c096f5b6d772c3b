"""Structured logging via structlog with JSON output."""

from __future__ import annotations

import logging
from typing import TextIO

import structlog

from dqengine.config import get_settings


def setup_logging(stream: TextIO | None = None) -> None:
    """Configure structlog for JSON-based structured logging.

    Log lines go to stdout unless a stream is given; the CLI passes stderr so
    a report rendered to stdout stays machine-readable.
    """
    settings = get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if settings.environment != "development"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        # An explicit stream can be swapped out between invocations
        cache_logger_on_first_use=stream is None,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structured logger instance."""
    return structlog.get_logger(name)
