"""
Structured logging configuration using structlog.

Two configurations share one processor chain:
- the API logs through the standard library to stdout (JSON in production)
- the command-line runner logs to stderr so stdout carries only the
  investigation JSON

Every investigation runs inside ``investigation_context``, which binds the
entity and analysis instant to all log lines of the pipeline stages.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, TextIO

import structlog
from structlog.types import EventDict, Processor

from leaktrace.config import get_settings


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def round_metrics(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Round float fields (rates, factors, scores) to 4 decimals."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, 4)
    return event_dict


def shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        round_metrics,
        add_severity,
    ]


def configure_logging() -> None:
    """
    Configure API logging.
    Uses JSON format in production, console format in development.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if settings.log_format == "json" and not settings.dev_mode:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_cli_logging(stream: TextIO = sys.stderr, level: int = logging.INFO) -> None:
    """Configure console logging for the command-line runner."""
    structlog.configure(
        processors=[*shared_processors(), structlog.dev.ConsoleRenderer(colors=False)],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


@contextmanager
def investigation_context(entity: str, analysis_instant: datetime) -> Iterator[None]:
    """Bind entity and analysis instant to every log line inside the block."""
    with structlog.contextvars.bound_contextvars(
        entity=entity, analysis_instant=analysis_instant.isoformat()
    ):
        yield


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
