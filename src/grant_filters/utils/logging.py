"""
Logging utilities for grant filters.

Structured logging with structlog on top of the standard library, rendered
for a console or as JSON lines. Store mutations log at info with
snake_case event names, conflicts at warning, evaluation at debug.

Example:
    >>> from grant_filters.utils import setup_logging, get_logger
    >>>
    >>> setup_logging(level="INFO", format="json")
    >>> logger = get_logger(__name__)
    >>> logger.info("saved_filter_created", filter_id=12, owner_id=1)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from ..config.settings import LoggingSettings
    from ..errors import FilterError

LOG_FORMATS = ("console", "json")


def _build_processors(
    format: str,
    include_timestamp: bool,
    include_location: bool,
) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_location:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )

    processors.extend(
        [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
        ]
    )

    if format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def setup_logging(
    level: str = "INFO",
    format: str = "console",
    *,
    include_timestamp: bool = True,
    include_location: bool = False,
) -> None:
    """Configure structured logging.

    Log lines go to stderr so command output on stdout stays clean.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("console" or "json")
        include_timestamp: Include UTC timestamps in output
        include_location: Include module/line info

    Raises:
        ValueError: If level or format is not recognized
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if format not in LOG_FORMATS:
        raise ValueError(f"Log format must be one of {', '.join(LOG_FORMATS)}, got {format!r}")

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)
    logging.getLogger().setLevel(numeric_level)

    structlog.configure(
        processors=_build_processors(format, include_timestamp, include_location),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: LoggingSettings, *, verbose: bool = False) -> None:
    """Configure logging from the [logging] settings section.

    Args:
        settings: Logging settings
        verbose: Force DEBUG regardless of the configured level
    """
    setup_logging(
        level="DEBUG" if verbose else settings.level,
        format=settings.format,
        include_timestamp=settings.include_timestamp,
        include_location=settings.include_location,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def error_fields(exc: FilterError) -> dict[str, Any]:
    """Flatten a FilterError into log event fields."""
    return {"kind": exc.kind, "error": exc.message, **exc.details}


def bind_context(**kwargs: Any) -> None:
    """Bind context variables (e.g. caller_id) for all subsequent log calls."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
