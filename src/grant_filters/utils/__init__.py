"""
Utility functions for grant filters.

Logging:
- setup_logging(): Configure structured logging with structlog
- get_logger(name): Get a logger instance
- configure_from_settings(): Apply the [logging] settings section

Dates:
- parse_date_value(value): Parse ISO dates and relative tokens
- today_utc(): Current calendar date (UTC)
"""

from grant_filters.utils.dates import parse_date_value, relative_token, today_utc, utcnow
from grant_filters.utils.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    error_fields,
    get_logger,
    setup_logging,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_from_settings",
    "error_fields",
    "get_logger",
    "parse_date_value",
    "relative_token",
    "setup_logging",
    "today_utc",
    "utcnow",
]
