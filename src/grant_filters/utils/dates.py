"""
Date helpers for filter values.

Date conditions carry their operand as a string. Two forms are accepted:

- ISO calendar dates: ``2025-03-01`` (a full ISO datetime is truncated
  to its date)
- Relative tokens: ``today``, ``today+30``, ``today-7`` (offset in days)

Relative tokens let preset filters such as "Closing This Month" stay
correct without being rewritten every day.

Example:
    >>> from datetime import date
    >>> from grant_filters.utils.dates import parse_date_value
    >>>
    >>> parse_date_value("today+30", today=date(2025, 1, 1))
    datetime.date(2025, 1, 31)
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta
from typing import Any

_RELATIVE_RE = re.compile(r"^today\s*(?:([+-])\s*(\d+))?$", re.IGNORECASE)


def today_utc() -> date:
    """Get the current calendar date in UTC."""
    return datetime.now(UTC).date()


def utcnow() -> datetime:
    """Get the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def parse_date_value(value: Any, *, today: date | None = None) -> date:
    """Parse a date operand or record value into a calendar date.

    Args:
        value: date, datetime, ISO string or relative token
        today: Reference date for relative tokens (defaults to UTC today)

    Returns:
        Calendar date

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Not a date: {value!r}")

    text = value.strip()
    match = _RELATIVE_RE.match(text)
    if match:
        base = today or today_utc()
        sign, amount = match.groups()
        if amount is None:
            return base
        offset = timedelta(days=int(amount))
        return base + offset if sign == "+" else base - offset

    try:
        return date.fromisoformat(text)
    except ValueError:
        # Full timestamps such as 2025-03-01T12:00:00Z
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def relative_token(days: int) -> str:
    """Build a relative date token for an offset in days.

    Example:
        >>> relative_token(-7)
        'today-7'
    """
    if days == 0:
        return "today"
    sign = "+" if days > 0 else "-"
    return f"today{sign}{abs(days)}"
