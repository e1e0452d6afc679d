"""
Test factories for generating grant data.

This module provides factory classes for creating test data
with sensible defaults and optional overrides.

Example:
    >>> from tests.fixtures import GrantFactory, condition, expression
    >>>
    >>> # Create a single grant record
    >>> grant = GrantFactory.create(category="Education")
    >>>
    >>> # Create multiple grants
    >>> grants = GrantFactory.create_batch(10)
    >>>
    >>> # Build an expression from wire-format conditions
    >>> expr = expression(condition("status", "equals", "open"))
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from grant_filters.filter import FilterCondition, FilterExpression
from grant_filters.models import GrantRecord

# Fixed reference date for date-based tests
TODAY = date(2025, 3, 1)


class GrantFactory:
    """Factory for creating grant records.

    Records are plain dicts (GrantRecord.to_record()), the shape the
    filter engine evaluates.

    Attributes:
        _counter: Internal counter for unique IDs

    Example:
        >>> grant = GrantFactory.create(budget_min=150000)
        >>> assert grant["budget_min"] == 150000
        >>> assert grant["id"] > 0  # Auto-generated
    """

    _counter: int = 0

    @classmethod
    def reset(cls) -> None:
        """Reset the counter to 0."""
        cls._counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> dict[str, Any]:
        """Create a single grant record with optional field overrides.

        Args:
            **overrides: Field values to override defaults

        Returns:
            Grant record dictionary
        """
        cls._counter += 1

        defaults: dict[str, Any] = {
            "id": cls._counter,
            "title": f"Community Grant {cls._counter}",
            "status": "open",
            "category": "Infrastructure",
            "budget_min": 10000.0,
            "budget_max": 50000.0,
            "opening_date": TODAY - timedelta(days=14),
            "closing_date": TODAY + timedelta(days=45),
            "council_id": 1,
        }

        # Apply overrides
        defaults.update(overrides)

        return GrantRecord(**defaults).to_record()

    @classmethod
    def create_batch(cls, count: int, **overrides: Any) -> list[dict[str, Any]]:
        """Create multiple grant records.

        Args:
            count: Number of records to create
            **overrides: Field values to apply to all records

        Returns:
            List of grant record dictionaries
        """
        return [cls.create(**overrides) for _ in range(count)]

    @classmethod
    def create_closing_soon(cls, days: int = 10, **overrides: Any) -> dict[str, Any]:
        """Create an open grant closing a few days after TODAY."""
        defaults: dict[str, Any] = {"closing_date": TODAY + timedelta(days=days)}
        defaults.update(overrides)
        return cls.create(**defaults)

    @classmethod
    def create_awarded(cls, **overrides: Any) -> dict[str, Any]:
        """Create a grant that has been awarded."""
        defaults: dict[str, Any] = {
            "status": "awarded",
            "opening_date": TODAY - timedelta(days=120),
            "closing_date": TODAY - timedelta(days=60),
        }
        defaults.update(overrides)
        return cls.create(**defaults)


def condition(
    field: str,
    operator: str,
    value: str = "",
    logical_operator: str = "AND",
    condition_id: str | None = None,
) -> dict[str, str]:
    """Build one wire-format condition (id filled in by expression())."""
    return {
        "id": condition_id or "",
        "field": field,
        "operator": operator,
        "value": value,
        "logicalOperator": logical_operator,
    }


def expression(*conditions: dict[str, str]) -> FilterExpression:
    """Build an expression from wire-format conditions, numbering ids 1..N."""
    return FilterExpression(
        tuple(
            FilterCondition.from_dict({**cond, "id": cond["id"] or str(index)})
            for index, cond in enumerate(conditions, start=1)
        )
    )
