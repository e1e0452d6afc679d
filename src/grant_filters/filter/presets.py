"""
Preset Filter Definitions.

System-provided filters every user sees. Date bounds use relative tokens
(``today+30``) so presets stay current without being rewritten.

Example:
    >>> from grant_filters.filter import presets
    >>>
    >>> preset = presets.closing_this_month()
    >>> preset.name
    'Closing This Month'
    >>> store.seed_presets()  # inserts every preset from all_presets()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..utils.dates import relative_token
from .conditions import FilterCondition, FilterExpression, LogicalOperator


@dataclass(frozen=True)
class PresetDefinition:
    """Name, description and expression of a preset filter."""

    name: str
    description: str
    expression: FilterExpression


def _condition(
    condition_id: int,
    field: str,
    operator: str,
    value: str,
    logical_operator: LogicalOperator = LogicalOperator.AND,
) -> FilterCondition:
    return FilterCondition(str(condition_id), field, operator, value, logical_operator)


def open_grants() -> PresetDefinition:
    """All grants currently accepting applications."""
    return PresetDefinition(
        name="Open Grants",
        description="All grants currently open for applications",
        expression=FilterExpression.of(_condition(1, "status", "equals", "open")),
    )


def closing_this_month(days: int = 30) -> PresetDefinition:
    """Open grants whose closing date falls within the next N days."""
    return PresetDefinition(
        name="Closing This Month",
        description=f"Open grants closing within {days} days",
        expression=FilterExpression.of(
            _condition(1, "status", "equals", "open"),
            _condition(2, "closing_date", "between", f"today,{relative_token(days)}"),
        ),
    )


def recently_opened(days: int = 7) -> PresetDefinition:
    """Open grants that opened within the last N days."""
    return PresetDefinition(
        name="Recently Opened",
        description=f"Grants opened in the last {days} days",
        expression=FilterExpression.of(
            _condition(1, "status", "equals", "open"),
            _condition(2, "opening_date", "between", f"{relative_token(-days)},today"),
        ),
    )


def high_budget(min_budget: int = 100000) -> PresetDefinition:
    """Open grants with a minimum budget above a threshold."""
    return PresetDefinition(
        name="High Budget",
        description=f"Open grants with budgets over {min_budget:,}",
        expression=FilterExpression.of(
            _condition(1, "status", "equals", "open"),
            _condition(2, "budget_min", "greater_than", str(min_budget)),
        ),
    )


def awarded_and_completed() -> PresetDefinition:
    """Grants that have been awarded or completed."""
    return PresetDefinition(
        name="Awarded & Completed",
        description="Grants that have been awarded or completed",
        expression=FilterExpression.of(_condition(1, "status", "in", "awarded,completed")),
    )


PRESETS: dict[str, Callable[[], PresetDefinition]] = {
    "open_grants": open_grants,
    "closing_this_month": closing_this_month,
    "recently_opened": recently_opened,
    "high_budget": high_budget,
    "awarded_and_completed": awarded_and_completed,
}


def registry() -> dict[str, Callable[[], PresetDefinition]]:
    """Get the preset factories by key."""
    return dict(PRESETS)


def all_presets() -> list[PresetDefinition]:
    """Build every preset definition, in display order."""
    return [factory() for factory in PRESETS.values()]
