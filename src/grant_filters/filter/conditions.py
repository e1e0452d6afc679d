"""
Condition and expression model.

A FilterCondition is one field/operator/value comparison plus the logical
connective that joins it to the conditions before it. A FilterExpression is
a non-empty, ordered chain of conditions. Both are immutable; the editing
operations below return new expressions.

Example:
    >>> from grant_filters.filter import conditions, default_registry
    >>>
    >>> registry = default_registry()
    >>> expr = conditions.create_expression(registry)
    >>> expr = conditions.update_condition(expr, "1", {"value": "open"}, registry)
    >>> expr = conditions.append_condition(expr, registry)
    >>> expr = conditions.update_condition(
    ...     expr, "2", {"field": "category", "value": "Education"}, registry
    ... )
    >>> expr.to_list()[1]["field"]
    'category'
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from ..errors import InvalidOperationError, ValidationError
from .registry import FieldRegistry


class LogicalOperator(str, Enum):
    """Connective joining a condition to the result so far."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, value: Any) -> LogicalOperator:
        if isinstance(value, LogicalOperator):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError(f"Logical operator must be AND or OR, got {value!r}") from None


@dataclass(frozen=True)
class FilterCondition:
    """A single filter condition."""

    id: str
    field: str
    operator: str
    value: str = ""
    logical_operator: LogicalOperator = LogicalOperator.AND

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Condition id must not be empty")
        if not isinstance(self.value, str):
            raise ValidationError(
                f"Condition value must be a string, got {type(self.value).__name__}"
            )
        object.__setattr__(self, "logical_operator", LogicalOperator.parse(self.logical_operator))

    @property
    def is_empty(self) -> bool:
        """True when the value places no constraint on the record."""
        return self.value == ""

    def to_dict(self) -> dict[str, str]:
        """Serialize using the dashboard wire format."""
        return {
            "id": self.id,
            "field": self.field,
            "operator": self.operator,
            "value": self.value,
            "logicalOperator": self.logical_operator.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterCondition:
        """Deserialize from the wire format."""
        try:
            condition_id = data["id"]
            field = data["field"]
            operator = data["operator"]
        except KeyError as exc:
            raise ValidationError(f"Condition is missing {exc.args[0]!r}") from None

        logical = data.get("logicalOperator", data.get("logical_operator", LogicalOperator.AND))
        return cls(
            id=str(condition_id),
            field=field,
            operator=operator,
            value=data.get("value", ""),
            logical_operator=logical,
        )


@dataclass(frozen=True)
class FilterExpression:
    """Ordered, non-empty chain of conditions evaluated left to right."""

    conditions: tuple[FilterCondition, ...]

    def __post_init__(self) -> None:
        conditions = tuple(self.conditions)
        if not conditions:
            raise ValidationError("A filter expression needs at least one condition")

        ids = [c.id for c in conditions]
        if len(set(ids)) != len(ids):
            raise ValidationError(f"Duplicate condition ids: {ids}")

        object.__setattr__(self, "conditions", conditions)

    def __len__(self) -> int:
        return len(self.conditions)

    def __iter__(self) -> Iterator[FilterCondition]:
        return iter(self.conditions)

    def __getitem__(self, index: int) -> FilterCondition:
        return self.conditions[index]

    @property
    def ids(self) -> list[str]:
        return [c.id for c in self.conditions]

    def get(self, condition_id: str) -> FilterCondition:
        """Get a condition by id.

        Raises:
            ValidationError: If no condition has that id
        """
        for condition in self.conditions:
            if condition.id == condition_id:
                return condition
        raise ValidationError(f"No condition with id {condition_id!r}")

    def validate(self, registry: FieldRegistry) -> FilterExpression:
        """Check every condition against the registry (fluent)."""
        for condition in self.conditions:
            registry.validate_condition(condition)
        return self

    def to_list(self) -> list[dict[str, str]]:
        return [c.to_dict() for c in self.conditions]

    def to_json(self) -> str:
        return json.dumps(self.to_list())

    @classmethod
    def from_list(cls, data: Iterable[Mapping[str, Any]]) -> FilterExpression:
        if isinstance(data, (str, bytes)) or not isinstance(data, Iterable):
            raise ValidationError("Filter expression must be a list of conditions")
        return cls(tuple(FilterCondition.from_dict(item) for item in data))

    @classmethod
    def from_json(cls, text: str) -> FilterExpression:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Filter expression is not valid JSON: {exc}") from None
        return cls.from_list(data)

    @classmethod
    def of(cls, *conditions: FilterCondition) -> FilterExpression:
        return cls(tuple(conditions))


PATCH_KEYS = frozenset({"field", "operator", "value", "logical_operator"})


def _next_id(expr: FilterExpression) -> str:
    numeric = [int(i) for i in expr.ids if i.isdigit()]
    candidate = max(numeric, default=0) + 1
    while str(candidate) in expr.ids:
        candidate += 1
    return str(candidate)


def _default_condition(
    registry: FieldRegistry,
    condition_id: str,
    logical_operator: LogicalOperator = LogicalOperator.AND,
) -> FilterCondition:
    descriptor = registry.first()
    return FilterCondition(
        id=condition_id,
        field=descriptor.key,
        operator=descriptor.default_operator,
        value="",
        logical_operator=logical_operator,
    )


def create_expression(registry: FieldRegistry) -> FilterExpression:
    """Create an expression holding one default, unconstrained condition."""
    return FilterExpression.of(_default_condition(registry, "1"))


def append_condition(
    expr: FilterExpression,
    registry: FieldRegistry,
    logical_operator: LogicalOperator | str = LogicalOperator.AND,
) -> FilterExpression:
    """Return expr with one more default condition at the end."""
    condition = _default_condition(
        registry, _next_id(expr), LogicalOperator.parse(logical_operator)
    )
    return FilterExpression((*expr.conditions, condition))


def remove_condition(expr: FilterExpression, condition_id: str) -> FilterExpression:
    """Return expr without the named condition.

    Raises:
        InvalidOperationError: If expr has a single condition
        ValidationError: If no condition has that id
    """
    if len(expr) == 1:
        raise InvalidOperationError("Cannot remove the last condition of a filter expression")

    expr.get(condition_id)
    return FilterExpression(tuple(c for c in expr.conditions if c.id != condition_id))


def update_condition(
    expr: FilterExpression,
    condition_id: str,
    patch: Mapping[str, Any],
    registry: FieldRegistry,
) -> FilterExpression:
    """Return expr with patch applied to the named condition.

    Changing the field resets the operator to the new field's first legal
    operator and clears the value, so a condition never pairs a field with
    an operator or value chosen for a different field. Operator and value
    entries in the same patch are then applied on top.

    Raises:
        ValidationError: Unknown patch key, condition id or logical operator
        UnknownFieldError: If the new field is not registered
        InvalidOperatorError: If the operator is not legal for the field
    """
    unknown = set(patch) - PATCH_KEYS
    if unknown:
        raise ValidationError(f"Unknown condition attributes: {sorted(unknown)}")

    current = expr.get(condition_id)
    updated = current

    if "field" in patch and patch["field"] != current.field:
        descriptor = registry.describe(patch["field"])
        updated = replace(
            updated,
            field=descriptor.key,
            operator=descriptor.default_operator,
            value="",
        )

    if "operator" in patch:
        registry.check_operator(updated.field, patch["operator"])
        updated = replace(updated, operator=patch["operator"])

    if "value" in patch:
        updated = replace(updated, value=patch["value"])

    if "logical_operator" in patch:
        updated = replace(
            updated, logical_operator=LogicalOperator.parse(patch["logical_operator"])
        )

    return FilterExpression(
        tuple(updated if c.id == condition_id else c for c in expr.conditions)
    )
