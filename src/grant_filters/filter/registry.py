"""
Field Registry.

Static metadata for every filterable grant field: its value type and the
ordered set of operators that are legal for it. Operator and type lookups
always go through the registry; nothing is inferred from a field's name.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..errors import InvalidOperatorError, UnknownFieldError, ValidationError

if TYPE_CHECKING:
    from .conditions import FilterCondition


class ValueType(str, Enum):
    """Value types a filterable field can hold."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    ENUMERATED = "enumerated"


# First operator of each set is the default for new conditions.
OPERATORS: dict[ValueType, tuple[str, ...]] = {
    ValueType.TEXT: ("contains", "equals", "starts_with", "ends_with"),
    ValueType.NUMBER: ("equals", "greater_than", "less_than", "between"),
    ValueType.DATE: ("equals", "before", "after", "between"),
    ValueType.ENUMERATED: ("equals", "in"),
}

STATUS_VALUES = ("draft", "open", "closed", "awarded", "completed")

CATEGORY_VALUES = (
    "Infrastructure",
    "Education",
    "Environment",
    "Healthcare",
    "Economic Development",
    "Arts & Culture",
    "Social Services",
    "Recreation",
)


@dataclass(frozen=True)
class FieldDescriptor:
    """Metadata describing one filterable field.

    Attributes:
        key: Unique field key, matches the record attribute name
        label: Human readable label
        value_type: How values of this field are compared
        operators: Legal operators, in display order
        allowed_values: Closed value set for enumerated fields
            (None leaves an enumerated field open)
    """

    key: str
    label: str
    value_type: ValueType
    operators: tuple[str, ...] = ()
    allowed_values: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if not self.key:
            raise ValidationError("Field key must not be empty")
        if not self.operators:
            object.__setattr__(self, "operators", OPERATORS[self.value_type])
        if self.allowed_values is not None and self.value_type != ValueType.ENUMERATED:
            raise ValidationError(f"Only enumerated fields take allowed values: {self.key!r}")

    @property
    def default_operator(self) -> str:
        return self.operators[0]

    def allows(self, operator: str) -> bool:
        return operator in self.operators

    @classmethod
    def text(cls, key: str, label: str) -> FieldDescriptor:
        """Create a text field."""
        return cls(key, label, ValueType.TEXT)

    @classmethod
    def number(cls, key: str, label: str) -> FieldDescriptor:
        """Create a number field."""
        return cls(key, label, ValueType.NUMBER)

    @classmethod
    def date(cls, key: str, label: str) -> FieldDescriptor:
        """Create a date field."""
        return cls(key, label, ValueType.DATE)

    @classmethod
    def enumerated(
        cls,
        key: str,
        label: str,
        allowed_values: Iterable[str] | None = None,
    ) -> FieldDescriptor:
        """Create an enumerated field, closed over allowed_values when given."""
        values = tuple(allowed_values) if allowed_values is not None else None
        return cls(key, label, ValueType.ENUMERATED, allowed_values=values)


class FieldRegistry:
    """Ordered lookup table of field descriptors.

    Usage:
        registry = default_registry()
        registry.describe("budget_min").value_type   # ValueType.NUMBER
        registry.operators_for("title")              # ("contains", ...)
    """

    def __init__(self, descriptors: Sequence[FieldDescriptor]):
        if not descriptors:
            raise ValidationError("Field registry needs at least one field")

        self._fields: dict[str, FieldDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in self._fields:
                raise ValidationError(f"Duplicate field key: {descriptor.key!r}")
            self._fields[descriptor.key] = descriptor

    def describe(self, field: str) -> FieldDescriptor:
        """Get the descriptor for a field.

        Raises:
            UnknownFieldError: If the field is not registered
        """
        try:
            return self._fields[field]
        except KeyError:
            raise UnknownFieldError(field) from None

    def operators_for(self, field: str) -> tuple[str, ...]:
        return self.describe(field).operators

    def value_type_for(self, field: str) -> ValueType:
        return self.describe(field).value_type

    def first(self) -> FieldDescriptor:
        """Descriptor used for newly created conditions."""
        return next(iter(self._fields.values()))

    def keys(self) -> list[str]:
        return list(self._fields)

    def check_operator(self, field: str, operator: str) -> FieldDescriptor:
        """Ensure operator is legal for field.

        Raises:
            UnknownFieldError: If the field is not registered
            InvalidOperatorError: If the operator is not in the field's set
        """
        descriptor = self.describe(field)
        if not descriptor.allows(operator):
            raise InvalidOperatorError(field, operator, descriptor.operators)
        return descriptor

    def validate_condition(self, condition: FilterCondition) -> FieldDescriptor:
        return self.check_operator(condition.field, condition.operator)

    def __contains__(self, field: object) -> bool:
        return field in self._fields

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FieldRegistry({self.keys()!r})"


def default_registry(council_ids: Iterable[str] | None = None) -> FieldRegistry:
    """Build the registry of filterable grant fields.

    Args:
        council_ids: Known council ids; when omitted or empty,
            council_id accepts any value

    Returns:
        FieldRegistry with status first, so new conditions default to
        ``status equals ""``
    """
    councils = tuple(str(c) for c in council_ids) if council_ids else None

    return FieldRegistry(
        [
            FieldDescriptor.enumerated("status", "Status", STATUS_VALUES),
            FieldDescriptor.enumerated("category", "Category", CATEGORY_VALUES),
            FieldDescriptor.number("budget_min", "Budget (Min)"),
            FieldDescriptor.number("budget_max", "Budget (Max)"),
            FieldDescriptor.date("opening_date", "Opening Date"),
            FieldDescriptor.date("closing_date", "Closing Date"),
            FieldDescriptor.enumerated("council_id", "Council", councils),
            FieldDescriptor.text("title", "Title"),
        ]
    )
