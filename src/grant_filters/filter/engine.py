"""
Evaluation Engine.

Pure evaluation of filter expressions against grant records. Records are
plain mappings (or pandas rows); the engine never mutates them.

Expressions fold strictly left to right with no precedence:
``A AND B OR C`` evaluates as ``(A and B) or C``.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog

from ..errors import TypeMismatchError
from ..utils.dates import parse_date_value
from .conditions import FilterCondition, FilterExpression, LogicalOperator
from .registry import FieldDescriptor, FieldRegistry, ValueType, default_registry

if TYPE_CHECKING:
    import pandas as pd

logger = structlog.get_logger(__name__)

Record = Mapping[str, Any]

_DEFAULT_REGISTRY = default_registry()


# ============================================================================
# VALUE COERCION
# ============================================================================


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    # pandas hands missing cells over as NaN
    return isinstance(value, float) and math.isnan(value)


def _split_pair(text: str, field: str) -> tuple[str, str]:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2 or not all(parts):
        raise TypeMismatchError(
            f"'between' on {field!r} expects two comma-separated bounds, got {text!r}",
            details={"field": field, "value": text},
        )
    return parts[0], parts[1]


def _to_number(value: Any, field: str, side: str) -> float:
    if isinstance(value, bool) or _is_missing(value):
        raise TypeMismatchError(
            f"{side} of {field!r} is not a number: {value!r}",
            details={"field": field, "value": value},
        )
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        number = float(str(value).strip())
    except ValueError:
        raise TypeMismatchError(
            f"{side} of {field!r} is not a number: {value!r}",
            details={"field": field, "value": value},
        ) from None
    if math.isnan(number):
        raise TypeMismatchError(
            f"{side} of {field!r} is not a number: {value!r}",
            details={"field": field, "value": value},
        )
    return number


def _to_date(value: Any, field: str, side: str, today: date | None) -> date:
    if _is_missing(value):
        raise TypeMismatchError(
            f"{side} of {field!r} is not a date: {value!r}",
            details={"field": field, "value": value},
        )
    try:
        return parse_date_value(value, today=today)
    except ValueError:
        raise TypeMismatchError(
            f"{side} of {field!r} is not a date: {value!r}",
            details={"field": field, "value": value},
        ) from None


def _check_allowed(descriptor: FieldDescriptor, value: str) -> None:
    allowed = descriptor.allowed_values
    if allowed is not None and value not in allowed:
        raise TypeMismatchError(
            f"{value!r} is not an allowed value for {descriptor.key!r}",
            details={"field": descriptor.key, "value": value, "allowed": list(allowed)},
        )


# ============================================================================
# PER-TYPE PREDICATES
# ============================================================================

TEXT_OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda actual, target: target in actual,
    "equals": lambda actual, target: actual == target,
    "starts_with": lambda actual, target: actual.startswith(target),
    "ends_with": lambda actual, target: actual.endswith(target),
}

ORDERED_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": lambda actual, target: actual == target,
    "greater_than": lambda actual, target: actual > target,
    "less_than": lambda actual, target: actual < target,
    "before": lambda actual, target: actual < target,
    "after": lambda actual, target: actual > target,
}


def _test_text(condition: FilterCondition, actual: Any) -> bool:
    text = "" if _is_missing(actual) else str(actual)
    return TEXT_OPERATORS[condition.operator](text.casefold(), condition.value.casefold())


def _test_ordered(
    condition: FilterCondition,
    actual: Any,
    coerce: Callable[[Any, str], Any],
) -> bool:
    field = condition.field
    if condition.operator == "between":
        low_text, high_text = _split_pair(condition.value, field)
        low = coerce(low_text, "lower bound")
        high = coerce(high_text, "upper bound")
        return low <= coerce(actual, "record value") <= high

    target = coerce(condition.value, "filter value")
    return ORDERED_OPERATORS[condition.operator](coerce(actual, "record value"), target)


def _enumerated_text(actual: Any) -> str:
    # integer columns with gaps arrive from pandas as float64 (3 -> 3.0)
    if isinstance(actual, float) and actual.is_integer():
        actual = int(actual)
    return str(actual)


def _test_enumerated(condition: FilterCondition, descriptor: FieldDescriptor, actual: Any) -> bool:
    if condition.operator == "in":
        members = [m.strip() for m in condition.value.split(",") if m.strip()]
        for member in members:
            _check_allowed(descriptor, member)
        return not _is_missing(actual) and _enumerated_text(actual) in members

    _check_allowed(descriptor, condition.value)
    return not _is_missing(actual) and _enumerated_text(actual) == condition.value


def test_condition(
    condition: FilterCondition,
    record: Record,
    registry: FieldRegistry | None = None,
    *,
    today: date | None = None,
) -> bool:
    """Evaluate one condition against a record.

    An empty value places no constraint and always passes.

    Raises:
        UnknownFieldError: If the field is not registered
        InvalidOperatorError: If the operator is not legal for the field
        TypeMismatchError: If a value cannot be read as the field's type
    """
    descriptor = (registry or _DEFAULT_REGISTRY).validate_condition(condition)

    if condition.is_empty:
        return True

    actual = record.get(condition.field)
    value_type = descriptor.value_type

    if value_type == ValueType.TEXT:
        return _test_text(condition, actual)
    if value_type == ValueType.NUMBER:
        return _test_ordered(
            condition, actual, lambda v, side: _to_number(v, condition.field, side)
        )
    if value_type == ValueType.DATE:
        return _test_ordered(
            condition, actual, lambda v, side: _to_date(v, condition.field, side, today)
        )
    return _test_enumerated(condition, descriptor, actual)


# Not a pytest test despite the name
test_condition.__test__ = False  # type: ignore[attr-defined]


def combine(left: bool, right: bool, operator: LogicalOperator) -> bool:
    if operator == LogicalOperator.OR:
        return left or right
    return left and right


def evaluate(
    expr: FilterExpression,
    record: Record,
    registry: FieldRegistry | None = None,
    *,
    today: date | None = None,
) -> bool:
    """Evaluate an expression against a record with a left-to-right fold.

    Every condition is tested, so a type error anywhere in the chain is
    raised even when the result is already decided.
    """
    registry = registry or _DEFAULT_REGISTRY
    first, *rest = expr.conditions
    result = test_condition(first, record, registry, today=today)
    for condition in rest:
        outcome = test_condition(condition, record, registry, today=today)
        result = combine(result, outcome, condition.logical_operator)
    return result


class FilterEngine:
    """Applies filter expressions to record sets.

    Usage:
        engine = FilterEngine(default_registry())

        # Lists of mappings in, matching mappings out
        matches = engine.apply(expr, records)

        # DataFrames in, filtered DataFrame out
        df = engine.apply(expr, grants_df)
    """

    def __init__(self, registry: FieldRegistry | None = None, *, today: date | None = None):
        """Initialize filter engine.

        Args:
            registry: Field registry (defaults to the grant registry)
            today: Fixed reference date for relative date values
        """
        self.registry = registry or default_registry()
        self.today = today

    def matches(self, expr: FilterExpression, record: Record) -> bool:
        return evaluate(expr, record, self.registry, today=self.today)

    def apply(
        self,
        expr: FilterExpression,
        records: Iterable[Record] | pd.DataFrame,
    ) -> list[Record] | pd.DataFrame:
        """Filter records with an expression.

        Args:
            expr: Expression to apply
            records: Iterable of mapping records, or a pandas DataFrame

        Returns:
            Matching records in their original order, as a list or as a
            DataFrame (index preserved) matching the input kind
        """
        expr.validate(self.registry)

        if _is_dataframe(records):
            frame = records
            if frame.empty:
                result_frame = frame
            else:
                mask = frame.apply(lambda row: self.matches(expr, row.to_dict()), axis=1)
                result_frame = frame[mask.astype(bool)]
            logger.debug(
                "filter_applied",
                conditions=len(expr),
                records=len(frame),
                results=len(result_frame),
            )
            return result_frame

        candidates = list(records)
        result = [record for record in candidates if self.matches(expr, record)]
        logger.debug(
            "filter_applied",
            conditions=len(expr),
            records=len(candidates),
            results=len(result),
        )
        return result

    def count(self, expr: FilterExpression, records: Iterable[Record] | pd.DataFrame) -> int:
        return len(self.apply(expr, records))


def _is_dataframe(obj: Any) -> bool:
    # Avoid importing pandas unless a DataFrame could be present
    if type(obj).__name__ != "DataFrame":
        return False
    import pandas as pd

    return isinstance(obj, pd.DataFrame)
