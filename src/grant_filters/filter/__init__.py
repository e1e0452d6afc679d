"""
Filter construction and evaluation for grant records.

This package provides:

- Field Registry: value type and legal operators for each filterable field
- Condition model: immutable conditions and non-empty expressions
- Evaluation engine: pure left-to-right evaluation against records
- Preset filter definitions

Example building an expression:
    >>> from grant_filters.filter import FilterEngine, conditions, default_registry
    >>>
    >>> registry = default_registry()
    >>> expr = conditions.create_expression(registry)
    >>> expr = conditions.update_condition(expr, "1", {"value": "open"}, registry)
    >>>
    >>> engine = FilterEngine(registry)
    >>> open_grants = engine.apply(expr, records)

Example from the wire format:
    >>> from grant_filters.filter import FilterExpression, evaluate
    >>>
    >>> expr = FilterExpression.from_list([
    ...     {"id": "1", "field": "status", "operator": "equals",
    ...      "value": "open", "logicalOperator": "AND"},
    ... ])
    >>> evaluate(expr, {"status": "open"})
    True
"""

from grant_filters.filter import conditions, presets
from grant_filters.filter.conditions import (
    FilterCondition,
    FilterExpression,
    LogicalOperator,
    append_condition,
    create_expression,
    remove_condition,
    update_condition,
)
from grant_filters.filter.engine import FilterEngine, evaluate, test_condition
from grant_filters.filter.presets import PresetDefinition
from grant_filters.filter.registry import (
    FieldDescriptor,
    FieldRegistry,
    ValueType,
    default_registry,
)

__all__ = [
    "FieldDescriptor",
    "FieldRegistry",
    "FilterCondition",
    "FilterEngine",
    "FilterExpression",
    "LogicalOperator",
    "PresetDefinition",
    "ValueType",
    "append_condition",
    "conditions",
    "create_expression",
    "default_registry",
    "evaluate",
    "presets",
    "remove_condition",
    "test_condition",
    "update_condition",
]
