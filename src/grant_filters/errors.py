"""
Error taxonomy for the grant filter engine.

Every error raised by this package derives from FilterError so callers
can catch the whole family at the service boundary:

- ValidationError: malformed names, values or expressions
  - UnknownFieldError: field missing from the registry
  - InvalidOperatorError: operator not legal for the field
  - TypeMismatchError: value not coercible to the field's type
  - NotFoundError: saved filter does not exist
- InvalidOperationError: removing the last condition, mutating a preset
- PermissionDeniedError: non-owner mutation
- ConflictError: stale version on write
- TransportError: persistence backend unreachable

Example:
    >>> from grant_filters.errors import FilterError
    >>>
    >>> try:
    ...     store.delete(filter_id, caller_id=2)
    ... except FilterError as exc:
    ...     print(exc.kind, exc)
"""

from __future__ import annotations

from typing import Any


class FilterError(Exception):
    """Base class for all grant filter errors."""

    kind = "error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(FilterError):
    """Malformed name, value or expression."""

    kind = "validation"


class UnknownFieldError(ValidationError):
    """Field is not present in the registry."""

    kind = "unknown_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"Unknown field: {field!r}", details={"field": field})
        self.field = field


class InvalidOperatorError(ValidationError):
    """Operator is not legal for the field."""

    kind = "invalid_operator"

    def __init__(self, field: str, operator: str, allowed: tuple[str, ...]) -> None:
        super().__init__(
            f"Operator {operator!r} is not valid for field {field!r} "
            f"(allowed: {', '.join(allowed)})",
            details={"field": field, "operator": operator, "allowed": list(allowed)},
        )
        self.field = field
        self.operator = operator


class TypeMismatchError(ValidationError):
    """Value cannot be coerced to the field's value type."""

    kind = "type_mismatch"


class NotFoundError(ValidationError):
    """Saved filter does not exist."""

    kind = "not_found"


class InvalidOperationError(FilterError):
    """Operation is not allowed in the current state."""

    kind = "invalid_operation"


class PermissionDeniedError(FilterError, PermissionError):
    """Caller does not own the filter it tried to mutate."""

    kind = "permission"


class ConflictError(FilterError):
    """Write was based on a stale version of the filter."""

    kind = "conflict"


class TransportError(FilterError):
    """Persistence backend could not be reached."""

    kind = "transport"


__all__ = [
    "ConflictError",
    "FilterError",
    "InvalidOperationError",
    "InvalidOperatorError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransportError",
    "TypeMismatchError",
    "UnknownFieldError",
    "ValidationError",
]
