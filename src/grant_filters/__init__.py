"""
Grant Filters

Query filter construction, evaluation and persistence for a grant
management dashboard.

Features:
- Explicit field registry (value types and legal operators per field)
- Immutable, non-empty filter expressions evaluated left to right
- Saved filters: private, public and preset, with usage tracking
- Optimistic concurrency on every saved filter write
- SQLite storage with Pydantic models

Example:
    >>> from grant_filters import FilterEngine, FilterExpression
    >>>
    >>> expr = FilterExpression.from_list([
    ...     {"id": "1", "field": "status", "operator": "equals",
    ...      "value": "open", "logicalOperator": "AND"},
    ...     {"id": "2", "field": "category", "operator": "equals",
    ...      "value": "Education", "logicalOperator": "AND"},
    ... ])
    >>> FilterEngine().apply(expr, grants)

For more information, run:
    $ grant-filters --help
"""

__version__ = "1.0.0"

from grant_filters.config.settings import Settings, get_settings
from grant_filters.errors import (
    ConflictError,
    FilterError,
    InvalidOperationError,
    InvalidOperatorError,
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    TypeMismatchError,
    UnknownFieldError,
    ValidationError,
)
from grant_filters.filter import (
    FieldDescriptor,
    FieldRegistry,
    FilterCondition,
    FilterEngine,
    FilterExpression,
    LogicalOperator,
    ValueType,
    default_registry,
    evaluate,
)
from grant_filters.models import GrantRecord, Provenance, SavedFilter, Visibility
from grant_filters.service import FilterService
from grant_filters.storage import SavedFilterStorage, SQLiteStorage
from grant_filters.store import SavedFilterStore

__all__ = [
    "ConflictError",
    "FieldDescriptor",
    "FieldRegistry",
    "FilterCondition",
    "FilterEngine",
    "FilterError",
    "FilterExpression",
    "FilterService",
    "GrantRecord",
    "InvalidOperationError",
    "InvalidOperatorError",
    "LogicalOperator",
    "NotFoundError",
    "PermissionDeniedError",
    "Provenance",
    "SQLiteStorage",
    "SavedFilter",
    "SavedFilterStorage",
    "SavedFilterStore",
    "Settings",
    "TransportError",
    "TypeMismatchError",
    "UnknownFieldError",
    "ValidationError",
    "ValueType",
    "Visibility",
    "__version__",
    "default_registry",
    "evaluate",
    "get_settings",
]
