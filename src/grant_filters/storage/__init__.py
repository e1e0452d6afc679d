"""
Storage backends for saved filters.

This module provides storage implementations of the SavedFilterStorage
protocol:

- SQLiteStorage: Local SQLite database (default)

Example:
    >>> from grant_filters.storage import SQLiteStorage
    >>>
    >>> storage = SQLiteStorage("data/grant_filters.db")
    >>> storage.initialize()  # Create tables
    >>> storage.find_filters(owner_id=1, include_shared=True)

The schema is defined in `storage/schema.py`.
"""

from grant_filters.storage.protocol import SavedFilterStorage
from grant_filters.storage.schema import SCHEMA_VERSION, create_schema, get_schema_sql
from grant_filters.storage.sqlite import SQLiteStorage

__all__ = [
    "SCHEMA_VERSION",
    "SQLiteStorage",
    "SavedFilterStorage",
    "create_schema",
    "get_schema_sql",
]
