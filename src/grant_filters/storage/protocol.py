"""
Storage protocol for saved filters.

This module defines the interface a saved filter backend must implement.
The store talks only to this protocol, so a remote service client can
replace SQLite without touching filter logic.

Mutating methods are conditional on the row version: they return False
(or None) when no row matched, and the caller decides whether that means
"not found" or "conflict". Backends raise TransportError when they cannot
be reached.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SavedFilterStorage(Protocol):
    """Interface for saved filter storage backends.

    Implementations:
    - SQLiteStorage: Local SQLite database (default)
    """

    def initialize(self) -> None:
        """Create tables/schema if needed. Idempotent."""
        ...

    def insert_filter(self, row: dict[str, Any]) -> int:
        """Insert a saved filter row.

        Args:
            row: Column values (the id key is ignored)

        Returns:
            Database-assigned id

        Raises:
            ValidationError: If the row violates a uniqueness constraint
            TransportError: If the backend fails
        """
        ...

    def get_filter(self, filter_id: int) -> dict[str, Any] | None:
        """Get one saved filter row, or None if absent."""
        ...

    def find_filters(
        self,
        *,
        owner_id: int | None = None,
        include_shared: bool = False,
        name: str | None = None,
        name_contains: str | None = None,
        order_by: str = "created_at",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Find saved filter rows.

        Args:
            owner_id: Restrict to this owner's filters
            include_shared: Also include public and preset filters
            name: Exact name match
            name_contains: Case-insensitive substring match on name
            order_by: Column to order by
            descending: Reverse the ordering
            limit: Maximum number of rows

        Returns:
            Matching rows
        """
        ...

    def update_filter(self, filter_id: int, expected_version: int, changes: dict[str, Any]) -> bool:
        """Write changes if the row is still at expected_version.

        Bumps the version. Returns False when no row matched.
        """
        ...

    def increment_usage(self, filter_id: int, expected_version: int) -> bool:
        """Add one to usage_count if the row is still at expected_version.

        Does not bump the version.
        """
        ...

    def delete_filter(self, filter_id: int, expected_version: int) -> bool:
        """Delete the row if it is still at expected_version."""
        ...

    def close(self) -> None:
        """Release resources. Safe to call multiple times."""
        ...
