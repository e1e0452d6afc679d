"""
SQLite storage backend for saved filters.

This module provides the default SavedFilterStorage implementation:

- WAL mode for concurrent reads
- Version-conditional UPDATE/DELETE for optimistic concurrency
- Automatic schema management
- sqlite3 failures surfaced as TransportError

Example:
    >>> from grant_filters.storage import SQLiteStorage
    >>>
    >>> storage = SQLiteStorage("data/grant_filters.db")
    >>> storage.initialize()
    >>> rows = storage.find_filters(owner_id=1, include_shared=True)
    >>> storage.close()
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from ..errors import TransportError, ValidationError
from ..utils.dates import utcnow
from .schema import get_schema_version, migrate

logger = structlog.get_logger(__name__)

COLUMNS = (
    "owner_id",
    "name",
    "description",
    "filters",
    "is_public",
    "is_preset",
    "usage_count",
    "version",
    "created_at",
    "updated_at",
)

# Columns a caller may change through update_filter
MUTABLE_COLUMNS = frozenset({"name", "description", "filters", "is_public"})

ORDERABLE_COLUMNS = frozenset({"id", "name", "created_at", "updated_at", "usage_count"})


def _casefold(value: str | None) -> str | None:
    return None if value is None else value.casefold()


class SQLiteStorage:
    """SQLite storage backend for saved filters.

    Attributes:
        db_path: Path to the SQLite database file
        connection: Active database connection

    Example:
        >>> with SQLiteStorage("data/grant_filters.db") as storage:
        ...     storage.initialize()
        ...     filter_id = storage.insert_filter(saved.to_db_dict())
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        timeout: float = 30.0,
        wal_mode: bool = True,
        check_same_thread: bool = False,
    ):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file (":memory:" for in-memory)
            timeout: Connection timeout in seconds
            wal_mode: Enable write-ahead logging
            check_same_thread: If True, check that connection is used in same thread
        """
        self.db_path = Path(db_path)
        self._timeout = timeout
        self._wal_mode = wal_mode
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get active database connection, creating if needed."""
        if self._connection is None:
            self._connect()
        return self._connection  # type: ignore

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            if not self.in_memory:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(
                self.db_path if not self.in_memory else ":memory:",
                timeout=self._timeout,
                check_same_thread=self._check_same_thread,
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.create_function("casefold", 1, _casefold, deterministic=True)

            if self._wal_mode and not self.in_memory:
                self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute("PRAGMA synchronous=NORMAL")
        except (OSError, sqlite3.Error) as exc:
            self._connection = None
            raise TransportError(f"Cannot open database {self.db_path}: {exc}") from exc

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run a statement, translating sqlite3 failures.

        Integrity violations become ValidationError, everything else
        TransportError. The transaction is rolled back on failure.
        """
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ValidationError(f"{operation} violates a constraint: {exc}") from exc
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("storage_error", operation=operation, error=str(exc))
            raise TransportError(f"{operation} failed: {exc}") from exc

    def initialize(self) -> None:
        """Create tables/schema if needed.

        This method is idempotent - safe to call multiple times.
        """
        with self._guard("initialize") as conn:
            if get_schema_version(conn) is None:
                logger.info("schema_created", path=str(self.db_path))
            migrate(conn)

    def insert_filter(self, row: dict[str, Any]) -> int:
        """Insert a saved filter row.

        Args:
            row: Column values from SavedFilter.to_db_dict()

        Returns:
            Database-assigned id
        """
        values = tuple(row.get(col) for col in COLUMNS)
        placeholders = ", ".join(["?"] * len(COLUMNS))
        sql = f"INSERT INTO saved_filters ({', '.join(COLUMNS)}) VALUES ({placeholders})"

        with self._guard("insert_filter") as conn:
            cursor = conn.execute(sql, values)
            return cursor.lastrowid or 0

    def get_filter(self, filter_id: int) -> dict[str, Any] | None:
        """Get one saved filter row, or None if absent."""
        rows = self.query("SELECT * FROM saved_filters WHERE id = ?", (filter_id,))
        return rows[0] if rows else None

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
            Matching rows as dictionaries
        """
        if order_by not in ORDERABLE_COLUMNS:
            raise ValidationError(f"Cannot order saved filters by {order_by!r}")

        where: list[str] = []
        params: list[Any] = []

        scope: list[str] = []
        if owner_id is not None:
            scope.append("owner_id = ?")
            params.append(owner_id)
        if include_shared:
            scope.append("is_public = 1 OR is_preset = 1")
        if scope:
            where.append("(" + " OR ".join(scope) + ")")

        if name is not None:
            where.append("name = ?")
            params.append(name)
        if name_contains:
            # instr() avoids LIKE wildcard escaping, casefold() covers non-ASCII names
            where.append("instr(casefold(name), casefold(?)) > 0")
            params.append(name_contains)

        sql = "SELECT * FROM saved_filters"
        if where:
            sql += " WHERE " + " AND ".join(where)

        direction = "DESC" if descending else "ASC"
        sql += f" ORDER BY {order_by} {direction}, id ASC"

        if limit:
            sql += " LIMIT ?"
            params.append(limit)

        return self.query(sql, tuple(params))

    def update_filter(self, filter_id: int, expected_version: int, changes: dict[str, Any]) -> bool:
        """Write changes if the row is still at expected_version.

        Args:
            filter_id: Filter to update
            expected_version: Version the caller read
            changes: Column -> new value (MUTABLE_COLUMNS only)

        Returns:
            True if the row was updated, False if no row matched
        """
        illegal = set(changes) - MUTABLE_COLUMNS
        if illegal:
            raise ValidationError(f"Columns cannot be updated: {sorted(illegal)}")
        if not changes:
            return self.get_filter(filter_id) is not None

        assignments = ", ".join(f"{col} = ?" for col in changes)
        sql = (
            f"UPDATE saved_filters SET {assignments}, version = version + 1, updated_at = ? "
            "WHERE id = ? AND version = ?"
        )
        params = (*changes.values(), utcnow().isoformat(), filter_id, expected_version)

        with self._guard("update_filter") as conn:
            return conn.execute(sql, params).rowcount == 1

    def increment_usage(self, filter_id: int, expected_version: int) -> bool:
        """Add one to usage_count if the row is still at expected_version.

        Does not bump the version.
        """
        with self._guard("increment_usage") as conn:
            cursor = conn.execute(
                """
                UPDATE saved_filters
                SET usage_count = usage_count + 1
                WHERE id = ? AND version = ?
                """,
                (filter_id, expected_version),
            )
            return cursor.rowcount == 1

    def delete_filter(self, filter_id: int, expected_version: int) -> bool:
        """Delete the row if it is still at expected_version."""
        with self._guard("delete_filter") as conn:
            cursor = conn.execute(
                "DELETE FROM saved_filters WHERE id = ? AND version = ?",
                (filter_id, expected_version),
            )
            return cursor.rowcount == 1

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        """Execute a query and return results as dictionaries.

        Args:
            sql: SQL query string (use ? for parameters)
            params: Query parameters

        Returns:
            List of dictionaries (column name -> value)
        """
        try:
            cursor = self.connection.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            logger.error("storage_error", operation="query", error=str(exc))
            raise TransportError(f"query failed: {exc}") from exc

    def get_stats(self) -> dict[str, Any]:
        """Get storage statistics.

        Returns:
            Dictionary with filter counts and file size
        """
        stats: dict[str, Any] = {}

        result = self.query(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(is_preset), 0) AS presets,
                COALESCE(SUM(CASE WHEN is_public = 1 AND is_preset = 0 THEN 1 ELSE 0 END), 0)
                    AS public,
                COALESCE(SUM(usage_count), 0) AS total_usage,
                COUNT(DISTINCT owner_id) AS owners
            FROM saved_filters
            """
        )
        row = result[0]
        stats["saved_filters_count"] = row["total"]
        stats["preset_count"] = row["presets"]
        stats["public_count"] = row["public"]
        stats["private_count"] = row["total"] - row["presets"] - row["public"]
        stats["total_usage"] = row["total_usage"]
        stats["owner_count"] = row["owners"]

        if not self.in_memory and self.db_path.exists():
            stats["file_size_bytes"] = self.db_path.stat().st_size
            stats["file_size_mb"] = round(stats["file_size_bytes"] / (1024 * 1024), 2)

        return stats

    def close(self) -> None:
        """Close database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> SQLiteStorage:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        return f"SQLiteStorage({str(self.db_path)!r})"
