"""
Database schema for grant filters.

This module defines the SQLite schema:
- saved_filters: User, public and preset filters with version stamps
- schema_info: Schema version tracking for migrations

Schema Philosophy:
- filters column holds the serialized FilterExpression (JSON list)
- version is bumped by every write; writes are conditional on it
- UNIQUE(owner_id, name) enforces per-owner name uniqueness (presets
  have a NULL owner and are kept unique by name in the store)

Example:
    >>> from grant_filters.storage.schema import create_schema, get_schema_sql
    >>>
    >>> create_schema(connection)
    >>> print(get_schema_sql())
"""

from __future__ import annotations

import sqlite3

# Schema version for migration tracking
SCHEMA_VERSION = 1

# ============================================================================
# TABLE DEFINITIONS
# ============================================================================

TABLES_SQL = f"""
-- ============================================================================
-- SAVED_FILTERS: Named filter expressions
-- ============================================================================
CREATE TABLE IF NOT EXISTS saved_filters (
    id INTEGER PRIMARY KEY AUTOINCREMENT,

    -- Ownership (NULL for presets)
    owner_id INTEGER,

    name TEXT NOT NULL CHECK (length(trim(name)) > 0),
    description TEXT,

    -- Serialized FilterExpression (JSON list, non-empty)
    filters TEXT NOT NULL CHECK (filters <> '[]'),

    is_public INTEGER NOT NULL DEFAULT 0,
    is_preset INTEGER NOT NULL DEFAULT 0,
    usage_count INTEGER NOT NULL DEFAULT 0 CHECK (usage_count >= 0),

    -- Optimistic concurrency stamp
    version INTEGER NOT NULL DEFAULT 1 CHECK (version >= 1),

    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- ============================================================================
-- SCHEMA_INFO: Version tracking
-- ============================================================================
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

INSERT OR REPLACE INTO schema_info (key, value) VALUES ('version', '{SCHEMA_VERSION}');
INSERT OR IGNORE INTO schema_info (key, value) VALUES ('created_at', datetime('now'));
"""

# ============================================================================
# INDEX DEFINITIONS
# ============================================================================

INDEXES_SQL = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_saved_filters_owner_name ON saved_filters(owner_id, name);
CREATE INDEX IF NOT EXISTS idx_saved_filters_public ON saved_filters(is_public);
CREATE INDEX IF NOT EXISTS idx_saved_filters_preset ON saved_filters(is_preset);
CREATE INDEX IF NOT EXISTS idx_saved_filters_usage ON saved_filters(usage_count);
"""

# ============================================================================
# VIEW DEFINITIONS
# ============================================================================

VIEWS_SQL = """
-- Filters every user can see
CREATE VIEW IF NOT EXISTS v_shared_filters AS
SELECT * FROM saved_filters
WHERE is_public = 1 OR is_preset = 1;
"""


def get_schema_sql() -> str:
    """Get complete schema SQL for inspection.

    Returns:
        Complete SQL schema as a string
    """
    return "\n".join(
        [
            "-- Grant Filters Schema",
            f"-- Version: {SCHEMA_VERSION}",
            "",
            "-- TABLES",
            TABLES_SQL,
            "",
            "-- INDEXES",
            INDEXES_SQL,
            "",
            "-- VIEWS",
            VIEWS_SQL,
        ]
    )


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all database tables, indexes, and views.

    This function is idempotent - safe to call multiple times.

    Args:
        conn: SQLite connection
    """
    cursor = conn.cursor()
    cursor.executescript(TABLES_SQL)
    cursor.executescript(INDEXES_SQL)
    cursor.executescript(VIEWS_SQL)
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Get current schema version from database.

    Args:
        conn: SQLite connection

    Returns:
        Schema version number, or None if not found
    """
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM schema_info WHERE key = 'version'")
        row = cursor.fetchone()
        return int(row[0]) if row else None
    except sqlite3.OperationalError:
        return None


def migrate(conn: sqlite3.Connection) -> None:
    """Bring an existing database up to SCHEMA_VERSION.

    Args:
        conn: SQLite connection
    """
    current_version = get_schema_version(conn)

    if current_version is None or current_version < SCHEMA_VERSION:
        create_schema(conn)
