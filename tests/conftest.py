"""
Pytest configuration and shared fixtures for grant filters.

This module provides:
- Grant factories for generating test data
- Field registry and filter engine fixtures
- Temporary database and saved filter store fixtures

Example usage in tests:
    def test_something(grant_factory, store):
        grants = grant_factory.create_batch(10)
        saved = store.create(1, "Everything open", expression(...))
        assert len(store.apply(saved.id, grants)) == 10
"""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from grant_filters.filter import FieldRegistry, FilterEngine, default_registry
from grant_filters.service import FilterService
from grant_filters.storage import SQLiteStorage
from grant_filters.store import SavedFilterStore

# Import fixtures from fixtures module
from tests.fixtures.factories import TODAY, GrantFactory

# ============================================================================
# FACTORY FIXTURES
# ============================================================================


@pytest.fixture
def grant_factory() -> type[GrantFactory]:
    """Provide a fresh GrantFactory with counter reset.

    Returns:
        GrantFactory class with counter at 0
    """
    GrantFactory.reset()
    return GrantFactory


@pytest.fixture
def today():
    """Fixed reference date used by date-based tests."""
    return TODAY


# ============================================================================
# FILTER FIXTURES
# ============================================================================


@pytest.fixture
def registry() -> FieldRegistry:
    """Provide the default grant field registry."""
    return default_registry()


@pytest.fixture
def engine(registry: FieldRegistry, today) -> FilterEngine:
    """Provide a filter engine pinned to the reference date."""
    return FilterEngine(registry, today=today)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def temp_db() -> Iterator[SQLiteStorage]:
    """Provide a temporary SQLite database.

    Creates a fresh database in a temp directory, initializes schema,
    and cleans up after test.

    Yields:
        Initialized SQLiteStorage instance
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        db_path = Path(temp_dir) / "test.db"
        storage = SQLiteStorage(db_path)
        storage.initialize()
        yield storage
        storage.close()


@pytest.fixture
def store(temp_db: SQLiteStorage, engine: FilterEngine) -> SavedFilterStore:
    """Provide a saved filter store on the temporary database (no presets)."""
    return SavedFilterStore(temp_db, engine.registry, engine)


@pytest.fixture
def seeded_store(store: SavedFilterStore) -> SavedFilterStore:
    """Provide a store with every preset filter seeded."""
    store.seed_presets()
    return store


@pytest.fixture
def service(store: SavedFilterStore) -> FilterService:
    """Provide a FilterService over the temporary store."""
    return FilterService(store)


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def temp_config_dir() -> Iterator[Path]:
    """Provide a temporary configuration directory.

    Yields:
        Path to temporary config directory
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        config_dir = Path(temp_dir) / "config"
        config_dir.mkdir()
        yield config_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop GRANT_FILTERS_* variables from the environment during tests."""
    import os

    for key in list(os.environ):
        if key.startswith("GRANT_FILTERS_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def clean_log_context() -> Iterator[None]:
    """Isolate structlog context variables between tests."""
    import structlog

    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("markers", "integration: mark as integration test")
    config.addinivalue_line("markers", "unit: mark as unit test")
