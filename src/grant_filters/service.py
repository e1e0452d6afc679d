"""
Service boundary for the dashboard.

FilterService exposes the saved filter operations the UI calls, taking and
returning JSON-friendly structures in the dashboard wire format
(``filters`` lists of ``{id, field, operator, value, logicalOperator}``).
Errors from the store propagate unchanged so the caller can report the
specific kind.

Example:
    >>> from grant_filters.service import FilterService
    >>>
    >>> service = FilterService.from_settings()
    >>> created = service.create_saved_filter(
    ...     owner_id=1,
    ...     name="Open Education Grants",
    ...     filters=[
    ...         {"id": "1", "field": "status", "operator": "equals",
    ...          "value": "open", "logicalOperator": "AND"},
    ...     ],
    ... )
    >>> service.apply_filter(created["id"], grants)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from .config.settings import Settings, get_settings
from .filter.registry import default_registry
from .models.filters import Visibility
from .storage.sqlite import SQLiteStorage
from .store import SavedFilterStore

if TYPE_CHECKING:
    import pandas as pd

WireFilters = list[dict[str, Any]]


class FilterService:
    """Saved filter operations in the dashboard's JSON shapes."""

    def __init__(self, store: SavedFilterStore):
        self.store = store

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> FilterService:
        """Build a service on the configured SQLite database.

        Initializes the schema and, when enabled, seeds presets.
        """
        settings = settings or get_settings()
        storage = SQLiteStorage(
            settings.database_path,
            timeout=settings.database.timeout_seconds,
            wal_mode=settings.database.wal_mode,
        )
        storage.initialize()

        store = SavedFilterStore(storage, default_registry(settings.filters.council_ids))
        if settings.filters.seed_presets:
            store.seed_presets()
        return cls(store)

    def list_saved_filters(self, owner_id: int) -> list[dict[str, Any]]:
        return [saved.to_api_dict() for saved in self.store.list_for_owner(owner_id)]

    def get_saved_filter(self, filter_id: int) -> dict[str, Any]:
        return self.store.get(filter_id).to_api_dict()

    def create_saved_filter(
        self,
        owner_id: int,
        name: str,
        filters: WireFilters,
        description: str | None = None,
        is_public: bool = False,
    ) -> dict[str, Any]:
        saved = self.store.create(
            owner_id,
            name,
            filters,
            description=description,
            visibility=Visibility.PUBLIC if is_public else Visibility.PRIVATE,
        )
        return saved.to_api_dict()

    def update_saved_filter(
        self,
        filter_id: int,
        caller_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        filters: WireFilters | None = None,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        saved = self.store.update(
            filter_id,
            caller_id,
            name=name,
            description=description,
            expression=filters,
            expected_version=expected_version,
        )
        return saved.to_api_dict()

    def update_visibility(
        self,
        filter_id: int,
        caller_id: int,
        is_public: bool,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        visibility = Visibility.PUBLIC if is_public else Visibility.PRIVATE
        saved = self.store.set_visibility(filter_id, caller_id, visibility, expected_version)
        return saved.to_api_dict()

    def duplicate_filter(self, filter_id: int, caller_id: int) -> dict[str, Any]:
        return self.store.duplicate(filter_id, caller_id).to_api_dict()

    def delete_filter(
        self,
        filter_id: int,
        caller_id: int,
        expected_version: int | None = None,
    ) -> dict[str, bool]:
        self.store.delete(filter_id, caller_id, expected_version)
        return {"success": True}

    def apply_filter(
        self,
        filter_id_or_filters: int | WireFilters,
        records: Iterable[Mapping[str, Any]] | pd.DataFrame,
    ) -> list[Mapping[str, Any]] | pd.DataFrame:
        """Apply a saved filter (by id) or an unsaved wire-format filter list."""
        return self.store.apply(filter_id_or_filters, records)

    def get_public_filters(self) -> list[dict[str, Any]]:
        return [saved.to_api_dict() for saved in self.store.list_public()]

    def get_most_used(self, limit: int = 10) -> list[dict[str, Any]]:
        return [saved.to_api_dict() for saved in self.store.most_used(limit)]

    def search_filters(self, owner_id: int, query: str) -> list[dict[str, Any]]:
        return [saved.to_api_dict() for saved in self.store.search(owner_id, query)]
