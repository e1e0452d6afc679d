"""
Tests for the dashboard service boundary.
"""

from __future__ import annotations

import pytest

from grant_filters.config import DatabaseSettings, FilterSettings, Settings
from grant_filters.errors import NotFoundError, PermissionDeniedError
from grant_filters.filter import presets
from grant_filters.service import FilterService

OPEN_EDUCATION = [
    {"id": "1", "field": "status", "operator": "equals", "value": "open", "logicalOperator": "AND"},
    {
        "id": "2",
        "field": "category",
        "operator": "equals",
        "value": "Education",
        "logicalOperator": "AND",
    },
]


class TestFilterService:
    """Tests for FilterService JSON shapes."""

    def test_create_saved_filter(self, service):
        """Test the created filter comes back in the dashboard shape."""
        created = service.create_saved_filter(1, "Open Education Grants", OPEN_EDUCATION)

        assert created["user_id"] == 1
        assert created["name"] == "Open Education Grants"
        assert created["filters"] == OPEN_EDUCATION
        assert created["is_public"] is False
        assert created["is_preset"] is False
        assert created["usage_count"] == 0
        assert "createdAt" in created

    def test_list_saved_filters(self, service):
        """Test listing an owner's filters."""
        service.create_saved_filter(1, "Mine", OPEN_EDUCATION, description="Schools")
        service.create_saved_filter(2, "Theirs", OPEN_EDUCATION)

        listed = service.list_saved_filters(1)

        assert [f["name"] for f in listed] == ["Mine"]
        assert listed[0]["description"] == "Schools"

    def test_update_visibility(self, service):
        """Test sharing through the service."""
        created = service.create_saved_filter(1, "Mine", OPEN_EDUCATION)

        shared = service.update_visibility(created["id"], 1, True)

        assert shared["is_public"] is True
        assert [f["name"] for f in service.get_public_filters()] == ["Mine"]

    def test_update_saved_filter(self, service):
        """Test editing name and filters."""
        created = service.create_saved_filter(1, "Mine", OPEN_EDUCATION)

        updated = service.update_saved_filter(
            created["id"], 1, name="Open only", filters=OPEN_EDUCATION[:1]
        )

        assert updated["name"] == "Open only"
        assert len(updated["filters"]) == 1
        assert updated["version"] == 2

    def test_duplicate_and_delete(self, service):
        """Test duplicating then deleting the copy."""
        created = service.create_saved_filter(1, "Mine", OPEN_EDUCATION)

        copy = service.duplicate_filter(created["id"], 1)
        assert copy["name"] == "Mine (Copy)"

        assert service.delete_filter(copy["id"], 1) == {"success": True}
        with pytest.raises(NotFoundError):
            service.get_saved_filter(copy["id"])

    def test_apply_by_id_and_by_filters(self, service, grant_factory):
        """Test applying saved and unsaved filters."""
        grants = [grant_factory.create(category="Education"), grant_factory.create()]
        created = service.create_saved_filter(1, "Mine", OPEN_EDUCATION)

        assert service.apply_filter(created["id"], grants) == grants[:1]
        assert service.apply_filter(OPEN_EDUCATION, grants) == grants[:1]
        assert service.get_saved_filter(created["id"])["usage_count"] == 1

    def test_most_used_and_search(self, service, grant_factory):
        """Test usage ranking and name search."""
        a = service.create_saved_filter(1, "Alpha", OPEN_EDUCATION, is_public=True)
        b = service.create_saved_filter(1, "Beta", OPEN_EDUCATION, is_public=True)
        service.apply_filter(b["id"], [])

        assert [f["name"] for f in service.get_most_used(1)] == ["Beta"]
        assert [f["id"] for f in service.search_filters(2, "ALP")] == [a["id"]]

    def test_errors_propagate(self, service):
        """Test store errors reach the caller unchanged."""
        created = service.create_saved_filter(1, "Mine", OPEN_EDUCATION)

        with pytest.raises(PermissionDeniedError):
            service.delete_filter(created["id"], 2)


class TestFromSettings:
    """Tests for building a service from configuration."""

    def test_from_settings_seeds_presets(self, tmp_path):
        """Test the configured database is initialized and seeded."""
        settings = Settings(database=DatabaseSettings(path=str(tmp_path / "filters.db")))

        service = FilterService.from_settings(settings)

        public = service.get_public_filters()
        assert len(public) == len(presets.all_presets())
        assert all(f["is_preset"] for f in public)

    def test_from_settings_without_presets(self, tmp_path):
        """Test preset seeding can be disabled."""
        settings = Settings(
            database=DatabaseSettings(path=str(tmp_path / "filters.db")),
            filters=FilterSettings(seed_presets=False),
        )

        service = FilterService.from_settings(settings)

        assert service.get_public_filters() == []

    def test_council_ids_close_the_value_set(self, tmp_path):
        """Test configured council ids reach the registry."""
        settings = Settings(
            database=DatabaseSettings(path=str(tmp_path / "filters.db")),
            filters=FilterSettings(council_ids=["1", "2"]),
        )

        service = FilterService.from_settings(settings)

        assert service.store.registry.describe("council_id").allowed_values == ("1", "2")
