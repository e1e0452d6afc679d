"""
Tests for configuration loading.
"""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from grant_filters.config import Settings, get_settings, load_settings, reload_settings


class TestSettingsDefaults:
    """Tests for built-in defaults."""

    def test_defaults(self):
        """Test default values."""
        settings = Settings()

        assert settings.name == "grant-filters"
        assert settings.database.path == "grant_filters.db"
        assert settings.database.wal_mode is True
        assert settings.filters.council_ids == []
        assert settings.filters.seed_presets is True
        assert settings.filters.most_used_limit == 10
        assert settings.logging.level == "INFO"

    def test_database_path_relative(self):
        """Test relative database paths resolve under base_dir."""
        settings = Settings(base_dir=Path("var"))
        assert settings.database_path == Path("var") / "grant_filters.db"

    def test_database_path_absolute(self, tmp_path):
        """Test absolute database paths are used as-is."""
        db = tmp_path / "filters.db"
        settings = Settings(database={"path": str(db)})

        assert settings.database_path == db


class TestLoadSettings:
    """Tests for TOML loading and environment overrides."""

    def test_load_toml(self, temp_config_dir):
        """Test values from a TOML file."""
        config_file = temp_config_dir / "local.toml"
        config_file.write_text(
            """
name = "council-dashboard"

[database]
path = "dashboard.db"

[filters]
council_ids = ["10", "11"]
seed_presets = false

[logging]
level = "DEBUG"
format = "json"
"""
        )

        settings = load_settings(config_file)

        assert settings.name == "council-dashboard"
        assert settings.database.path == "dashboard.db"
        assert settings.filters.council_ids == ["10", "11"]
        assert settings.filters.seed_presets is False
        assert settings.logging.format == "json"

    def test_env_overrides(self, temp_config_dir, monkeypatch):
        """Test GRANT_FILTERS_* variables override the file."""
        config_file = temp_config_dir / "local.toml"
        config_file.write_text('[database]\npath = "from-file.db"\n')

        monkeypatch.setenv("GRANT_FILTERS_DATABASE_PATH", "from-env.db")
        monkeypatch.setenv("GRANT_FILTERS_DATABASE_WAL_MODE", "false")
        monkeypatch.setenv("GRANT_FILTERS_FILTERS_COUNCIL_IDS", "3, 4")
        monkeypatch.setenv("GRANT_FILTERS_FILTERS_MOST_USED_LIMIT", "25")
        monkeypatch.setenv("GRANT_FILTERS_LOGGING_LEVEL", "WARNING")

        settings = load_settings(config_file)

        assert settings.database.path == "from-env.db"
        assert settings.database.wal_mode is False
        assert settings.filters.council_ids == ["3", "4"]
        assert settings.filters.most_used_limit == 25
        assert settings.logging.level == "WARNING"

    def test_env_bad_number(self, temp_config_dir, monkeypatch):
        """Test a non-numeric override fails validation naming the setting."""
        config_file = temp_config_dir / "local.toml"
        config_file.write_text("")
        monkeypatch.setenv("GRANT_FILTERS_FILTERS_MOST_USED_LIMIT", "abc")

        with pytest.raises(pydantic.ValidationError) as exc_info:
            load_settings(config_file)

        assert exc_info.value.errors()[0]["loc"] == ("filters", "most_used_limit")

    def test_env_bad_bool(self, temp_config_dir, monkeypatch):
        """Test an unrecognised boolean override is rejected, not read as false."""
        config_file = temp_config_dir / "local.toml"
        config_file.write_text("")
        monkeypatch.setenv("GRANT_FILTERS_DATABASE_WAL_MODE", "maybe")

        with pytest.raises(pydantic.ValidationError):
            load_settings(config_file)

    def test_env_top_level(self, temp_config_dir, monkeypatch):
        """Test top-level keys can be overridden."""
        config_file = temp_config_dir / "local.toml"
        config_file.write_text("")
        monkeypatch.setenv("GRANT_FILTERS_NAME", "renamed")

        assert load_settings(config_file).name == "renamed"

    def test_config_path_env(self, temp_config_dir, monkeypatch, tmp_path):
        """Test GRANT_FILTERS_CONFIG_PATH points at an extra file."""
        config_file = temp_config_dir / "extra.toml"
        config_file.write_text("[filters]\nmost_used_limit = 3\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GRANT_FILTERS_CONFIG_PATH", str(config_file))

        assert load_settings().filters.most_used_limit == 3

    def test_get_settings_cached(self, monkeypatch, tmp_path):
        """Test get_settings caches until reload_settings."""
        monkeypatch.chdir(tmp_path)
        get_settings.cache_clear()

        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("GRANT_FILTERS_NAME", "reloaded")
        assert reload_settings().name == "reloaded"
        get_settings.cache_clear()
