"""
Configuration settings for grant filters.

This module handles loading and validating configuration from TOML files
and environment variables.

Configuration hierarchy (later overrides earlier):
1. Default values (built-in)
2. config/default.toml
3. config/local.toml (gitignored)
4. GRANT_FILTERS_CONFIG_PATH
5. Environment variables (GRANT_FILTERS_* prefix)

Example:
    >>> from grant_filters.config import get_settings
    >>>
    >>> settings = get_settings()
    >>> print(f"Database: {settings.database_path}")
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "GRANT_FILTERS_"


class DatabaseSettings(BaseModel):
    """Database settings."""

    model_config = ConfigDict(extra="ignore")

    path: str = Field(
        default="grant_filters.db",
        description="Database file path",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Connection timeout",
    )
    wal_mode: bool = Field(
        default=True,
        description="Enable WAL mode",
    )


class FilterSettings(BaseModel):
    """Filter registry and saved filter settings."""

    model_config = ConfigDict(extra="ignore")

    council_ids: list[str] = Field(
        default_factory=list,
        description="Known council ids (empty = council_id accepts any value)",
    )
    seed_presets: bool = Field(
        default=True,
        description="Insert preset filters on db-init",
    )
    most_used_limit: int = Field(
        default=10,
        ge=1,
        description="Default size of the most-used listing",
    )


class LoggingSettings(BaseModel):
    """Logging settings."""

    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Output format")
    include_timestamp: bool = Field(default=True)
    include_location: bool = Field(default=False)


class Settings(BaseModel):
    """Main settings container."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="grant-filters")
    base_dir: Path = Field(default=Path("data"))

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    filters: FilterSettings = Field(default_factory=FilterSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def database_path(self) -> Path:
        """Get absolute database path."""
        db_path = Path(self.database.path)
        if db_path.is_absolute():
            return db_path
        return self.base_dir / db_path


def _find_config_files() -> list[Path]:
    """Find configuration files in standard locations.

    Returns:
        List of config file paths (in order of priority)
    """
    files = []

    cwd = Path.cwd()
    for name in ["config/default.toml", "config/local.toml"]:
        path = cwd / name
        if path.exists():
            files.append(path)

    env_config = os.environ.get(f"{ENV_PREFIX}CONFIG_PATH")
    if env_config:
        path = Path(env_config)
        if path.exists():
            files.append(path)

    return files


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def _coerce_env_value(value: str, default: Any) -> Any:
    """Split list values; scalars are left for Settings validation to convert.

    A bad value such as GRANT_FILTERS_FILTERS_MOST_USED_LIMIT=abc then fails
    with a pydantic ValidationError naming filters.most_used_limit.
    """
    if isinstance(default, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Section names are matched first, the remainder names the key:
    GRANT_FILTERS_DATABASE_PATH -> database.path,
    GRANT_FILTERS_FILTERS_COUNCIL_IDS -> filters.council_ids.

    Args:
        config: Configuration dictionary

    Returns:
        Modified configuration
    """
    defaults = Settings().model_dump()

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == f"{ENV_PREFIX}CONFIG_PATH":
            continue

        config_key = key[len(ENV_PREFIX) :].lower()

        for section, section_defaults in defaults.items():
            if not isinstance(section_defaults, dict) or not config_key.startswith(f"{section}_"):
                continue
            field_name = config_key[len(section) + 1 :]
            if field_name in section_defaults:
                target = config.setdefault(section, {})
                target[field_name] = _coerce_env_value(value, section_defaults[field_name])
            break
        else:
            if config_key in defaults and not isinstance(defaults[config_key], dict):
                config[config_key] = value

    return config


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from configuration files.

    Args:
        config_path: Optional explicit config file path

    Returns:
        Settings instance

    Raises:
        pydantic.ValidationError: If a file or environment value is invalid
    """
    config: dict[str, Any] = {}

    if config_path:
        files = [Path(config_path)]
    else:
        files = _find_config_files()

    for path in files:
        config = _merge_dicts(config, _load_toml(path))

    config = _apply_env_overrides(config)

    return Settings(**config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance (cached after first call)
    """
    return load_settings()


def reload_settings() -> Settings:
    """Reload settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
