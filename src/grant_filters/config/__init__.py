"""
Configuration management for grant filters.

Configuration hierarchy:
1. Default values (built-in)
2. config/default.toml (project defaults)
3. config/local.toml (user overrides, gitignored)
4. Environment variables (GRANT_FILTERS_* prefix)
5. Command-line arguments

Example:
    >>> from grant_filters.config import get_settings
    >>>
    >>> settings = get_settings()
    >>> print(f"Database: {settings.database_path}")
"""

from grant_filters.config.settings import (
    DatabaseSettings,
    FilterSettings,
    LoggingSettings,
    Settings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    "DatabaseSettings",
    "FilterSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "load_settings",
    "reload_settings",
]
