"""
Data models for grant filters.

This module provides Pydantic-based data models for:
- SavedFilter: Persisted, named filter expressions
- GrantRecord: Validated grant records for the filter engine
"""

from grant_filters.models.filters import Provenance, SavedFilter, Visibility
from grant_filters.models.grants import GrantRecord

__all__ = [
    "GrantRecord",
    "Provenance",
    "SavedFilter",
    "Visibility",
]
