"""
Test fixtures for grant filters.

This module provides:
- GrantFactory: Create grant records with sensible defaults
- condition / expression: Build wire-format filter conditions
"""

from tests.fixtures.factories import GrantFactory, condition, expression

__all__ = [
    "GrantFactory",
    "condition",
    "expression",
]
