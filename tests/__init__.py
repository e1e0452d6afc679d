"""Tests for grant filters."""
