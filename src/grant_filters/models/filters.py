"""
Saved filter model.

A SavedFilter is a named, persisted FilterExpression with ownership,
visibility and usage tracking. Presets are system-provided filters with no
owner; they are immutable apart from their usage count.

Example:
    >>> from grant_filters.models import SavedFilter
    >>>
    >>> saved = SavedFilter(owner_id=1, name="Open Education Grants", expression=expr)
    >>> row = saved.to_db_dict()
    >>> SavedFilter.from_db_row({**row, "id": 7}).name
    'Open Education Grants'
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..filter.conditions import FilterExpression
from ..utils.dates import utcnow


class Visibility(str, Enum):
    """Who can see a saved filter."""

    PRIVATE = "private"
    PUBLIC = "public"


class Provenance(str, Enum):
    """Where a saved filter came from."""

    USER = "user"
    PRESET = "preset"


class SavedFilter(BaseModel):
    """A persisted, named filter expression.

    Attributes:
        id: Unique filter identifier (set by the database)
        owner_id: Owning user, None for presets
        name: Display name, unique per owner
        description: Optional free text
        expression: The filter expression
        visibility: private or public
        provenance: user or preset
        usage_count: Number of successful applications
        version: Optimistic-concurrency stamp, bumped on every write
        created_at: Creation time (immutable)
        updated_at: Time of the last write
    """

    model_config = ConfigDict(
        extra="ignore",
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
    )

    id: int | None = Field(default=None, description="Unique filter identifier")
    owner_id: int | None = Field(default=None, description="Owning user (None for presets)")
    name: str = Field(..., min_length=1, description="Display name")
    description: str | None = Field(default=None, description="Optional description")
    expression: FilterExpression = Field(..., description="Filter expression")
    visibility: Visibility = Field(default=Visibility.PRIVATE, description="Visibility")
    provenance: Provenance = Field(default=Provenance.USER, description="Origin")
    usage_count: int = Field(default=0, ge=0, description="Successful applications")
    version: int = Field(default=1, ge=1, description="Concurrency stamp")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time")
    updated_at: datetime = Field(default_factory=utcnow, description="Last write time")

    @field_validator("expression", mode="before")
    @classmethod
    def parse_expression(cls, v: Any) -> Any:
        """Accept the serialized wire form as well as an expression."""
        if isinstance(v, str):
            return FilterExpression.from_json(v)
        if isinstance(v, list):
            return FilterExpression.from_list(v)
        return v

    @property
    def is_preset(self) -> bool:
        return self.provenance == Provenance.PRESET

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    def visible_to(self, user_id: int | None) -> bool:
        """Whether a user may see (apply, duplicate) this filter."""
        return self.is_preset or self.is_public or (
            user_id is not None and self.owner_id == user_id
        )

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for database storage.

        Returns:
            Column name -> value, booleans as 0/1, timestamps as ISO text
        """
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "filters": self.expression.to_json(),
            "is_public": 1 if self.is_public else 0,
            "is_preset": 1 if self.is_preset else 0,
            "usage_count": self.usage_count,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> SavedFilter:
        """Build a SavedFilter from a database row."""
        return cls(
            id=row["id"],
            owner_id=row.get("owner_id"),
            name=row["name"],
            description=row.get("description"),
            expression=FilterExpression.from_json(row["filters"]),
            visibility=Visibility.PUBLIC if row.get("is_public") else Visibility.PRIVATE,
            provenance=Provenance.PRESET if row.get("is_preset") else Provenance.USER,
            usage_count=row.get("usage_count") or 0,
            version=row.get("version") or 1,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row.get("updated_at") or row["created_at"]),
        )

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape consumed by the dashboard."""
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "filters": self.expression.to_list(),
            "is_public": self.is_public,
            "is_preset": self.is_preset,
            "usage_count": self.usage_count,
            "version": self.version,
            "createdAt": self.created_at.isoformat(),
        }
