"""
Grant record model.

The filter engine works on plain mappings; GrantRecord documents the
fields the default registry filters on and gives callers validated
records to start from.

Example:
    >>> from grant_filters.models import GrantRecord
    >>>
    >>> grant = GrantRecord(id=1, title="School Roof Repairs", status="open",
    ...                     category="Education", budget_min=50000)
    >>> grant.to_record()["status"]
    'open'
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..filter.registry import CATEGORY_VALUES, STATUS_VALUES


class GrantRecord(BaseModel):
    """A grant as seen by the filter engine.

    Attributes:
        id: Grant identifier
        title: Grant title
        status: Lifecycle status (draft, open, closed, awarded, completed)
        category: Funding category
        budget_min: Lower end of the funding range
        budget_max: Upper end of the funding range
        opening_date: Date applications open
        closing_date: Date applications close
        council_id: Council running the grant
    """

    model_config = ConfigDict(
        extra="allow",
        str_strip_whitespace=True,
    )

    id: int = Field(..., description="Grant identifier")
    title: str = Field(..., min_length=1, description="Grant title")
    status: str = Field(default="draft", description="Lifecycle status")
    category: str | None = Field(default=None, description="Funding category")
    budget_min: float | None = Field(default=None, ge=0, description="Minimum budget")
    budget_max: float | None = Field(default=None, ge=0, description="Maximum budget")
    opening_date: date | None = Field(default=None, description="Opening date")
    closing_date: date | None = Field(default=None, description="Closing date")
    council_id: int | None = Field(default=None, description="Council identifier")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Status must be one of the known lifecycle states."""
        v = v.lower()
        if v not in STATUS_VALUES:
            raise ValueError(f"status must be one of {', '.join(STATUS_VALUES)}")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str | None) -> str | None:
        if v is not None and v not in CATEGORY_VALUES:
            raise ValueError(f"Unknown category: {v}")
        return v

    @model_validator(mode="after")
    def check_ranges(self) -> GrantRecord:
        if (
            self.budget_min is not None
            and self.budget_max is not None
            and self.budget_min > self.budget_max
        ):
            raise ValueError("budget_min must not exceed budget_max")
        if (
            self.opening_date is not None
            and self.closing_date is not None
            and self.opening_date > self.closing_date
        ):
            raise ValueError("opening_date must not be after closing_date")
        return self

    def to_record(self) -> dict[str, Any]:
        """Convert to the plain mapping the filter engine evaluates."""
        return self.model_dump()
