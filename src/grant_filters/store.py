"""
Saved Filter Store.

Lifecycle and persistence of named filter expressions: user filters
(private or public) and system presets. The store validates, stores,
retrieves and tracks usage; evaluation is delegated to FilterEngine.

Every mutation is optimistic-concurrency controlled: the store reads the
row, checks the caller's expected version when one is given, and writes
conditionally on the version it read. A write that matches no row raises
ConflictError (or NotFoundError if the row is gone). Mutations are never
retried here.

Example:
    >>> from grant_filters.store import SavedFilterStore
    >>> from grant_filters.storage import SQLiteStorage
    >>>
    >>> store = SavedFilterStore(SQLiteStorage("data/grant_filters.db"))
    >>> saved = store.create(owner_id=1, name="Open Education Grants", expression=expr)
    >>> matches = store.apply(saved.id, records)   # usage_count 0 -> 1
    >>> store.set_visibility(saved.id, caller_id=1, visibility="public")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from .errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .filter.conditions import FilterExpression
from .filter.engine import FilterEngine
from .filter.presets import PresetDefinition, all_presets
from .filter.registry import FieldRegistry, default_registry
from .models.filters import Provenance, SavedFilter, Visibility

if TYPE_CHECKING:
    import pandas as pd

    from .storage.protocol import SavedFilterStorage

logger = structlog.get_logger(__name__)

COPY_SUFFIX = " (Copy)"

ExpressionInput = FilterExpression | Iterable[Mapping[str, Any]]


def _as_expression(expression: ExpressionInput) -> FilterExpression:
    if isinstance(expression, FilterExpression):
        return expression
    return FilterExpression.from_list(expression)


def _as_visibility(value: Visibility | str) -> Visibility:
    try:
        return Visibility(value)
    except ValueError:
        raise ValidationError(f"Visibility must be private or public, got {value!r}") from None


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Filter name must not be empty")
    return cleaned


class SavedFilterStore:
    """Persistence and lifecycle for saved filters.

    Usage:
        store = SavedFilterStore(storage)
        store.seed_presets()

        saved = store.create(1, "Open Education Grants", expr)
        copy = store.duplicate(saved.id, caller_id=2)
        store.delete(copy.id, caller_id=2)
    """

    def __init__(
        self,
        storage: SavedFilterStorage,
        registry: FieldRegistry | None = None,
        engine: FilterEngine | None = None,
    ):
        """Initialize the store.

        Args:
            storage: Backend implementing SavedFilterStorage
            registry: Field registry expressions are validated against
            engine: Engine used by apply (defaults to one on registry)
        """
        self.storage = storage
        self.registry = registry or default_registry()
        self.engine = engine or FilterEngine(self.registry)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, filter_id: int) -> SavedFilter:
        """Get a saved filter by id.

        Raises:
            NotFoundError: If no filter has that id
        """
        row = self.storage.get_filter(filter_id)
        if row is None:
            raise NotFoundError(f"Saved filter not found: {filter_id}", details={"id": filter_id})
        return SavedFilter.from_db_row(row)

    def list_for_owner(self, owner_id: int) -> list[SavedFilter]:
        """Owner's filters plus every public and preset filter, oldest first."""
        rows = self.storage.find_filters(owner_id=owner_id, include_shared=True)
        return [SavedFilter.from_db_row(row) for row in rows]

    def list_public(self) -> list[SavedFilter]:
        """Public and preset filters ordered by name."""
        rows = self.storage.find_filters(include_shared=True, order_by="name")
        return [SavedFilter.from_db_row(row) for row in rows]

    def list_presets(self) -> list[SavedFilter]:
        return [saved for saved in self.list_public() if saved.is_preset]

    def most_used(self, limit: int = 10) -> list[SavedFilter]:
        """Shared filters ordered by usage, most used first."""
        rows = self.storage.find_filters(
            include_shared=True, order_by="usage_count", descending=True, limit=limit
        )
        return [SavedFilter.from_db_row(row) for row in rows]

    def search(self, owner_id: int, query: str) -> list[SavedFilter]:
        """Case-insensitive name search over filters visible to owner_id.

        Args:
            owner_id: User searching
            query: Substring to look for (empty matches everything)

        Returns:
            Matching filters ordered by name
        """
        rows = self.storage.find_filters(
            owner_id=owner_id,
            include_shared=True,
            name_contains=query.strip(),
            order_by="name",
        )
        return [SavedFilter.from_db_row(row) for row in rows]

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(
        self,
        owner_id: int,
        name: str,
        expression: ExpressionInput,
        description: str | None = None,
        visibility: Visibility | str = Visibility.PRIVATE,
    ) -> SavedFilter:
        """Save a new user filter.

        Raises:
            ValidationError: Empty or duplicate name, malformed expression
            UnknownFieldError: Expression names an unregistered field
            InvalidOperatorError: Expression uses an illegal operator
        """
        name = _clean_name(name)
        expr = _as_expression(expression).validate(self.registry)
        self._ensure_name_free(owner_id, name)

        saved = SavedFilter(
            owner_id=owner_id,
            name=name,
            description=description,
            expression=expr,
            visibility=_as_visibility(visibility),
            provenance=Provenance.USER,
        )
        filter_id = self.storage.insert_filter(saved.to_db_dict())
        saved = saved.model_copy(update={"id": filter_id})

        logger.info(
            "saved_filter_created",
            filter_id=filter_id,
            owner_id=owner_id,
            conditions=len(expr),
        )
        return saved

    def set_visibility(
        self,
        filter_id: int,
        caller_id: int,
        visibility: Visibility | str,
        expected_version: int | None = None,
    ) -> SavedFilter:
        """Make a filter public or private.

        Raises:
            InvalidOperationError: If the filter is a preset
            PermissionDeniedError: If caller_id does not own the filter
            ConflictError: If the filter changed since expected_version
        """
        saved = self._load_for_write(filter_id, caller_id, expected_version, "change visibility of")
        visibility = _as_visibility(visibility)
        if saved.visibility == visibility:
            return saved

        updated = self._write(saved, {"is_public": 1 if visibility == Visibility.PUBLIC else 0})
        logger.info(
            "saved_filter_visibility_changed",
            filter_id=filter_id,
            visibility=visibility.value,
        )
        return updated

    def update(
        self,
        filter_id: int,
        caller_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        expression: ExpressionInput | None = None,
        expected_version: int | None = None,
    ) -> SavedFilter:
        """Rename, re-describe or replace the expression of a user filter.

        Raises:
            InvalidOperationError: If the filter is a preset
            PermissionDeniedError: If caller_id does not own the filter
            ValidationError: Empty or duplicate name, malformed expression
            ConflictError: If the filter changed since expected_version
        """
        saved = self._load_for_write(filter_id, caller_id, expected_version, "update")

        changes: dict[str, Any] = {}
        if name is not None:
            cleaned = _clean_name(name)
            if cleaned != saved.name:
                self._ensure_name_free(saved.owner_id, cleaned, exclude_id=saved.id)
                changes["name"] = cleaned
        if description is not None:
            changes["description"] = description or None
        if expression is not None:
            changes["filters"] = _as_expression(expression).validate(self.registry).to_json()

        if not changes:
            return saved

        updated = self._write(saved, changes)
        logger.info("saved_filter_updated", filter_id=filter_id, fields=sorted(changes))
        return updated

    def duplicate(self, filter_id: int, caller_id: int | None = None) -> SavedFilter:
        """Copy a filter into a new private user filter.

        The copy belongs to caller_id (default: the source's owner), is
        named "<name> (Copy)" and starts with zero usage. Duplicating a
        preset yields an editable user filter. The source is not modified.

        Raises:
            ValidationError: No owner could be determined (preset without caller)
            PermissionDeniedError: Source is another user's private filter
        """
        source = self.get(filter_id)
        owner_id = caller_id if caller_id is not None else source.owner_id
        if owner_id is None:
            raise ValidationError("Duplicating a preset requires a caller to own the copy")
        if not source.visible_to(owner_id):
            raise PermissionDeniedError(
                f"User {owner_id} cannot duplicate filter {filter_id}",
                details={"id": filter_id, "caller_id": owner_id},
            )

        name = self._copy_name(owner_id, source.name)
        copy = SavedFilter(
            owner_id=owner_id,
            name=name,
            description=source.description,
            expression=source.expression,
            visibility=Visibility.PRIVATE,
            provenance=Provenance.USER,
        )
        new_id = self.storage.insert_filter(copy.to_db_dict())

        logger.info(
            "saved_filter_duplicated",
            source_id=filter_id,
            filter_id=new_id,
            owner_id=owner_id,
        )
        return copy.model_copy(update={"id": new_id})

    def delete(self, filter_id: int, caller_id: int, expected_version: int | None = None) -> None:
        """Permanently delete a user filter.

        Raises:
            InvalidOperationError: If the filter is a preset
            PermissionDeniedError: If caller_id does not own the filter
            ConflictError: If the filter changed since expected_version
        """
        saved = self._load_for_write(filter_id, caller_id, expected_version, "delete")
        if not self.storage.delete_filter(filter_id, saved.version):
            self._raise_lost_write(filter_id)
        logger.info("saved_filter_deleted", filter_id=filter_id, owner_id=caller_id)

    def apply(
        self,
        target: int | SavedFilter | ExpressionInput,
        records: Iterable[Mapping[str, Any]] | pd.DataFrame,
    ) -> list[Mapping[str, Any]] | pd.DataFrame:
        """Filter records with a saved filter or an ad hoc expression.

        When a saved filter is named, its usage count is incremented once,
        after evaluation succeeds and before results are returned.

        Args:
            target: Saved filter id, SavedFilter, or expression
            records: Records to filter (list of mappings or DataFrame)

        Returns:
            Matching records

        Raises:
            NotFoundError: If a named filter does not exist
            TypeMismatchError: If a record or value has the wrong type
            ConflictError: If the filter changed while it was being applied
        """
        if isinstance(target, bool):
            raise ValidationError("Filter target must be an id, saved filter or expression")

        if isinstance(target, (int, SavedFilter)):
            filter_id = target if isinstance(target, int) else target.id
            if filter_id is None:
                raise ValidationError("Saved filter has not been stored yet")
            saved = self.get(filter_id)

            result = self.engine.apply(saved.expression, records)

            if not self.storage.increment_usage(saved.id, saved.version):
                self._raise_lost_write(saved.id)
            logger.info(
                "saved_filter_applied",
                filter_id=saved.id,
                usage_count=saved.usage_count + 1,
                results=len(result),
            )
            return result

        return self.engine.apply(_as_expression(target), records)

    def seed_presets(self, presets: Iterable[PresetDefinition] | None = None) -> int:
        """Insert preset filters that are not stored yet.

        Args:
            presets: Definitions to seed (defaults to all_presets())

        Returns:
            Number of presets inserted
        """
        existing = {saved.name for saved in self.list_presets()}
        inserted = 0

        for preset in presets if presets is not None else all_presets():
            if preset.name in existing:
                continue
            saved = SavedFilter(
                owner_id=None,
                name=preset.name,
                description=preset.description,
                expression=preset.expression.validate(self.registry),
                visibility=Visibility.PRIVATE,
                provenance=Provenance.PRESET,
            )
            self.storage.insert_filter(saved.to_db_dict())
            existing.add(preset.name)
            inserted += 1

        if inserted:
            logger.info("presets_seeded", count=inserted)
        return inserted

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load_for_write(
        self,
        filter_id: int,
        caller_id: int,
        expected_version: int | None,
        action: str,
    ) -> SavedFilter:
        saved = self.get(filter_id)

        if saved.is_preset:
            raise InvalidOperationError(
                f"Cannot {action} preset filter {filter_id}", details={"id": filter_id}
            )
        if saved.owner_id != caller_id:
            raise PermissionDeniedError(
                f"User {caller_id} cannot {action} filter {filter_id}",
                details={"id": filter_id, "caller_id": caller_id},
            )
        if expected_version is not None and expected_version != saved.version:
            logger.warning(
                "saved_filter_conflict",
                filter_id=filter_id,
                expected_version=expected_version,
                current_version=saved.version,
            )
            raise ConflictError(
                f"Filter {filter_id} is at version {saved.version}, expected {expected_version}",
                details={"id": filter_id, "version": saved.version},
            )
        return saved

    def _write(self, saved: SavedFilter, changes: dict[str, Any]) -> SavedFilter:
        filter_id = int(saved.id or 0)
        if not self.storage.update_filter(filter_id, saved.version, changes):
            self._raise_lost_write(filter_id)
        return self.get(filter_id)

    def _raise_lost_write(self, filter_id: int) -> None:
        if self.storage.get_filter(filter_id) is None:
            raise NotFoundError(f"Saved filter not found: {filter_id}", details={"id": filter_id})
        logger.warning("saved_filter_conflict", filter_id=filter_id)
        raise ConflictError(
            f"Filter {filter_id} was modified concurrently", details={"id": filter_id}
        )

    def _ensure_name_free(
        self, owner_id: int | None, name: str, exclude_id: int | None = None
    ) -> None:
        if self._name_taken(owner_id, name, exclude_id):
            raise ValidationError(
                f"A filter named {name!r} already exists",
                details={"owner_id": owner_id, "name": name},
            )

    def _name_taken(self, owner_id: int | None, name: str, exclude_id: int | None = None) -> bool:
        rows = self.storage.find_filters(owner_id=owner_id, name=name)
        return any(row["owner_id"] == owner_id and row["id"] != exclude_id for row in rows)

    def _copy_name(self, owner_id: int, name: str) -> str:
        candidate = f"{name}{COPY_SUFFIX}"
        number = 2
        while self._name_taken(owner_id, candidate):
            candidate = f"{name} (Copy {number})"
            number += 1
        return candidate
