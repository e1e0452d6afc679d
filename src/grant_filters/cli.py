"""
Command-line interface for grant filters.

This module provides the main CLI entry points using Click.

Commands:
- db-init: Initialize database (and seed presets)
- db-stats: Show database statistics
- seed-presets: Insert missing preset filters
- list / search / show: Browse saved filters
- create / share / duplicate / delete: Manage saved filters
- apply: Run a saved or ad hoc filter over a JSON/CSV file of grants

Example:
    $ grant-filters --help
    $ grant-filters db-init --config config/local.toml
    $ grant-filters create --owner 1 --name "Open Education" --filters edu.json
    $ grant-filters apply --id 6 grants.csv
"""

from __future__ import annotations

import functools
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click
import pandas as pd
import pydantic
from rich.console import Console
from rich.table import Table

from grant_filters import __version__
from grant_filters.config import Settings, get_settings, load_settings
from grant_filters.errors import FilterError
from grant_filters.filter.conditions import FilterExpression
from grant_filters.filter.registry import default_registry
from grant_filters.models.filters import SavedFilter, Visibility
from grant_filters.storage import SQLiteStorage
from grant_filters.store import SavedFilterStore
from grant_filters.utils.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    error_fields,
    get_logger,
)

console = Console()

F = TypeVar("F", bound=Callable[..., Any])

# Grant columns shown by `apply`, when present in the records
RESULT_COLUMNS = ("id", "title", "status", "category", "budget_min", "closing_date")


def handle_errors(func: F) -> F:
    """Print FilterError in red and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except FilterError as e:
            get_logger(__name__).debug("command_failed", **error_fields(e))
            console.print(f"[red]Error ({e.kind}):[/red] {e}")
            sys.exit(1)

    return wrapper  # type: ignore[return-value]


def _open_storage(settings: Settings) -> SQLiteStorage:
    storage = SQLiteStorage(
        settings.database_path,
        timeout=settings.database.timeout_seconds,
        wal_mode=settings.database.wal_mode,
    )
    storage.initialize()
    return storage


def _open_store(ctx: click.Context) -> SavedFilterStore:
    settings: Settings = ctx.obj["settings"]
    storage = _open_storage(settings)
    ctx.call_on_close(storage.close)
    return SavedFilterStore(storage, default_registry(settings.filters.council_ids))


def _load_filters(path: Path) -> FilterExpression:
    """Read a wire-format filter list (or an object with a "filters" key)."""
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("filters", [])
    return FilterExpression.from_list(data)


def _load_records(path: Path) -> pd.DataFrame:
    """Load grant records from a JSON or CSV file."""
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            return pd.read_csv(path)
        if suffix in (".json", ".jsonl"):
            return pd.read_json(path, lines=suffix == ".jsonl", convert_dates=False)
    except ValueError as e:
        raise click.BadParameter(f"Cannot read records from {path}: {e}") from e
    raise click.BadParameter(f"Unsupported records format: {path.suffix or path.name}")


def _filters_table(title: str, filters: list[SavedFilter]) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Owner", justify="right")
    table.add_column("Kind")
    table.add_column("Conditions", justify="right")
    table.add_column("Uses", justify="right")

    for saved in filters:
        if saved.is_preset:
            kind = "[magenta]preset[/magenta]"
        elif saved.is_public:
            kind = "[green]public[/green]"
        else:
            kind = "private"
        table.add_row(
            str(saved.id),
            saved.name,
            "-" if saved.owner_id is None else str(saved.owner_id),
            kind,
            str(len(saved.expression)),
            f"{saved.usage_count:,}",
        )
    return table


@click.group()
@click.version_option(version=__version__, prog_name="grant-filters")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """Grant Filters CLI.

    Build, save, share and apply filters over grant records.
    """
    ctx.ensure_object(dict)

    # Load settings
    try:
        settings = load_settings(config) if config else get_settings()
    except pydantic.ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose

    configure_from_settings(settings.logging, verbose=verbose)

    clear_context()
    bind_context(command=ctx.invoked_subcommand)


@main.command("db-init")
@click.pass_context
@handle_errors
def db_init(ctx: click.Context) -> None:
    """Initialize the database schema.

    Creates all tables, indexes, and views if they don't exist, then seeds
    preset filters unless disabled in configuration. Safe to run multiple
    times.
    """
    settings: Settings = ctx.obj["settings"]
    logger = get_logger(__name__)

    db_path = settings.database_path
    console.print(f"Initializing database: [cyan]{db_path}[/cyan]")

    store = _open_store(ctx)
    logger.info("database_initialized", path=str(db_path))
    console.print("[green]✓[/green] Database initialized successfully")

    if settings.filters.seed_presets:
        inserted = store.seed_presets()
        console.print(f"[green]✓[/green] Seeded {inserted} preset filter(s)")


@main.command("db-stats")
@click.pass_context
@handle_errors
def db_stats(ctx: click.Context) -> None:
    """Show database statistics."""
    settings: Settings = ctx.obj["settings"]

    db_path = settings.database_path

    if not db_path.exists():
        console.print(f"[red]Database not found:[/red] {db_path}")
        console.print("Run 'grant-filters db-init' to create it.")
        sys.exit(1)

    storage = SQLiteStorage(db_path)
    stats = storage.get_stats()

    table = Table(title="Database Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Database Path", str(db_path))
    table.add_row("File Size", f"{stats.get('file_size_mb', 0):.2f} MB")
    table.add_row("", "")
    table.add_row("Saved Filters", f"{stats['saved_filters_count']:,}")
    table.add_row("Presets", f"{stats['preset_count']:,}")
    table.add_row("Public", f"{stats['public_count']:,}")
    table.add_row("Private", f"{stats['private_count']:,}")
    table.add_row("", "")
    table.add_row("Owners", f"{stats['owner_count']:,}")
    table.add_row("Total Uses", f"{stats['total_usage']:,}")

    console.print(table)
    storage.close()


@main.command("seed-presets")
@click.pass_context
@handle_errors
def seed_presets(ctx: click.Context) -> None:
    """Insert preset filters that are missing from the database."""
    store = _open_store(ctx)
    inserted = store.seed_presets()
    console.print(f"[green]✓[/green] Seeded {inserted} preset filter(s)")


@main.command("list")
@click.option("--owner", "-o", type=int, help="User id")
@click.option("--public", "public_only", is_flag=True, help="Only public and preset filters")
@click.option("--most-used", is_flag=True, help="Shared filters ordered by usage")
@click.pass_context
@handle_errors
def list_cmd(ctx: click.Context, owner: int | None, public_only: bool, most_used: bool) -> None:
    """List filters visible to a user."""
    store = _open_store(ctx)
    settings: Settings = ctx.obj["settings"]

    if most_used:
        filters = store.most_used(settings.filters.most_used_limit)
        title = "Most Used Filters"
    elif public_only:
        filters = store.list_public()
        title = "Public Filters"
    elif owner is not None:
        filters = store.list_for_owner(owner)
        title = f"Filters for user {owner}"
    else:
        raise click.UsageError("Give --owner, --public or --most-used")

    if not filters:
        console.print("[yellow]No saved filters[/yellow]")
        return
    console.print(_filters_table(title, filters))


@main.command("search")
@click.option("--owner", "-o", type=int, required=True, help="User id")
@click.argument("query")
@click.pass_context
@handle_errors
def search(ctx: click.Context, owner: int, query: str) -> None:
    """Search visible filters by name."""
    store = _open_store(ctx)
    filters = store.search(owner, query)

    if not filters:
        console.print(f"[yellow]No filters match[/yellow] {query!r}")
        return
    console.print(_filters_table(f"Filters matching {query!r}", filters))


@main.command("show")
@click.argument("filter_id", type=int)
@click.pass_context
@handle_errors
def show(ctx: click.Context, filter_id: int) -> None:
    """Show one saved filter as JSON."""
    store = _open_store(ctx)
    console.print_json(data=store.get(filter_id).to_api_dict())


@main.command("create")
@click.option("--owner", "-o", type=int, required=True, help="Owning user id")
@click.option("--name", "-n", required=True, help="Filter name")
@click.option(
    "--filters",
    "-f",
    "filters_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON file with the filter conditions",
)
@click.option("--description", "-d", help="Filter description")
@click.option("--public", is_flag=True, help="Share with all users")
@click.pass_context
@handle_errors
def create(
    ctx: click.Context,
    owner: int,
    name: str,
    filters_path: Path,
    description: str | None,
    public: bool,
) -> None:
    """Save a new filter."""
    store = _open_store(ctx)
    saved = store.create(
        owner,
        name,
        _load_filters(filters_path),
        description=description,
        visibility=Visibility.PUBLIC if public else Visibility.PRIVATE,
    )
    console.print(f"[green]✓[/green] Created filter [cyan]{saved.id}[/cyan]: {saved.name}")


@main.command("share")
@click.argument("filter_id", type=int)
@click.option("--owner", "-o", type=int, required=True, help="Owning user id")
@click.option("--private", is_flag=True, help="Make the filter private again")
@click.option("--expected-version", type=int, help="Fail if the filter has changed")
@click.pass_context
@handle_errors
def share(
    ctx: click.Context,
    filter_id: int,
    owner: int,
    private: bool,
    expected_version: int | None,
) -> None:
    """Make a filter public (or private with --private)."""
    store = _open_store(ctx)
    visibility = Visibility.PRIVATE if private else Visibility.PUBLIC
    saved = store.set_visibility(filter_id, owner, visibility, expected_version)
    console.print(f"[green]✓[/green] Filter {saved.id} is now {saved.visibility.value}")


@main.command("duplicate")
@click.argument("filter_id", type=int)
@click.option("--owner", "-o", type=int, required=True, help="User who will own the copy")
@click.pass_context
@handle_errors
def duplicate(ctx: click.Context, filter_id: int, owner: int) -> None:
    """Copy a filter into a new private filter."""
    store = _open_store(ctx)
    copy = store.duplicate(filter_id, owner)
    console.print(f"[green]✓[/green] Created filter [cyan]{copy.id}[/cyan]: {copy.name}")


@main.command("delete")
@click.argument("filter_id", type=int)
@click.option("--owner", "-o", type=int, required=True, help="Owning user id")
@click.option("--expected-version", type=int, help="Fail if the filter has changed")
@click.pass_context
@handle_errors
def delete(ctx: click.Context, filter_id: int, owner: int, expected_version: int | None) -> None:
    """Permanently delete a filter."""
    store = _open_store(ctx)
    store.delete(filter_id, owner, expected_version)
    console.print(f"[green]✓[/green] Deleted filter {filter_id}")


@main.command("apply")
@click.argument(
    "records_path",
    metavar="RECORDS",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--id", "filter_id", type=int, help="Saved filter id")
@click.option(
    "--filters",
    "-f",
    "filters_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with ad hoc filter conditions",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write matching records to a .csv or .json file",
)
@click.pass_context
@handle_errors
def apply(
    ctx: click.Context,
    records_path: Path,
    filter_id: int | None,
    filters_path: Path | None,
    output: Path | None,
) -> None:
    """Apply a saved filter (--id) or ad hoc filters (--filters) to RECORDS.

    RECORDS is a JSON or CSV file of grants.
    """
    if (filter_id is None) == (filters_path is None):
        raise click.UsageError("Give exactly one of --id or --filters")

    store = _open_store(ctx)
    records = _load_records(records_path)

    if filter_id is not None:
        result = store.apply(filter_id, records)
    else:
        result = store.apply(_load_filters(filters_path), records)  # type: ignore[arg-type]

    console.print(f"[bold]{len(result):,}[/bold] of {len(records):,} grants match")

    if output is not None:
        if output.suffix.lower() == ".csv":
            result.to_csv(output, index=False)
        else:
            result.to_json(output, orient="records", indent=2)
        console.print(f"[green]Exported to:[/green] {output}")
        return

    if len(result) == 0:
        return

    columns = [c for c in RESULT_COLUMNS if c in result.columns] or list(result.columns)
    table = Table(title="Matching Grants")
    for column in columns:
        table.add_column(column)
    for _, row in result.iterrows():
        table.add_row(*("" if pd.isna(row[c]) else str(row[c]) for c in columns))
    console.print(table)


if __name__ == "__main__":
    main()
