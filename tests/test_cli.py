"""
Tests for the command-line interface.
"""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from grant_filters.cli import main
from grant_filters.filter import presets

OPEN_EDUCATION = [
    {"id": "1", "field": "status", "operator": "equals", "value": "open", "logicalOperator": "AND"},
    {
        "id": "2",
        "field": "category",
        "operator": "equals",
        "value": "Education",
        "logicalOperator": "AND",
    },
]

GRANTS_CSV = """id,title,status,category,budget_min,closing_date
1,School Roof Repairs,open,Education,50000,2025-04-01
2,Library Books,closed,Education,5000,2025-01-01
3,Bridge Repairs,open,Infrastructure,250000,2025-06-30
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_env(tmp_path):
    """Config file, filter file and records file in a temp directory."""
    config = tmp_path / "config.toml"
    config.write_text(
        f"""
[database]
path = "{(tmp_path / 'filters.db').as_posix()}"

[logging]
level = "WARNING"
"""
    )
    filters = tmp_path / "open_education.json"
    filters.write_text(json.dumps(OPEN_EDUCATION))
    grants = tmp_path / "grants.csv"
    grants.write_text(GRANTS_CSV)

    return {"config": str(config), "filters": str(filters), "grants": str(grants), "dir": tmp_path}


def invoke(runner, cli_env, *args):
    return runner.invoke(main, ["--config", cli_env["config"], *args])


def create_filter(runner, cli_env, *extra):
    return invoke(
        runner,
        cli_env,
        "create",
        "--owner",
        "1",
        "--name",
        "Open Education Grants",
        "--filters",
        cli_env["filters"],
        *extra,
    )


class TestDatabaseCommands:
    """Tests for db-init, db-stats and seed-presets."""

    def test_db_init_seeds_presets(self, runner, cli_env):
        """Test db-init creates the database and seeds presets."""
        result = invoke(runner, cli_env, "db-init")

        assert result.exit_code == 0, result.output
        assert f"Seeded {len(presets.all_presets())} preset" in result.output
        assert (cli_env["dir"] / "filters.db").exists()

    def test_seed_presets_idempotent(self, runner, cli_env):
        """Test seeding again inserts nothing."""
        invoke(runner, cli_env, "db-init")
        result = invoke(runner, cli_env, "seed-presets")

        assert result.exit_code == 0
        assert "Seeded 0 preset" in result.output

    def test_db_stats(self, runner, cli_env):
        """Test statistics after initialization."""
        invoke(runner, cli_env, "db-init")
        result = invoke(runner, cli_env, "db-stats")

        assert result.exit_code == 0
        assert "Saved Filters" in result.output

    def test_db_stats_missing_database(self, runner, cli_env):
        """Test db-stats before db-init."""
        result = invoke(runner, cli_env, "db-stats")

        assert result.exit_code == 1
        assert "Database not found" in result.output

    def test_invalid_configuration(self, runner, cli_env):
        """Test a bad environment override is reported without a traceback."""
        result = runner.invoke(
            main,
            ["--config", cli_env["config"], "db-stats"],
            env={"GRANT_FILTERS_FILTERS_MOST_USED_LIMIT": "abc"},
        )

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "most_used_limit" in result.output


class TestFilterCommands:
    """Tests for saved filter management commands."""

    def test_create_and_show(self, runner, cli_env):
        """Test creating a filter and showing it as JSON."""
        result = create_filter(runner, cli_env)
        assert result.exit_code == 0, result.output
        assert "Created filter" in result.output

        shown = invoke(runner, cli_env, "show", "1")
        assert shown.exit_code == 0
        assert json.loads(shown.output)["filters"] == OPEN_EDUCATION

    def test_list_and_search(self, runner, cli_env):
        """Test the filter appears in listings and search."""
        create_filter(runner, cli_env)

        listed = invoke(runner, cli_env, "list", "--owner", "1")
        found = invoke(runner, cli_env, "search", "--owner", "1", "education")
        missing = invoke(runner, cli_env, "search", "--owner", "1", "roads")

        assert "Open Education" in listed.output
        assert "Open Education" in found.output
        assert "No filters match" in missing.output

    def test_list_requires_scope(self, runner, cli_env):
        """Test list needs an owner or a shared view."""
        result = invoke(runner, cli_env, "list")
        assert result.exit_code == 2

    def test_share_and_duplicate(self, runner, cli_env):
        """Test sharing then duplicating as another user."""
        create_filter(runner, cli_env)

        shared = invoke(runner, cli_env, "share", "1", "--owner", "1")
        copied = invoke(runner, cli_env, "duplicate", "1", "--owner", "2")

        assert "now public" in shared.output
        assert copied.exit_code == 0
        assert "(Copy)" in copied.output

    def test_delete_by_non_owner(self, runner, cli_env):
        """Test errors are reported with exit status 1."""
        create_filter(runner, cli_env)

        result = invoke(runner, cli_env, "delete", "1", "--owner", "2")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_duplicate_name(self, runner, cli_env):
        """Test creating the same name twice fails."""
        create_filter(runner, cli_env)
        result = create_filter(runner, cli_env)

        assert result.exit_code == 1

    def test_delete(self, runner, cli_env):
        """Test deleting a filter."""
        create_filter(runner, cli_env)

        assert invoke(runner, cli_env, "delete", "1", "--owner", "1").exit_code == 0
        assert invoke(runner, cli_env, "show", "1").exit_code == 1


class TestApplyCommand:
    """Tests for apply."""

    def test_apply_saved(self, runner, cli_env):
        """Test applying a saved filter to CSV records."""
        create_filter(runner, cli_env)

        result = invoke(runner, cli_env, "apply", "--id", "1", cli_env["grants"])

        assert result.exit_code == 0, result.output
        assert "1 of 3 grants match" in result.output
        assert "Matching Grants" in result.output

        shown = json.loads(invoke(runner, cli_env, "show", "1").output)
        assert shown["usage_count"] == 1

    def test_apply_ad_hoc_to_json_records(self, runner, cli_env):
        """Test ad hoc filters over JSON records, exported to CSV."""
        records = cli_env["dir"] / "grants.json"
        records.write_text(
            json.dumps(
                [
                    {"id": 1, "title": "Bridge", "status": "open", "category": "Education"},
                    {"id": 2, "title": "Park", "status": "open", "category": "Recreation"},
                ]
            )
        )
        output = cli_env["dir"] / "matches.csv"

        result = invoke(
            runner,
            cli_env,
            "apply",
            "--filters",
            cli_env["filters"],
            "--output",
            str(output),
            str(records),
        )

        assert result.exit_code == 0, result.output
        assert "1 of 2 grants match" in result.output
        assert "Bridge" in output.read_text()

    def test_apply_needs_one_source(self, runner, cli_env):
        """Test --id and --filters are mutually exclusive and required."""
        result = invoke(runner, cli_env, "apply", cli_env["grants"])
        assert result.exit_code == 2

    def test_apply_type_mismatch(self, runner, cli_env):
        """Test evaluation errors exit with status 1."""
        bad = cli_env["dir"] / "bad.json"
        bad.write_text(
            json.dumps(
                [
                    {
                        "id": "1",
                        "field": "budget_min",
                        "operator": "greater_than",
                        "value": "lots",
                        "logicalOperator": "AND",
                    }
                ]
            )
        )

        result = invoke(runner, cli_env, "apply", "--filters", str(bad), cli_env["grants"])

        assert result.exit_code == 1
        assert "type_mismatch" in result.output
