"""Module Tests for ResponseAggregator

Validates:
- Headings per capability
- Section order and inline error rendering
- The connection table of list_databases
"""

import pytest

from multidb_mcp.core import ResponseAggregator
from multidb_mcp.models.capabilities import (
    CapabilityKind,
    ConstraintsParams,
    ExecuteSQLParams,
    IndexesParams,
    StatsParams,
    TableStatsParams,
    UniqueValuesParams,
)
from multidb_mcp.models.config import Dialect
from multidb_mcp.models.statement import SQLStatement, StatementOutcome


@pytest.fixture
def aggregator() -> ResponseAggregator:
    return ResponseAggregator()


def ok(sql: str, output: str, label: str = "") -> StatementOutcome:
    return StatementOutcome(statement=SQLStatement(sql=sql, label=label or None), output=output)


def failed(sql: str, error: str, label: str = "") -> StatementOutcome:
    return StatementOutcome(statement=SQLStatement(sql=sql, label=label or None), error=error)


class TestHeadings:
    """Test report headings."""

    @pytest.mark.parametrize(
        "kind, params, expected",
        [
            (
                CapabilityKind.GET_STATS,
                StatsParams(database="pg1"),
                "# Database Statistics for pg1 (postgres)",
            ),
            (
                CapabilityKind.GET_TABLE_STATS,
                TableStatsParams(database="pg1", table="orders"),
                "# Table Statistics for pg1.orders",
            ),
            (
                CapabilityKind.GET_INDEXES,
                IndexesParams(database="pg1"),
                "# All Indexes in Database pg1",
            ),
            (
                CapabilityKind.GET_INDEXES,
                IndexesParams(database="pg1", table="orders"),
                "# Indexes for Table orders in Database pg1",
            ),
            (
                CapabilityKind.GET_CONSTRAINTS,
                ConstraintsParams(database="pg1", table="orders", constraint_type="unique"),
                "# UNIQUE Constraints for Table orders in Database pg1",
            ),
            (
                CapabilityKind.GET_UNIQUE_VALUES,
                UniqueValuesParams(database="pg1", table="orders", column="status"),
                "# Unique Values in Column status of Table orders in Database pg1",
            ),
        ],
    )
    def test_heading(self, aggregator: ResponseAggregator, kind, params, expected: str):
        """Test the heading of each capability."""
        assert aggregator.heading(kind, params, "pg1", Dialect.POSTGRES) == expected

    def test_no_heading_for_sql(self, aggregator: ResponseAggregator):
        """Test that free-form SQL has no heading."""
        params = ExecuteSQLParams(database="pg1", sql="SELECT 1")

        assert aggregator.heading(CapabilityKind.EXECUTE_SQL, params, "pg1", Dialect.POSTGRES) is None


class TestAggregate:
    """Test report assembly."""

    def test_sql_output_unchanged(self, aggregator: ResponseAggregator):
        """Test that a single headless result is returned as is."""
        assert aggregator.aggregate(None, [ok("SELECT 1", '[{"x": 1}]')]) == '[{"x": 1}]'

    def test_sections_in_order(self, aggregator: ResponseAggregator):
        """Test that sections keep statement order and carry inline errors."""
        outcomes = [
            ok("SELECT a", "first", label="A"),
            failed("SELECT b", "permission denied", label="B"),
            ok("SELECT c", "third", label="C"),
        ]

        report = aggregator.aggregate("# Title", outcomes)

        assert report == (
            "# Title\n\n"
            "## A\n\nfirst\n\n"
            "## B\n\nError executing query: SELECT b\npermission denied\n\n"
            "## C\n\nthird\n"
        )

    def test_single_section_has_no_label(self, aggregator: ResponseAggregator):
        """Test that a one-statement report shows only the heading and result."""
        report = aggregator.aggregate("# All Indexes in Database pg1", [ok("SELECT", "rows", label="Indexes")])

        assert report == "# All Indexes in Database pg1\n\nrows\n"


class TestDatabaseTable:
    """Test the list_databases table."""

    def test_rows(self, aggregator: ResponseAggregator):
        """Test one row per connection with placeholders for missing values."""
        table = aggregator.database_table(
            [
                {
                    "id": "pg1",
                    "type": "postgres",
                    "host": "db",
                    "port": 5432,
                    "database": "shop",
                    "description": "Orders | Billing",
                },
                {"id": "broken"},
            ]
        )

        lines = table.splitlines()
        assert lines[0] == "Available databases:"
        assert lines[2].startswith("| # | Database ID | Type | Host | Port |")
        assert lines[4] == "| 1 | pg1 | postgres | db | 5432 | shop | Orders \\| Billing |"
        assert lines[5] == "| 2 | broken | Unknown | Unknown | Unknown | Unknown |  |"

    def test_empty(self, aggregator: ResponseAggregator):
        """Test the notice when nothing is configured."""
        table = aggregator.database_table([])

        assert table.rstrip().endswith("No databases configured.")
