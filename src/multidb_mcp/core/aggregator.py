"""Text report assembly for capability results."""

from typing import Any, Optional, Sequence

from multidb_mcp.models.capabilities import (
    CapabilityKind,
    CapabilityParams,
    ConstraintsParams,
    IndexesParams,
    SampleDataParams,
    SchemasParams,
    TableStatsParams,
    TypesParams,
    UniqueValuesParams,
    ViewsParams,
)
from multidb_mcp.models.config import Dialect
from multidb_mcp.models.statement import StatementOutcome

UNKNOWN = "Unknown"


class ResponseAggregator:
    """
    Composes the text returned to the caller.

    Sections appear in the order the statements were built. Failed
    statements are rendered inline with their SQL and error message.
    """

    def heading(
        self,
        kind: CapabilityKind,
        params: CapabilityParams,
        connection_id: str,
        dialect: Dialect,
    ) -> Optional[str]:
        """Title line identifying the target connection and object, if any."""
        if kind is CapabilityKind.GET_STATS:
            return f"# Database Statistics for {connection_id} ({dialect.value})"

        if kind is CapabilityKind.GET_TABLE_STATS:
            assert isinstance(params, TableStatsParams)
            return f"# Table Statistics for {connection_id}.{params.table}"

        if kind is CapabilityKind.GET_INDEXES:
            assert isinstance(params, IndexesParams)
            if params.table:
                return f"# Indexes for Table {params.table} in Database {connection_id}"
            return f"# All Indexes in Database {connection_id}"

        if kind is CapabilityKind.GET_CONSTRAINTS:
            assert isinstance(params, ConstraintsParams)
            prefix = params.constraint_type.upper() if params.constraint_type else "All"
            if params.table:
                return f"# {prefix} Constraints for Table {params.table} in Database {connection_id}"
            return f"# {prefix} Constraints in Database {connection_id}"

        if kind is CapabilityKind.GET_VIEWS:
            assert isinstance(params, ViewsParams)
            if params.view:
                return f"# View Definition for {params.view} in Database {connection_id}"
            return f"# All Views in Database {connection_id}"

        if kind is CapabilityKind.GET_TYPES:
            assert isinstance(params, TypesParams)
            if params.type_name:
                return f"# Custom Data Type Definition for {params.type_name} in Database {connection_id}"
            return f"# All Custom Data Types in Database {connection_id}"

        if kind is CapabilityKind.GET_SCHEMAS:
            assert isinstance(params, SchemasParams)
            if params.schema_name:
                return f"# Schema Information for {params.schema_name} in Database {connection_id}"
            return f"# All Schemas in Database {connection_id}"

        if kind is CapabilityKind.GET_SAMPLE_DATA:
            assert isinstance(params, SampleDataParams)
            return f"# Sample Data from Table {params.table} in Database {connection_id}"

        if kind is CapabilityKind.GET_UNIQUE_VALUES:
            assert isinstance(params, UniqueValuesParams)
            return (
                f"# Unique Values in Column {params.column} of Table {params.table} "
                f"in Database {connection_id}"
            )

        # Free-form SQL returns the executor output as is
        return None

    def render_outcome(self, outcome: StatementOutcome) -> str:
        """One section: the formatted result, or the SQL and error that replaced it."""
        if outcome.failed:
            return f"Error executing query: {outcome.statement.sql}\n{outcome.error}\n\n"
        return f"{outcome.output or ''}\n\n"

    def aggregate(
        self, heading: Optional[str], outcomes: Sequence[StatementOutcome]
    ) -> str:
        """
        Build the report for one call.

        Args:
            heading: Title line, or None for no title
            outcomes: Statement outcomes in execution order

        Returns:
            Report text
        """
        if heading is None and len(outcomes) == 1 and not outcomes[0].failed:
            return outcomes[0].output or ""

        parts = [f"{heading}\n\n"] if heading else []
        labelled = len(outcomes) > 1
        for outcome in outcomes:
            if labelled and outcome.statement.label:
                parts.append(f"## {outcome.statement.label}\n\n")
            parts.append(self.render_outcome(outcome))

        return "".join(parts).rstrip("\n") + "\n"

    def database_table(self, rows: Sequence[dict[str, Any]]) -> str:
        """
        Markdown table of registered connections.

        Args:
            rows: One dict per connection with id, type, host, port, database
                and description keys; missing values render as "Unknown"

        Returns:
            Table text, or a notice when nothing is registered
        """
        lines = [
            "Available databases:",
            "",
            "| # | Database ID | Type | Host | Port | Database Name | Description |",
            "|---|------------|------|------|------|--------------|-------------|",
        ]

        for position, row in enumerate(rows, start=1):
            cells = [
                str(position),
                row.get("id") or UNKNOWN,
                row.get("type") or UNKNOWN,
                row.get("host") or UNKNOWN,
                str(row.get("port") or UNKNOWN),
                row.get("database") or UNKNOWN,
                row.get("description") or "",
            ]
            lines.append("| " + " | ".join(_escape_cell(c) for c in cells) + " |")

        if not rows:
            lines.append("No databases configured.")

        return "\n".join(lines) + "\n"


def _escape_cell(value: str) -> str:
    # Pipes and newlines would break the table row
    return value.replace("|", "\\|").replace("\n", " ")
