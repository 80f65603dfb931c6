"""Unit Tests for the PostgreSQL query builder"""

import pytest

from multidb_mcp.builders import PostgresBuilder
from multidb_mcp.models.capabilities import (
    CapabilityKind,
    ConstraintsParams,
    IndexesParams,
    SchemasParams,
    StatsParams,
    TableStatsParams,
    TypesParams,
    ViewsParams,
)
from multidb_mcp.models.statement import StatementKind


@pytest.fixture
def builder() -> PostgresBuilder:
    return PostgresBuilder()


class TestSchemas:
    """Test schema listing."""

    def test_excludes_system_schemas(self, builder: PostgresBuilder):
        """Test that system schemas are filtered out by default."""
        statements = builder.build(
            CapabilityKind.GET_SCHEMAS, SchemasParams(database="pg1")
        )

        assert len(statements) == 1
        sql = statements[0].sql
        assert "NOT IN ('pg_catalog', 'information_schema'" in sql
        assert "'pg_toast'" in sql

    def test_include_system_schemas(self, builder: PostgresBuilder):
        """Test that requesting system schemas drops the exclusion."""
        (statement,) = builder.build(
            CapabilityKind.GET_SCHEMAS,
            SchemasParams(database="pg1", include_system_schemas=True),
        )

        assert "NOT IN" not in statement.sql
        assert "FROM pg_namespace n\nORDER BY n.nspname" in statement.sql

    def test_schema_filter_is_literal(self, builder: PostgresBuilder):
        """Test that the schema name is compared as an escaped literal."""
        (statement,) = builder.build(
            CapabilityKind.GET_SCHEMAS, SchemasParams(database="pg1", schema="o'hara")
        )

        assert "n.nspname = 'o''hara'" in statement.sql


class TestIndexes:
    """Test index listing."""

    def test_all_indexes(self, builder: PostgresBuilder):
        """Test listing every index in the public schema."""
        (statement,) = builder.build(
            CapabilityKind.GET_INDEXES, IndexesParams(database="pg1")
        )

        assert statement.kind is StatementKind.QUERY
        assert "n.nspname = 'public'" in statement.sql
        assert "t.relname =" not in statement.sql
        assert "index_definition" not in statement.sql

    def test_table_filter(self, builder: PostgresBuilder):
        """Test filtering by table."""
        (statement,) = builder.build(
            CapabilityKind.GET_INDEXES, IndexesParams(database="pg1", table="orders")
        )

        assert "t.relname = 'orders'" in statement.sql

    def test_detailed_keeps_structure(self, builder: PostgresBuilder):
        """Test that detailed only widens the projection."""
        basic = builder.indexes(IndexesParams(database="pg1"))[0].sql
        detailed = builder.indexes(IndexesParams(database="pg1", detailed=True))[0].sql

        assert "index_definition" in detailed
        assert "is_partial" in detailed
        assert basic.split("FROM pg_index", 1)[1] == detailed.split("FROM pg_index", 1)[1]

    def test_uses_key_attribute_count(self, builder: PostgresBuilder):
        """Test that index columns are enumerated with indnkeyatts."""
        (statement,) = builder.indexes(IndexesParams(database="pg1"))

        assert "generate_series(0, ix.indnkeyatts - 1)" in statement.sql


class TestConstraints:
    """Test constraint listing."""

    def test_filters(self, builder: PostgresBuilder):
        """Test table and constraint type filters."""
        (statement,) = builder.build(
            CapabilityKind.GET_CONSTRAINTS,
            ConstraintsParams(database="pg1", table="orders", constraint_type="foreign key"),
        )

        assert "tc.table_name = 'orders'" in statement.sql
        assert "tc.constraint_type = 'FOREIGN KEY'" in statement.sql

    def test_definition_from_catalog(self, builder: PostgresBuilder):
        """Test that definitions come from pg_get_constraintdef."""
        (statement,) = builder.constraints(ConstraintsParams(database="pg1"))

        assert "pg_get_constraintdef(pgc.oid)" in statement.sql
        assert "consrc" not in statement.sql


class TestViews:
    """Test view listing."""

    def test_with_definition(self, builder: PostgresBuilder):
        """Test that definitions are included by default."""
        (statement,) = builder.build(
            CapabilityKind.GET_VIEWS, ViewsParams(database="pg1", view="active_users")
        )

        assert "definition AS view_definition" in statement.sql
        assert "viewname = 'active_users'" in statement.sql

    def test_without_definition(self, builder: PostgresBuilder):
        """Test the placeholder when definitions are not wanted."""
        (statement,) = builder.views(ViewsParams(database="pg1", include_definition=False))

        assert "'Definition not included' AS view_definition" in statement.sql


class TestTypes:
    """Test custom type listing."""

    def test_all_types(self, builder: PostgresBuilder):
        """Test listing custom types outside system schemas."""
        (statement,) = builder.build(CapabilityKind.GET_TYPES, TypesParams(database="pg1"))

        assert "FROM pg_type t" in statement.sql
        assert "'enum'" in statement.sql
        assert "t.typname =" not in statement.sql

    def test_type_filter(self, builder: PostgresBuilder):
        """Test filtering by type name."""
        (statement,) = builder.types(TypesParams(database="pg1", type_name="mood"))

        assert "t.typname = 'mood'" in statement.sql


class TestStatistics:
    """Test statistics statement lists."""

    def test_database_stats_basic(self, builder: PostgresBuilder):
        """Test size, connections and largest tables, in that order."""
        statements = builder.build(CapabilityKind.GET_STATS, StatsParams(database="pg1"))

        assert [s.label for s in statements] == [
            "Database size",
            "Connections",
            "Largest tables",
        ]
        assert all(s.kind is StatementKind.QUERY for s in statements)
        assert "pg_database_size" in statements[0].sql
        assert "pg_stat_activity" in statements[1].sql

    def test_database_stats_detailed(self, builder: PostgresBuilder):
        """Test that detailed statistics append index, cache and I/O statements."""
        statements = builder.database_stats(StatsParams(database="pg1", detailed=True))

        assert len(statements) == 6
        assert "pg_buffercache" in statements[4].sql
        assert "pg_stat_database" in statements[5].sql

    def test_table_stats(self, builder: PostgresBuilder):
        """Test table statistics target the quoted table name."""
        statements = builder.build(
            CapabilityKind.GET_TABLE_STATS, TableStatsParams(database="pg1", table="orders")
        )

        assert len(statements) == 3
        assert all("'orders'" in s.sql for s in statements)
        assert "::regclass" not in statements[0].sql

    def test_table_stats_detailed(self, builder: PostgresBuilder):
        """Test detailed table statistics add I/O and bloat statements."""
        statements = builder.table_stats(
            TableStatsParams(database="pg1", table="orders", detailed=True)
        )

        assert [s.label for s in statements][3:] == ["I/O statistics", "Bloat estimate"]
        assert "relhasoids" not in statements[4].sql

    def test_statements_are_independent(self, builder: PostgresBuilder):
        """Test that no statement relies on session state set by another."""
        statements = builder.database_stats(StatsParams(database="pg1", detailed=True))

        for statement in statements:
            assert not statement.sql.upper().startswith(("SET ", "CREATE TEMP"))
            assert ";" not in statement.sql.rstrip()
