"""Base query builder defining the per-dialect SQL interface."""

import textwrap
from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Optional

from multidb_mcp.errors import UnsupportedDialectError
from multidb_mcp.models.capabilities import (
    CapabilityKind,
    CapabilityParams,
    ConstraintsParams,
    ExecuteSQLParams,
    IndexesParams,
    SampleDataParams,
    SchemasParams,
    StatsParams,
    TableStatsParams,
    TypesParams,
    UniqueValuesParams,
    ViewsParams,
)
from multidb_mcp.models.config import Dialect
from multidb_mcp.models.statement import SQLStatement, StatementKind, classify_sql


class QueryBuilder(ABC):
    """
    Maps capability parameters to SQL text for one dialect.

    Builders are pure: the same parameters always produce the same
    statements, and nothing is executed here. Caller-supplied names are
    escaped with ``quote_identifier`` or ``quote_literal``; raw WHERE and
    ORDER BY fragments are passed through as given.
    """

    dialect: ClassVar[Dialect]
    identifier_quote: ClassVar[str]
    random_function: ClassVar[str]

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier, doubling any embedded quote characters."""
        q = self.identifier_quote
        return f"{q}{name.replace(q, q + q)}{q}"

    def quote_literal(self, value: str) -> str:
        """Quote a string literal, doubling embedded single quotes."""
        return "'" + value.replace("'", "''") + "'"

    def build(self, kind: CapabilityKind, params: CapabilityParams) -> list[SQLStatement]:
        """
        Build the statements for a capability.

        Args:
            kind: Capability to build
            params: Validated parameters of the matching model

        Returns:
            Statements in execution order

        Raises:
            UnsupportedDialectError: If this dialect cannot serve the capability
        """
        handlers: dict[CapabilityKind, Callable[..., list[SQLStatement]]] = {
            CapabilityKind.EXECUTE_SQL: self.execute_sql,
            CapabilityKind.GET_STATS: self.database_stats,
            CapabilityKind.GET_TABLE_STATS: self.table_stats,
            CapabilityKind.GET_INDEXES: self.indexes,
            CapabilityKind.GET_CONSTRAINTS: self.constraints,
            CapabilityKind.GET_VIEWS: self.views,
            CapabilityKind.GET_TYPES: self.types,
            CapabilityKind.GET_SCHEMAS: self.schemas,
            CapabilityKind.GET_SAMPLE_DATA: self.sample_data,
            CapabilityKind.GET_UNIQUE_VALUES: self.unique_values,
        }

        handler = handlers.get(kind)
        if handler is None:
            raise UnsupportedDialectError(self.dialect.value, kind.value)
        return handler(params)

    def execute_sql(self, params: ExecuteSQLParams) -> list[SQLStatement]:
        """Wrap free-form SQL, classifying it when the caller did not."""
        if params.is_query is None:
            kind = classify_sql(params.sql)
        elif params.is_query:
            kind = StatementKind.QUERY
        else:
            kind = StatementKind.STATEMENT

        return [
            SQLStatement(sql=params.sql, kind=kind, params=tuple(params.params or ()))
        ]

    @abstractmethod
    def database_stats(self, params: StatsParams) -> list[SQLStatement]:
        """
        Independent database-level statistics statements.

        Size, connection counts and the largest tables; when detailed, also
        buffer/cache and I/O statements.
        """
        ...

    @abstractmethod
    def table_stats(self, params: TableStatsParams) -> list[SQLStatement]:
        """Independent statistics statements for one table."""
        ...

    @abstractmethod
    def indexes(self, params: IndexesParams) -> list[SQLStatement]:
        """Index listing, optionally for one table."""
        ...

    @abstractmethod
    def constraints(self, params: ConstraintsParams) -> list[SQLStatement]:
        """Constraint listing, optionally filtered by table and type."""
        ...

    @abstractmethod
    def views(self, params: ViewsParams) -> list[SQLStatement]:
        """View listing, with or without definitions."""
        ...

    @abstractmethod
    def types(self, params: TypesParams) -> list[SQLStatement]:
        """User-defined type listing."""
        ...

    @abstractmethod
    def schemas(self, params: SchemasParams) -> list[SQLStatement]:
        """Schema listing."""
        ...

    def sample_data(self, params: SampleDataParams) -> list[SQLStatement]:
        """SELECT * with optional filter, ordering or random order, and a limit."""
        table = self.quote_identifier(params.table)

        parts = [f"SELECT * FROM {table}"]
        if params.where:
            parts.append(f"WHERE {params.where}")

        if params.random:
            parts.append(f"ORDER BY {self.random_function}")
        elif params.order_by:
            parts.append(f"ORDER BY {params.order_by}")

        parts.append(f"LIMIT {params.limit}")
        return [SQLStatement(sql=" ".join(parts), label="Sample rows")]

    def unique_values(self, params: UniqueValuesParams) -> list[SQLStatement]:
        """Distinct values of a column, with counts and percentages by default."""
        table = self.quote_identifier(params.table)
        column = self.quote_identifier(params.column)

        if params.include_counts:
            parts = [
                f"SELECT {column}, COUNT(*) AS count, "
                f"ROUND(COUNT(*) * 100.0 / (SELECT COUNT(*) FROM {table}), 2) AS percentage "
                f"FROM {table}"
            ]
        else:
            parts = [f"SELECT DISTINCT {column} FROM {table}"]

        where = self._combine_predicates(
            params.where, None if params.include_nulls else f"{column} IS NOT NULL"
        )
        if where:
            parts.append(f"WHERE {where}")

        if params.include_counts:
            parts.append(f"GROUP BY {column} ORDER BY COUNT(*) DESC")
        else:
            parts.append(f"ORDER BY {column}")

        parts.append(f"LIMIT {params.limit}")
        return [SQLStatement(sql=" ".join(parts), label="Unique values")]

    @staticmethod
    def _combine_predicates(raw: Optional[str], extra: Optional[str]) -> Optional[str]:
        """AND a caller fragment with a generated clause, keeping the fragment's grouping."""
        if raw and extra:
            return f"({raw}) AND {extra}"
        return raw or extra

    @staticmethod
    def _where(conditions: list[str]) -> str:
        """Render a WHERE clause from conditions, or nothing when empty."""
        if not conditions:
            return ""
        return "WHERE " + "\n  AND ".join(conditions)

    @staticmethod
    def _query(sql: str, label: Optional[str] = None) -> SQLStatement:
        """Wrap generated catalog SQL, trimming template indentation."""
        lines = textwrap.dedent(sql).splitlines()
        text = "\n".join(line.rstrip() for line in lines if line.strip())
        return SQLStatement(sql=text, kind=StatementKind.QUERY, label=label)
