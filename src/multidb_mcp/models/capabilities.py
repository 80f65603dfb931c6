"""Capability catalog: names, descriptions and typed parameter models."""

import types
from enum import Enum
from typing import Any, Optional, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class CapabilityKind(str, Enum):
    """Abstract operations exposed at the system boundary; values are tool names."""

    EXECUTE_SQL = "sql"
    LIST_DATABASES = "list_databases"
    GET_STATS = "db_stats"
    GET_TABLE_STATS = "table_stats"
    GET_INDEXES = "get_indexes"
    GET_CONSTRAINTS = "get_constraints"
    GET_VIEWS = "get_views"
    GET_TYPES = "get_types"
    GET_SCHEMAS = "get_schemas"
    GET_SAMPLE_DATA = "get_sample_data"
    GET_UNIQUE_VALUES = "get_unique_values"


class CapabilityParams(BaseModel):
    """Base for per-capability parameters. Blank optional filters mean "all"."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, str) and not v.strip() and info.field_name:
            field = cls.model_fields[info.field_name]
            if not field.is_required() and field.default is None:
                return None
        return v


class ListDatabasesParams(CapabilityParams):
    """ListDatabases takes no parameters."""


class ConnectionParams(CapabilityParams):
    database: str = Field(..., min_length=1, description="Database ID to use")


class ExecuteSQLParams(ConnectionParams):
    sql: str = Field(
        ..., min_length=1, description="SQL query or statement to execute"
    )
    database: str = Field(
        ..., min_length=1, description="Database ID to execute the SQL on"
    )
    params: Optional[list[str]] = Field(None, description="SQL parameters")
    is_query: Optional[bool] = Field(
        None,
        alias="isQuery",
        description=(
            "Set to true for SELECT queries, false for statements "
            "(INSERT, UPDATE, DELETE). Auto-detected when omitted"
        ),
    )


class StatsParams(ConnectionParams):
    database: str = Field(
        ..., min_length=1, description="Database ID to get statistics for"
    )
    detailed: bool = Field(
        default=False,
        description="Whether to include detailed statistics (may be slower)",
    )


class TableStatsParams(ConnectionParams):
    table: str = Field(
        ..., min_length=1, description="Table name to get statistics for"
    )
    detailed: bool = Field(
        default=False,
        description="Whether to include detailed statistics (may be slower)",
    )


class IndexesParams(ConnectionParams):
    table: Optional[str] = Field(
        None,
        description="Table name to get indexes for (optional, leave empty for all tables)",
    )
    detailed: bool = Field(
        default=False, description="Whether to include detailed index information"
    )


class ConstraintsParams(ConnectionParams):
    table: Optional[str] = Field(
        None,
        description="Table name to get constraints for (optional, leave empty for all tables)",
    )
    constraint_type: Optional[str] = Field(
        None,
        description=(
            "Type of constraint to retrieve "
            "(optional: PRIMARY KEY, FOREIGN KEY, UNIQUE, CHECK)"
        ),
    )


class ViewsParams(ConnectionParams):
    view: Optional[str] = Field(
        None,
        description="View name to get definition for (optional, leave empty for all views)",
    )
    include_definition: bool = Field(
        default=True,
        description="Whether to include the full SQL definition of each view",
    )


class TypesParams(ConnectionParams):
    type_name: Optional[str] = Field(
        None,
        description="Type name to get definition for (optional, leave empty for all types)",
    )


class SchemasParams(ConnectionParams):
    # "schema" would shadow BaseModel.schema, so the field is aliased
    schema_name: Optional[str] = Field(
        None,
        alias="schema",
        description="Schema name to get information for (optional, leave empty for all schemas)",
    )
    include_system_schemas: bool = Field(
        default=False,
        description="Whether to include system schemas like pg_catalog and information_schema",
    )


class SampleDataParams(ConnectionParams):
    table: str = Field(
        ..., min_length=1, description="Table name to get sample data from"
    )
    limit: int = Field(
        default=10, ge=1, description="Maximum number of rows to retrieve"
    )
    where: Optional[str] = Field(
        None, description="WHERE clause to filter the data (optional)"
    )
    order_by: Optional[str] = Field(
        None, description="ORDER BY clause to sort the data (optional)"
    )
    random: bool = Field(
        default=False, description="Whether to retrieve random rows"
    )


class UniqueValuesParams(ConnectionParams):
    table: str = Field(
        ..., min_length=1, description="Table name containing the column"
    )
    column: str = Field(
        ..., min_length=1, description="Column name to get unique values from"
    )
    limit: int = Field(
        default=100, ge=1, description="Maximum number of unique values to retrieve"
    )
    where: Optional[str] = Field(
        None, description="WHERE clause to filter the data (optional)"
    )
    include_counts: bool = Field(
        default=True, description="Whether to include counts for each unique value"
    )
    include_nulls: bool = Field(
        default=True, description="Whether to include NULL values"
    )


_JSON_TYPES: dict[type, str] = {
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
}


def _json_schema_for(annotation: Any) -> dict[str, Any]:
    """Map a (possibly Optional) field annotation to a JSON schema fragment."""
    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return _json_schema_for(members[0])
    if origin is list:
        (item,) = get_args(annotation)
        return {"type": "array", "items": _json_schema_for(item)}
    if annotation in _JSON_TYPES:
        return {"type": _JSON_TYPES[annotation]}
    raise TypeError(f"No JSON schema mapping for {annotation!r}")


class CapabilitySpec(BaseModel):
    """Declaration of one capability at the invocation boundary."""

    model_config = ConfigDict(frozen=True)

    kind: CapabilityKind
    title: str = Field(..., description="Short description")
    description: str = Field(..., description="Long human-readable description")
    subject: str = Field(
        ..., description="What the capability reports on, used in error messages"
    )
    params_model: type[CapabilityParams]
    multi_statement: bool = Field(
        default=False,
        description="Statement failures are reported inline instead of failing the call",
    )
    max_response_chars: int = Field(
        default=8000, description="Response size limit in characters"
    )

    @property
    def name(self) -> str:
        return self.kind.value

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the parameters, derived from the params model."""
        properties: dict[str, Any] = {}
        required: list[str] = []

        for field_name, field in self.params_model.model_fields.items():
            key = field.alias or field_name
            prop = _json_schema_for(field.annotation)
            if field.description:
                prop["description"] = field.description
            if field.is_required():
                required.append(key)
            elif field.default is not None:
                prop["default"] = field.default
            properties[key] = prop

        return {"type": "object", "properties": properties, "required": required}

    def parse_params(self, arguments: Optional[dict[str, Any]]) -> CapabilityParams:
        """Validate raw arguments (pydantic.ValidationError on failure)."""
        return self.params_model.model_validate(arguments or {})


CATALOG: dict[CapabilityKind, CapabilitySpec] = {
    spec.kind: spec
    for spec in [
        CapabilitySpec(
            kind=CapabilityKind.EXECUTE_SQL,
            subject="SQL execution",
            title="Execute SQL on any database",
            description=(
                "Execute SQL queries or statements on any configured database. "
                "Statements starting with SELECT, SHOW, DESCRIBE or EXPLAIN are run "
                "as queries unless isQuery says otherwise; everything else is run "
                "as a data-changing statement."
            ),
            params_model=ExecuteSQLParams,
            max_response_chars=10000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.LIST_DATABASES,
            subject="database listing",
            title="List configured databases",
            description=(
                "List all configured database connections with detailed information "
                "including database name, host, port, and type"
            ),
            params_model=ListDatabasesParams,
            max_response_chars=5000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_STATS,
            subject="statistics",
            title="Retrieve comprehensive database statistics and metrics",
            description=(
                "Retrieve comprehensive database statistics and metrics. Statistics "
                "include database size, number of connections, the largest tables, "
                "and, when detailed, index usage, buffer and cache usage and I/O "
                "counters, depending on the database type. Each statistic is "
                "gathered independently; one failing does not hide the others."
            ),
            params_model=StatsParams,
            multi_statement=True,
            max_response_chars=20000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_TABLE_STATS,
            subject="table statistics",
            title="Retrieve detailed statistics for a specific database table",
            description=(
                "Retrieve detailed statistics for a specific database table: row "
                "count, size on disk, columns, indexes and, when detailed, read/write "
                "counters and bloat estimates. Each statistic is gathered "
                "independently; one failing does not hide the others."
            ),
            params_model=TableStatsParams,
            multi_statement=True,
            max_response_chars=20000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_INDEXES,
            subject="indexes",
            title="Retrieve all indexes from a database with detailed information",
            description=(
                "Retrieve all indexes from a database with detailed information, "
                "including index names, types, associated tables, indexed columns "
                "and uniqueness. Use it to understand the indexing strategy of a "
                "database and to spot missing or redundant indexes."
            ),
            params_model=IndexesParams,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_CONSTRAINTS,
            subject="constraints",
            title="Retrieve all constraints from a database with detailed information",
            description=(
                "Retrieve primary key, foreign key, unique and check constraints "
                "with their tables, columns, referenced tables and definitions. "
                "MySQL check definitions need MySQL 8.0.16+ or MariaDB; filter by a "
                "key constraint type on older servers."
            ),
            params_model=ConstraintsParams,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_VIEWS,
            subject="views",
            title="Retrieve all views from a database with their definitions",
            description=(
                "Retrieve all views from a database, including view names and, "
                "optionally, their SQL definitions."
            ),
            params_model=ViewsParams,
            max_response_chars=10000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_TYPES,
            subject="custom data types",
            title="Retrieve all custom data types from a database",
            description=(
                "Retrieve user-defined data types: enumerated, composite, domain "
                "and range types, with their categories and definitions. Only "
                "available on databases that support custom types (PostgreSQL)."
            ),
            params_model=TypesParams,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_SCHEMAS,
            subject="schemas",
            title="Retrieve all schemas from a database with detailed information",
            description=(
                "Retrieve database schemas with owners, access privileges, "
                "descriptions and object counts. In MySQL, schemas are databases."
            ),
            params_model=SchemasParams,
            max_response_chars=5000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_SAMPLE_DATA,
            subject="sample data",
            title="Retrieve a sample of data from a database table",
            description=(
                "Fetch a sample of rows from a table, optionally filtered with a "
                "WHERE clause, sorted with an ORDER BY clause, or picked at random."
            ),
            params_model=SampleDataParams,
            max_response_chars=10000,
        ),
        CapabilitySpec(
            kind=CapabilityKind.GET_UNIQUE_VALUES,
            subject="unique values",
            title="Retrieve all unique values from a column in a database table",
            description=(
                "List the distinct values of a column, optionally with counts and "
                "percentages, to understand value distributions and categorical data."
            ),
            params_model=UniqueValuesParams,
        ),
    ]
}


def get_capability(name: str) -> CapabilitySpec:
    """
    Look up a capability by tool name.

    Raises:
        KeyError: If no capability has that name
    """
    try:
        kind = CapabilityKind(name)
    except ValueError:
        raise KeyError(f"Unknown tool: {name}") from None
    return CATALOG[kind]
