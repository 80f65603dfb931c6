"""Pydantic models for configuration, capabilities and statements."""

from .capabilities import (
    CATALOG,
    CapabilityKind,
    CapabilityParams,
    CapabilitySpec,
    ConstraintsParams,
    ExecuteSQLParams,
    IndexesParams,
    ListDatabasesParams,
    SampleDataParams,
    SchemasParams,
    StatsParams,
    TableStatsParams,
    TypesParams,
    UniqueValuesParams,
    ViewsParams,
    get_capability,
)
from .config import ConnectionConfig, Dialect, ServerSettings, load_connections_file
from .statement import SQLStatement, StatementKind, StatementOutcome, classify_sql

__all__ = [
    "CATALOG",
    "CapabilityKind",
    "CapabilityParams",
    "CapabilitySpec",
    "ConnectionConfig",
    "ConstraintsParams",
    "Dialect",
    "ExecuteSQLParams",
    "IndexesParams",
    "ListDatabasesParams",
    "SQLStatement",
    "SampleDataParams",
    "SchemasParams",
    "ServerSettings",
    "StatementKind",
    "StatementOutcome",
    "StatsParams",
    "TableStatsParams",
    "TypesParams",
    "UniqueValuesParams",
    "ViewsParams",
    "classify_sql",
    "get_capability",
    "load_connections_file",
]
