"""
multidb_mcp - Multi-database MCP server

A Model Context Protocol (MCP) server that runs dialect-aware introspection
and SQL execution capabilities against named PostgreSQL and MySQL connections.
"""

__version__ = "1.0.0"

from .core import CapabilityDispatcher, ConnectionRegistry, SQLAlchemyExecutor
from .errors import (
    ExecutionError,
    MultiDBError,
    NotFoundError,
    UnsupportedDialectError,
    ValidationError,
)
from .models.capabilities import CATALOG, CapabilityKind
from .models.config import ConnectionConfig, Dialect, ServerSettings

__all__ = [
    "CATALOG",
    "CapabilityDispatcher",
    "CapabilityKind",
    "ConnectionConfig",
    "ConnectionRegistry",
    "Dialect",
    "ExecutionError",
    "MultiDBError",
    "NotFoundError",
    "SQLAlchemyExecutor",
    "ServerSettings",
    "UnsupportedDialectError",
    "ValidationError",
]
