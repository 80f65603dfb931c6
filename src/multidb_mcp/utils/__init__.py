"""Utility modules for the multi-database MCP server."""

from multidb_mcp.utils.serialization import (
    convert_rows_to_json_safe,
    convert_value_to_json_safe,
    dumps,
    format_rows,
)

__all__ = [
    "convert_value_to_json_safe",
    "convert_rows_to_json_safe",
    "dumps",
    "format_rows",
]
