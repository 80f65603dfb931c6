"""Entry point for running multidb_mcp as a module."""

from multidb_mcp.server import cli_entry

if __name__ == "__main__":
    cli_entry()
