"""Multi-database MCP Server

A Model Context Protocol (MCP) server exposing dialect-aware introspection
and SQL execution tools for every configured PostgreSQL and MySQL connection.
"""

import asyncio
import logging
import os
import sys
from typing import Any, Optional

from dotenv import load_dotenv
from mcp.server import Server
from mcp.types import TextContent, Tool

from multidb_mcp.core import (
    CapabilityDispatcher,
    ConnectionRegistry,
    SQLAlchemyExecutor,
)
from multidb_mcp.errors import MultiDBError
from multidb_mcp.models.capabilities import CATALOG, get_capability
from multidb_mcp.models.config import ServerSettings

logger = logging.getLogger(__name__)

# Below this many characters a truncated body is not worth returning
MIN_TRUNCATED_BODY = 100


def truncate_response(text: str, max_length: int) -> str:
    """
    Truncate a response to a maximum length.

    Args:
        text: Report text
        max_length: Maximum length in characters

    Returns:
        The text, or a prefix of it ending with a truncation notice
    """
    if len(text) <= max_length:
        return text

    # Calculate space for truncation message
    truncation_msg = f"\n\n... [Response truncated: {len(text)} chars -> {max_length} chars to preserve context window]"
    available_length = max_length - len(truncation_msg)

    if available_length < MIN_TRUNCATED_BODY:
        return (
            f"Response too large ({len(text)} chars, limit {max_length}). "
            "Please use more specific filters or query directly."
        )

    truncated = text[:available_length]

    # Try to truncate at a reasonable point (end of a line)
    last_newline = truncated.rfind("\n")
    if last_newline > available_length * 0.8:  # Only use newline if it's in the last 20%
        truncated = truncated[:last_newline]

    return truncated + truncation_msg


class MultiDBMCPServer:
    """MCP server dispatching tool calls to registered database connections."""

    def __init__(self, settings: ServerSettings):
        """
        Initialize the server.

        Args:
            settings: Process settings (connections source, timeout, flags)
        """
        self.settings = settings
        self.registry = ConnectionRegistry()
        self.executor = SQLAlchemyExecutor(self.registry)
        self.dispatcher = CapabilityDispatcher(
            self.executor,
            fail_on_all_statement_errors=settings.fail_on_all_statement_errors,
        )
        self.server = Server("multidb-mcp")

    def initialize(self) -> None:
        """Register every configured connection."""
        for config in self.settings.load_connections():
            self.registry.register(config)

        if len(self.registry) == 0:
            logger.warning(
                "No database connections configured; set MULTIDB_CONFIG or DATABASE_URL"
            )

        logger.info(
            f"Initialized MCP server with {len(self.registry)} connection(s) "
            f"and {len(CATALOG)} tools"
        )

    def register_handlers(self) -> None:
        """Attach the list_tools and call_tool handlers to the MCP server."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """List available tools."""
            return self.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.handle_tool(name, arguments)

    def list_tools(self) -> list[Tool]:
        """Tool definitions generated from the capability catalog."""
        return [
            Tool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.input_schema(),
            )
            for spec in CATALOG.values()
        ]

    async def handle_tool(
        self, name: str, arguments: Optional[dict[str, Any]]
    ) -> list[TextContent]:
        """
        Run one tool call.

        Raises:
            MultiDBError: On invalid input, unknown connections, unsupported
                dialects, execution failures or timeouts
        """
        timeout = self.settings.call_timeout

        try:
            text = await asyncio.wait_for(
                self.dispatcher.dispatch(name, arguments), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"{name} timed out after {timeout}s")
            raise MultiDBError(f"{name} timed out after {timeout} seconds") from None

        spec = get_capability(name)
        return [
            TextContent(
                type="text",
                text=truncate_response(text, spec.max_response_chars),
            )
        ]

    async def cleanup(self) -> None:
        """Cleanup resources."""
        await self.executor.dispose()
        logger.info("Multi-database MCP server cleaned up")


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def main() -> None:
    """Main entry point for the MCP server."""
    # Load environment variables
    load_dotenv()

    settings = ServerSettings.from_env()
    configure_logging(settings.log_level)

    mcp_server = MultiDBMCPServer(settings)

    try:
        mcp_server.initialize()
        mcp_server.register_handlers()

        # Run the server
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await mcp_server.server.run(
                read_stream,
                write_stream,
                mcp_server.server.create_initialization_options(),
            )

    finally:
        await mcp_server.cleanup()


def cli_entry() -> None:
    """
    Synchronous entry point for console script.

    This function is called by the 'multidb-mcp' console script.
    It sets up the event loop and runs the async main() function.
    """
    # Windows-specific event loop policy
    if os.name == "nt":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())  # type: ignore[attr-defined]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    cli_entry()
