"""Database connection management with SQLAlchemy."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from multidb_mcp.models.config import ConnectionConfig, Dialect

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages the SQLAlchemy async engine and pool for one registered connection."""

    def __init__(self, config: ConnectionConfig):
        """
        Initialize database connection.

        Args:
            config: Connection configuration with credentials and pool settings
        """
        self.config = config
        self.engine: Optional[AsyncEngine] = None

    async def initialize(self) -> None:
        """Create the async engine. The pool opens connections on first use."""
        if self.engine is not None:
            return  # Already initialized

        self.engine = create_async_engine(
            self.config.url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_pre_ping=True,  # Verify connections before using
            echo=self.config.echo_sql,
        )
        logger.info(
            f"Created engine for '{self.config.id}': {self.config.sanitized_url}"
        )

    async def dispose(self) -> None:
        """Dispose of the connection pool and cleanup resources."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            logger.info(f"Disposed engine for '{self.config.id}'")

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Get a connection from the pool as an async context manager.

        Yields:
            AsyncConnection for executing statements

        Raises:
            RuntimeError: If engine not initialized
        """
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection not initialized. Call initialize() first."
            )

        async with self.engine.connect() as conn:
            # Set read-only mode if configured
            if self.config.read_only:
                await self._set_readonly(conn)

            # Set statement timeout if configured
            if self.config.statement_timeout:
                await self._set_timeout(conn, self.config.statement_timeout)

            yield conn

    async def _set_readonly(self, conn: AsyncConnection) -> None:
        """Set connection to read-only mode based on database dialect."""
        if self.dialect is Dialect.POSTGRES:
            await conn.execute(text("SET TRANSACTION READ ONLY"))
        elif self.dialect is Dialect.MYSQL:
            await conn.execute(text("SET SESSION TRANSACTION READ ONLY"))

    async def _set_timeout(self, conn: AsyncConnection, timeout: int) -> None:
        """Set statement timeout based on database dialect."""
        timeout_ms = timeout * 1000

        if self.dialect is Dialect.POSTGRES:
            await conn.execute(text(f"SET statement_timeout = {timeout_ms}"))
        elif self.dialect is Dialect.MYSQL:
            await conn.execute(text(f"SET SESSION max_execution_time = {timeout_ms}"))

    @property
    def dialect(self) -> Dialect:
        """Get database dialect."""
        return self.config.dialect

    @property
    def is_initialized(self) -> bool:
        """Check if engine is initialized."""
        return self.engine is not None

    async def __aenter__(self) -> "DatabaseConnection":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.dispose()
