"""Statement execution against registered connections."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from multidb_mcp.core.connection import DatabaseConnection
from multidb_mcp.core.registry import ConnectionRegistry
from multidb_mcp.errors import ExecutionError
from multidb_mcp.utils import dumps, format_rows

logger = logging.getLogger(__name__)

# Driver connect failures (asyncpg raises OSError) are not wrapped by SQLAlchemy
BACKEND_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class BaseExecutor(ABC):
    """
    Executes SQL for the dispatcher.

    Implementations own driver and pool concerns. Every method is a
    coroutine, so cancelling the awaiting task cancels the work.
    """

    @abstractmethod
    async def get_database_type(self, connection_id: str) -> str:
        """
        Dialect name of a connection.

        Raises:
            NotFoundError: If the connection is not registered
        """
        ...

    @abstractmethod
    async def execute_query(
        self, connection_id: str, sql: str, params: Optional[Sequence[str]] = None
    ) -> str:
        """
        Run a row-producing statement and return its formatted rows.

        Raises:
            ExecutionError: If the backend rejects the statement
        """
        ...

    @abstractmethod
    async def execute_statement(
        self, connection_id: str, sql: str, params: Optional[Sequence[str]] = None
    ) -> str:
        """
        Run a data-changing statement, commit it and describe the outcome.

        Raises:
            ExecutionError: If the backend rejects the statement
        """
        ...

    @abstractmethod
    async def list_databases(self) -> list[str]:
        """IDs of every registered connection."""
        ...

    @abstractmethod
    async def get_database_info(self, connection_id: str) -> dict[str, Any]:
        """Descriptive fields of a connection, without credentials."""
        ...


class SQLAlchemyExecutor(BaseExecutor):
    """Executor backed by one SQLAlchemy async engine per registered connection."""

    def __init__(self, registry: ConnectionRegistry):
        """
        Initialize the executor.

        Args:
            registry: Shared connection registry; engines are created lazily
        """
        self.registry = registry
        self._connections: dict[str, DatabaseConnection] = {}
        self._lock = asyncio.Lock()

    async def _get_connection(self, connection_id: str) -> DatabaseConnection:
        """Return the engine wrapper for a connection, rebuilding it after re-registration."""
        config = self.registry.get(connection_id)

        async with self._lock:
            current = self._connections.get(connection_id)
            if current is not None and current.config == config:
                return current

            if current is not None:
                logger.info(f"Configuration for '{connection_id}' changed, recreating engine")
                await current.dispose()

            connection = DatabaseConnection(config)
            await connection.initialize()
            self._connections[connection_id] = connection
            return connection

    @staticmethod
    async def _run(
        conn: AsyncConnection, sql: str, params: Optional[Sequence[str]]
    ) -> CursorResult:
        # SQL goes to the driver untouched; placeholders use its paramstyle
        if params:
            return await conn.exec_driver_sql(sql, tuple(params))
        return await conn.exec_driver_sql(
            sql, execution_options={"no_parameters": True}
        )

    async def get_database_type(self, connection_id: str) -> str:
        return self.registry.get(connection_id).dialect.value

    async def execute_query(
        self, connection_id: str, sql: str, params: Optional[Sequence[str]] = None
    ) -> str:
        try:
            connection = await self._get_connection(connection_id)
            async with connection.get_connection() as conn:
                result = await self._run(conn, sql, params)
                columns = list(result.keys())
                rows = [dict(zip(columns, row)) for row in result.fetchall()]
                # Row-returning SQL may still change data (INSERT ... RETURNING)
                if not connection.config.read_only:
                    await conn.commit()
        except BACKEND_ERRORS as e:
            logger.debug(f"Query failed on '{connection_id}': {e}")
            raise ExecutionError(connection_id, sql, e) from e

        return format_rows(rows)

    async def execute_statement(
        self, connection_id: str, sql: str, params: Optional[Sequence[str]] = None
    ) -> str:
        try:
            connection = await self._get_connection(connection_id)
            async with connection.get_connection() as conn:
                result = await self._run(conn, sql, params)
                rows_affected = result.rowcount
                await conn.commit()
        except BACKEND_ERRORS as e:
            logger.debug(f"Statement failed on '{connection_id}': {e}")
            raise ExecutionError(connection_id, sql, e) from e

        return dumps({"rows_affected": rows_affected}, indent=True)

    async def list_databases(self) -> list[str]:
        return self.registry.ids()

    async def get_database_info(self, connection_id: str) -> dict[str, Any]:
        config = self.registry.get(connection_id)
        return {
            "id": config.id,
            "type": config.dialect.value,
            "host": config.host,
            "port": config.effective_port,
            "database": config.catalog_name,
            "description": config.description,
        }

    async def dispose(self) -> None:
        """Dispose every engine created so far."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()

        for connection in connections:
            await connection.dispose()
