"""Pytest configuration and shared fixtures for multidb-mcp tests"""

import os
import sys
from typing import Any, AsyncGenerator, Optional, Sequence

import pytest
from dotenv import load_dotenv

from multidb_mcp.core import (
    BaseExecutor,
    CapabilityDispatcher,
    ConnectionRegistry,
    SQLAlchemyExecutor,
)
from multidb_mcp.errors import ExecutionError
from multidb_mcp.models.config import ConnectionConfig

# Load environment variables
load_dotenv()

# Fix for Windows: asyncpg requires SelectorEventLoop on Windows
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]


# ==================== In-memory Executor ====================


class RecordingExecutor(BaseExecutor):
    """Executor double that records calls and fails statements on request.

    Any statement whose SQL contains one of ``fail_on`` raises
    ExecutionError; everything else returns a short marker text.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        fail_on: Sequence[str] = (),
        type_overrides: Optional[dict[str, str]] = None,
    ):
        self.registry = registry
        self.fail_on = list(fail_on)
        self.type_overrides = type_overrides or {}
        self.calls: list[tuple[str, str, str, Optional[list[str]]]] = []

    async def get_database_type(self, connection_id: str) -> str:
        config = self.registry.get(connection_id)
        return self.type_overrides.get(connection_id, config.dialect.value)

    def _record(
        self, kind: str, connection_id: str, sql: str, params: Optional[Sequence[str]]
    ) -> str:
        self.calls.append((kind, connection_id, sql, list(params) if params else None))
        for marker in self.fail_on:
            if marker in sql:
                raise ExecutionError(connection_id, sql, f"relation {marker} does not exist")
        return f"{kind} result #{len(self.calls)}"

    async def execute_query(
        self, connection_id: str, sql: str, params: Optional[Sequence[str]] = None
    ) -> str:
        return self._record("query", connection_id, sql, params)

    async def execute_statement(
        self, connection_id: str, sql: str, params: Optional[Sequence[str]] = None
    ) -> str:
        return self._record("statement", connection_id, sql, params)

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

    @property
    def executed_sql(self) -> list[str]:
        return [call[2] for call in self.calls]


# ==================== Registry Fixtures ====================


@pytest.fixture
def pg_config() -> ConnectionConfig:
    """PostgreSQL connection configuration (never connected to)"""
    return ConnectionConfig(
        id="pg1",
        type="postgres",
        host="db.internal",
        port=5432,
        user="app",
        password="secret",
        name="shop",
        description="Orders database",
    )


@pytest.fixture
def mysql_config() -> ConnectionConfig:
    """MySQL connection configuration (never connected to)"""
    return ConnectionConfig(
        id="my1",
        type="mysql",
        host="mysql.internal",
        user="app",
        password="secret",
        name="crm",
        description="CRM database",
    )


@pytest.fixture
def registry(
    pg_config: ConnectionConfig, mysql_config: ConnectionConfig
) -> ConnectionRegistry:
    """Registry with one PostgreSQL and one MySQL connection"""
    return ConnectionRegistry([pg_config, mysql_config])


@pytest.fixture
def executor(registry: ConnectionRegistry) -> RecordingExecutor:
    """Recording executor over the shared registry"""
    return RecordingExecutor(registry)


@pytest.fixture
def dispatcher(executor: RecordingExecutor) -> CapabilityDispatcher:
    """Dispatcher wired to the recording executor"""
    return CapabilityDispatcher(executor)


# ==================== Live Database Fixtures ====================


@pytest.fixture(scope="session")
def pg_database_url() -> Optional[str]:
    """PostgreSQL test database URL from environment"""
    return os.getenv("PG_TEST_DATABASE_URL")


@pytest.fixture(scope="session")
def mysql_database_url() -> Optional[str]:
    """MySQL test database URL from environment"""
    return os.getenv("MYSQL_TEST_DATABASE_URL")


@pytest.fixture(
    params=[
        pytest.param("postgresql", marks=pytest.mark.postgresql),
        pytest.param("mysql", marks=pytest.mark.mysql),
    ]
)
def live_config(
    request, pg_database_url: Optional[str], mysql_database_url: Optional[str]
) -> ConnectionConfig:
    """Parametrized live connection configuration for all supported databases"""
    if request.param == "postgresql":
        if not pg_database_url:
            pytest.skip("PG_TEST_DATABASE_URL not set")
        return ConnectionConfig.from_url("live", pg_database_url)

    if not mysql_database_url:
        pytest.skip("MYSQL_TEST_DATABASE_URL not set")
    return ConnectionConfig.from_url("live", mysql_database_url)


@pytest.fixture
async def live_executor(
    live_config: ConnectionConfig,
) -> AsyncGenerator[SQLAlchemyExecutor, None]:
    """SQLAlchemy executor against a live database with proper cleanup"""
    executor = SQLAlchemyExecutor(ConnectionRegistry([live_config]))
    try:
        yield executor
    finally:
        await executor.dispose()


# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "postgresql: PostgreSQL-specific tests")
    config.addinivalue_line("markers", "mysql: MySQL-specific tests")
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring database"
    )
