"""Capability dispatch: validate, resolve dialect, build, execute, aggregate."""

import logging
from typing import Any, Optional, Sequence

import pydantic

from multidb_mcp.builders import create_builder
from multidb_mcp.core.aggregator import ResponseAggregator
from multidb_mcp.core.executor import BaseExecutor
from multidb_mcp.errors import (
    ExecutionError,
    MultiDBError,
    UnsupportedDialectError,
    ValidationError,
)
from multidb_mcp.models.capabilities import (
    CapabilityKind,
    CapabilitySpec,
    ConnectionParams,
    get_capability,
)
from multidb_mcp.models.config import Dialect
from multidb_mcp.models.statement import SQLStatement, StatementOutcome

logger = logging.getLogger(__name__)


def _describe_validation_error(error: pydantic.ValidationError) -> str:
    """Flatten pydantic errors into 'field: message' pairs."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        messages.append(f"{location}: {item['msg']}")
    return "; ".join(messages)


class CapabilityDispatcher:
    """
    Runs capabilities against registered connections.

    The dispatcher holds no per-call state. Statements of one call run
    one after another in build order; cancelling the calling task stops
    the sequence before the next statement starts.
    """

    def __init__(
        self,
        executor: BaseExecutor,
        aggregator: Optional[ResponseAggregator] = None,
        fail_on_all_statement_errors: bool = False,
    ):
        """
        Initialize the dispatcher.

        Args:
            executor: Execution collaborator
            aggregator: Report builder (a default one if omitted)
            fail_on_all_statement_errors: Raise when every statement of a
                multi-statement capability fails instead of reporting them
        """
        self.executor = executor
        self.aggregator = aggregator or ResponseAggregator()
        self.fail_on_all_statement_errors = fail_on_all_statement_errors

    async def dispatch(self, name: str, arguments: Optional[dict[str, Any]] = None) -> str:
        """
        Run a capability by tool name.

        Args:
            name: Capability (tool) name
            arguments: Raw arguments, including the "database" connection ID

        Returns:
            Report text

        Raises:
            ValidationError: Unknown capability or invalid arguments
            NotFoundError: Unknown connection ID
            UnsupportedDialectError: No builder for the dialect/capability pair
            ExecutionError: A single-statement capability failed
        """
        try:
            spec = get_capability(name)
        except KeyError as e:
            raise ValidationError(e.args[0]) from None

        try:
            params = spec.parse_params(arguments)
        except pydantic.ValidationError as e:
            raise ValidationError(_describe_validation_error(e), capability=name) from e

        if spec.kind is CapabilityKind.LIST_DATABASES:
            return await self.list_databases()

        assert isinstance(params, ConnectionParams)
        return await self.run(spec, params)

    async def run(self, spec: CapabilitySpec, params: ConnectionParams) -> str:
        """Run a capability with already validated parameters."""
        connection_id = params.database
        dialect = await self.resolve_dialect(connection_id, spec)

        logger.info(
            f"{spec.name} on '{connection_id}' ({dialect.value}): "
            f"{params.model_dump(exclude={'database'}, exclude_none=True)}"
        )

        builder = create_builder(dialect, spec.subject)
        statements = builder.build(spec.kind, params)

        outcomes = await self._execute_all(
            connection_id, statements, tolerate_failures=spec.multi_statement
        )
        self._check_all_failed(spec, connection_id, outcomes)

        heading = self.aggregator.heading(spec.kind, params, connection_id, dialect)
        return self.aggregator.aggregate(heading, outcomes)

    async def resolve_dialect(self, connection_id: str, spec: CapabilitySpec) -> Dialect:
        """
        Determine the dialect of a connection.

        Raises:
            NotFoundError: If the connection is not registered
            UnsupportedDialectError: If the reported type is not a known dialect
        """
        database_type = await self.executor.get_database_type(connection_id)
        try:
            return Dialect.parse(database_type)
        except ValueError:
            raise UnsupportedDialectError(database_type, spec.subject) from None

    async def _execute_all(
        self,
        connection_id: str,
        statements: Sequence[SQLStatement],
        tolerate_failures: bool,
    ) -> list[StatementOutcome]:
        outcomes: list[StatementOutcome] = []

        for statement in statements:
            try:
                output = await self._execute(connection_id, statement)
            except ExecutionError as e:
                if not tolerate_failures:
                    raise
                logger.warning(
                    f"Statement failed on '{connection_id}'"
                    f"{f' ({statement.label})' if statement.label else ''}: {e}"
                )
                outcomes.append(StatementOutcome(statement=statement, error=str(e)))
            else:
                outcomes.append(StatementOutcome(statement=statement, output=output))

        return outcomes

    async def _execute(self, connection_id: str, statement: SQLStatement) -> str:
        params = list(statement.params) or None
        if statement.is_query:
            return await self.executor.execute_query(connection_id, statement.sql, params)
        return await self.executor.execute_statement(connection_id, statement.sql, params)

    def _check_all_failed(
        self,
        spec: CapabilitySpec,
        connection_id: str,
        outcomes: Sequence[StatementOutcome],
    ) -> None:
        if not spec.multi_statement or not outcomes:
            return
        if not all(outcome.failed for outcome in outcomes):
            return

        logger.warning(
            f"All {len(outcomes)} statements of {spec.name} failed on '{connection_id}'"
        )
        if self.fail_on_all_statement_errors:
            last = outcomes[-1]
            raise ExecutionError(
                connection_id,
                last.statement.sql,
                f"all {len(outcomes)} statements failed; last error: {last.error}",
            )

    async def list_databases(self) -> str:
        """Markdown table of every registered connection."""
        rows: list[dict[str, Any]] = []

        for connection_id in await self.executor.list_databases():
            try:
                info = await self.executor.get_database_info(connection_id)
            except MultiDBError as e:
                logger.warning(f"No information for '{connection_id}': {e}")
                info = {"id": connection_id}
            rows.append({**info, "id": connection_id})

        return self.aggregator.database_table(rows)

