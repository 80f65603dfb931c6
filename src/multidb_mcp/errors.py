"""Exception hierarchy for capability dispatch."""

from typing import Optional


class MultiDBError(Exception):
    """Base class for all errors raised by the dispatch layer."""


class ValidationError(MultiDBError):
    """A capability was called with missing or mistyped parameters."""

    def __init__(self, message: str, capability: Optional[str] = None):
        self.capability = capability
        prefix = f"{capability}: " if capability else ""
        super().__init__(f"{prefix}{message}")


class NotFoundError(MultiDBError):
    """The requested connection ID is not registered."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"database configuration not found for ID: {connection_id}")


class UnsupportedDialectError(MultiDBError):
    """No builder exists for the resolved dialect and capability pair."""

    def __init__(self, dialect: str, capability: str, reason: Optional[str] = None):
        self.dialect = dialect
        self.capability = capability
        message = f"unsupported database type for {capability}: {dialect}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ExecutionError(MultiDBError):
    """A single statement failed against the backend."""

    def __init__(self, connection_id: str, sql: str, cause: object):
        self.connection_id = connection_id
        self.sql = sql
        self.cause = cause
        super().__init__(str(cause))
