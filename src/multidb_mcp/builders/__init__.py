"""Dialect query builders mapping capabilities to SQL."""

from .base import QueryBuilder
from .mysql import MySQLBuilder
from .postgresql import PostgresBuilder
from ..errors import UnsupportedDialectError
from ..models.config import Dialect

__all__ = [
    "BUILDERS",
    "MySQLBuilder",
    "PostgresBuilder",
    "QueryBuilder",
    "create_builder",
]

BUILDERS: dict[Dialect, type[QueryBuilder]] = {
    Dialect.POSTGRES: PostgresBuilder,
    Dialect.MYSQL: MySQLBuilder,
}

# Every dialect needs a builder; a new Dialect member without one fails on import
_missing = [d.value for d in Dialect if d not in BUILDERS]
if _missing:
    raise RuntimeError(f"No query builder registered for: {', '.join(_missing)}")


def create_builder(dialect: Dialect, capability: str = "query building") -> QueryBuilder:
    """
    Factory function to create the query builder for a dialect.

    Args:
        dialect: Resolved dialect
        capability: Capability name used in the error message

    Returns:
        Query builder instance

    Raises:
        UnsupportedDialectError: If no builder exists for the dialect
    """
    builder_class = BUILDERS.get(dialect)

    if builder_class is None:
        raise UnsupportedDialectError(str(dialect), capability)

    return builder_class()
