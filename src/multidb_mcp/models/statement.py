"""Generated SQL statements and their execution outcomes."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatementKind(str, Enum):
    """Whether a statement produces rows or mutates data."""

    QUERY = "query"
    STATEMENT = "statement"


# First keywords that mark free-form SQL as row-producing
QUERY_PREFIXES = ("SELECT", "SHOW", "DESCRIBE", "EXPLAIN")


def classify_sql(sql: str) -> StatementKind:
    """
    Classify free-form SQL by its leading keyword.

    Case-insensitive prefix match after trimming whitespace; anything that
    does not start with a row-producing keyword is treated as a mutation.

    Args:
        sql: SQL text

    Returns:
        StatementKind.QUERY or StatementKind.STATEMENT
    """
    normalized = sql.strip().upper()
    if normalized.startswith(QUERY_PREFIXES):
        return StatementKind.QUERY
    return StatementKind.STATEMENT


class SQLStatement(BaseModel):
    """A single SQL text produced by a builder."""

    model_config = ConfigDict(frozen=True)

    sql: str = Field(..., description="SQL text")
    kind: StatementKind = Field(
        default=StatementKind.QUERY, description="Query or mutating statement"
    )
    params: tuple[str, ...] = Field(
        default=(), description="Positional parameters in the driver's paramstyle"
    )
    label: Optional[str] = Field(
        None, description="Short description of what the statement reports"
    )

    @property
    def is_query(self) -> bool:
        return self.kind is StatementKind.QUERY


class StatementOutcome(BaseModel):
    """Result of executing one statement: formatted text or an error message."""

    statement: SQLStatement
    output: Optional[str] = Field(None, description="Formatted result text")
    error: Optional[str] = Field(None, description="Error message if execution failed")

    @property
    def failed(self) -> bool:
        return self.error is not None
