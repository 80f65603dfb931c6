"""Core components: registry, execution, dispatch and report assembly."""

from .aggregator import ResponseAggregator
from .connection import DatabaseConnection
from .dispatcher import CapabilityDispatcher
from .executor import BaseExecutor, SQLAlchemyExecutor
from .registry import ConnectionRegistry

__all__ = [
    "BaseExecutor",
    "CapabilityDispatcher",
    "ConnectionRegistry",
    "DatabaseConnection",
    "ResponseAggregator",
    "SQLAlchemyExecutor",
]
