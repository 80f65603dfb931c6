"""Named connection registry."""

import logging
import threading
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from multidb_mcp.errors import NotFoundError
from multidb_mcp.models.config import ConnectionConfig

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Holds connection configurations keyed by ID.

    Reads go to an immutable snapshot and take no lock, so any number of
    concurrent calls can resolve connections without blocking each other.
    Writers serialize on a lock, copy the snapshot, apply the change and
    swap the new snapshot in with a single assignment.
    """

    def __init__(self, configs: Iterable[ConnectionConfig] = ()):
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, ConnectionConfig] = MappingProxyType({})
        for config in configs:
            self.register(config)

    def register(self, config: ConnectionConfig) -> None:
        """
        Insert or replace a connection (last write wins).

        A replaced ID keeps its original position in ``ids()``.
        """
        with self._lock:
            updated = dict(self._snapshot)
            replaced = config.id in updated
            updated[config.id] = config
            self._snapshot = MappingProxyType(updated)

        if replaced:
            logger.info(f"Replaced connection '{config.id}' ({config.dialect.value})")
        else:
            logger.info(
                f"Registered connection '{config.id}' ({config.dialect.value}) "
                f"at {config.host}:{config.effective_port}"
            )

    def get(self, connection_id: str) -> ConnectionConfig:
        """
        Look up a connection.

        Raises:
            NotFoundError: If no connection has that ID
        """
        try:
            return self._snapshot[connection_id]
        except KeyError:
            raise NotFoundError(connection_id) from None

    def ids(self) -> list[str]:
        """Registered IDs in first-registration order."""
        return list(self._snapshot)

    def snapshot(self) -> Mapping[str, ConnectionConfig]:
        """Read-only view of the registry at this instant."""
        return self._snapshot

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[ConnectionConfig]:
        return iter(list(self._snapshot.values()))
