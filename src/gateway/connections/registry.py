"""Registry of open client connections."""
from collections.abc import Callable, Iterator

import structlog

from gateway.connections.connection import Connection

logger = structlog.get_logger()


class ConnectionRegistry:
    """Set of connections that are currently eligible for broadcast.

    Only the channel endpoint mutates the registry and everything runs
    on one event loop, so no lock is taken. Iteration always walks a
    snapshot, so connections may come and go during ``for_each``.
    """

    def __init__(self) -> None:
        self._connections: set[Connection] = set()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def add(self, connection: Connection) -> None:
        """Register a newly accepted connection."""
        self._connections.add(connection)

    def remove(self, connection: Connection) -> bool:
        """Deregister a connection.

        Args:
            connection: Connection being closed.

        Returns:
            True if this call removed it, False if it was not registered.
        """
        if connection not in self._connections:
            return False
        self._connections.discard(connection)
        connection.mark_closed()
        return True

    def snapshot(self) -> list[Connection]:
        """Return the current members as a list."""
        return list(self._connections)

    def for_each(self, fn: Callable[[Connection], object]) -> None:
        """Apply ``fn`` to every member of the current snapshot.

        Members removed after the snapshot was taken are skipped.

        Args:
            fn: Called once per connection.
        """
        for connection in self.snapshot():
            if connection in self._connections:
                fn(connection)

    async def close_all(self, code: int = 1001) -> int:
        """Close and deregister every connection.

        Args:
            code: WebSocket close code sent to each client.

        Returns:
            Number of connections closed.
        """
        connections = self.snapshot()
        for connection in connections:
            self.remove(connection)
            await connection.close(code)
        if connections:
            logger.info("connections_closed", count=len(connections), code=code)
        return len(connections)
