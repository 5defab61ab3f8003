"""Fan-out of watcher state changes to every open connection."""

import structlog

from gateway.connections import Connection, ConnectionRegistry
from gateway.events.types import broadcast_event, state_change_result
from gateway.watcher import ItemState, Subscription, WatcherFacade

logger = structlog.get_logger()


class BroadcastRelay:
    """Relays each watcher state change to all registered connections.

    Subscribes to the watcher once, at construction, and stays
    subscribed until ``close``. Each state change is serialized once and
    queued on every connection; a failure on one connection does not
    affect the others.
    """

    def __init__(self, watcher: WatcherFacade, registry: ConnectionRegistry) -> None:
        """Initialize relay and subscribe to the watcher.

        Args:
            watcher: Source of state change events.
            registry: Connections that receive broadcasts.
        """
        self._registry = registry
        self._broadcast_count = 0
        self._subscription: Subscription | None = watcher.subscribe(self.on_state_change)

    @property
    def broadcast_count(self) -> int:
        """Number of state changes relayed so far."""
        return self._broadcast_count

    @property
    def is_subscribed(self) -> bool:
        """Whether the relay is still receiving watcher events."""
        return self._subscription is not None

    def on_state_change(
        self,
        error: Exception | None,
        state: ItemState | None,
    ) -> None:
        """Watcher callback; broadcasts one event per invocation."""
        self.broadcast(error, state)

    def broadcast(self, error: Exception | None, state: ItemState | None) -> int:
        """Push one ``update`` message to every registered connection.

        Args:
            error: Error reported by the watcher, if any.
            state: Item state reported by the watcher, if any.

        Returns:
            Number of connections the message was queued on.
        """
        try:
            payload = broadcast_event(state_change_result(error, state)).to_json()
        except Exception as e:
            logger.error("broadcast_serialization_failed", error=str(e))
            return 0

        delivered = 0

        def deliver(connection: Connection) -> None:
            nonlocal delivered
            try:
                if connection.send(payload):
                    delivered += 1
            except Exception as e:
                logger.warning(
                    "broadcast_send_failed",
                    client=connection.remote_address,
                    error=str(e),
                )

        self._registry.for_each(deliver)
        self._broadcast_count += 1

        logger.debug(
            "broadcast_sent",
            item_id=state.item_id if state is not None else None,
            is_error=state is None,
            delivered_to=delivered,
        )
        return delivered

    def close(self) -> None:
        """Unsubscribe from the watcher. Idempotent."""
        if self._subscription is None:
            return
        self._subscription.unsubscribe()
        self._subscription = None
        logger.info("broadcast_relay_closed", broadcasts=self._broadcast_count)
