"""Interface the gateway consumes from the item watcher."""
from collections.abc import Callable
from typing import Any, Protocol

from gateway.watcher.types import ItemState

StateCallback = Callable[[Exception | None, ItemState | None], None]


class Subscription(Protocol):
    """Handle returned by WatcherFacade.subscribe."""

    def unsubscribe(self) -> None:
        """Stop receiving state changes."""
        ...


class WatcherFacade(Protocol):
    """Stateful item tracker the gateway forwards commands to.

    Implementations invoke subscribed callbacks on the event loop thread,
    once per state change, with either an error or a state but not both.
    """

    async def submit_item(self, descriptor: dict[str, Any]) -> str:
        """Start tracking an item and return its identifier."""
        ...

    def remove_item(self, item_id: str | None) -> None:
        """Stop tracking an item. Unknown identifiers are ignored."""
        ...

    def get_stats(self) -> dict[str, int]:
        """Return aggregate counters, including ``count``."""
        ...

    def subscribe(self, callback: StateCallback) -> Subscription:
        """Register a callback for every state change."""
        ...
