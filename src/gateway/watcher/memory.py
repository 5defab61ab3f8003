"""In-memory item watcher used when no external watcher is configured."""

import hashlib
import json
import time
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from gateway.errors import WatcherError
from gateway.watcher.facade import StateCallback
from gateway.watcher.types import InvalidItemState, ItemState, ValidItemState

logger = structlog.get_logger()


def item_identifier(descriptor: dict[str, Any]) -> str:
    """Derive the identifier of an item descriptor.

    Uses the descriptor's own ``id`` when it is a non-empty string,
    otherwise hashes the canonical JSON form of the descriptor.

    Args:
        descriptor: Item descriptor as submitted by a client.

    Returns:
        Stable identifier for the item.
    """
    explicit = descriptor.get("id")
    if isinstance(explicit, str) and explicit:
        return explicit

    canonical = json.dumps(
        descriptor,
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class _WatcherSubscription:
    """Subscription handle that detaches its callback once."""

    def __init__(self, watcher: "ItemWatcher", callback: StateCallback) -> None:
        self._watcher = watcher
        self._callback = callback

    def unsubscribe(self) -> None:
        self._watcher._detach(self._callback)


class ItemWatcher:
    """Tracks submitted items in memory and reports their state changes.

    Holds a single subscriber at a time. State changes are only emitted
    through the explicit ``update_item``, ``invalidate_item`` and
    ``report_error`` hooks; submitting or removing an item is silent.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialize an empty watcher.

        Args:
            clock: Returns the current UNIX time in seconds.
        """
        self._clock = clock
        self._items: dict[str, dict[str, Any]] = {}
        self._callback: StateCallback | None = None

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    async def submit_item(self, descriptor: dict[str, Any]) -> str:
        """Start tracking an item.

        Args:
            descriptor: Item descriptor with numeric fields already restored.

        Returns:
            Identifier of the tracked item.

        Raises:
            WatcherError: If the item has already expired.
        """
        item_id = item_identifier(descriptor)

        expiry = descriptor.get("expirationTimeSeconds")
        if expiry is not None:
            try:
                expired = Decimal(expiry) <= Decimal(str(self._clock()))
            except (InvalidOperation, TypeError, ValueError) as e:
                raise WatcherError(f"Invalid expiration for item {item_id}") from e
            if expired:
                raise WatcherError(f"Item {item_id} has expired")

        self._items[item_id] = descriptor
        logger.debug("item_tracked", item_id=item_id, count=len(self._items))
        return item_id

    def remove_item(self, item_id: str | None) -> None:
        """Stop tracking an item. Unknown identifiers are ignored.

        Args:
            item_id: Identifier returned by submit_item.
        """
        if item_id is None:
            return
        if self._items.pop(item_id, None) is not None:
            logger.debug("item_untracked", item_id=item_id, count=len(self._items))

    def get_item(self, item_id: str) -> dict[str, Any] | None:
        """Return the descriptor of a tracked item, if any."""
        return self._items.get(item_id)

    def get_stats(self) -> dict[str, int]:
        """Return the number of tracked items."""
        return {"count": len(self._items)}

    def subscribe(self, callback: StateCallback) -> _WatcherSubscription:
        """Register the state change callback.

        Args:
            callback: Invoked with ``(error, state)`` for every change.

        Returns:
            Handle used to unsubscribe.

        Raises:
            WatcherError: If a subscriber is already registered.
        """
        if self._callback is not None:
            raise WatcherError("Watcher already has a subscriber")
        self._callback = callback
        return _WatcherSubscription(self, callback)

    def _detach(self, callback: StateCallback) -> None:
        if self._callback is callback:
            self._callback = None

    def update_item(self, item_id: str, **relevant_state: Any) -> ValidItemState:
        """Report that a tracked item is valid with new details.

        Raises:
            WatcherError: If the item is not tracked.
        """
        self._require(item_id)
        state = ValidItemState(item_id=item_id, relevant_state=relevant_state)
        self._emit(None, state)
        return state

    def invalidate_item(self, item_id: str, error: str) -> InvalidItemState:
        """Report that a tracked item is no longer valid.

        Raises:
            WatcherError: If the item is not tracked.
        """
        self._require(item_id)
        state = InvalidItemState(item_id=item_id, error=error)
        self._emit(None, state)
        return state

    def report_error(self, error: Exception) -> None:
        """Report a watcher-level failure to the subscriber."""
        self._emit(error, None)

    def _require(self, item_id: str) -> None:
        if item_id not in self._items:
            raise WatcherError(f"Item {item_id} is not tracked")

    def _emit(self, error: Exception | None, state: ItemState | None) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            callback(error, state)
        except Exception as e:
            logger.error("watcher_callback_error", error=str(e))
