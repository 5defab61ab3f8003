"""Item watcher interface and in-memory implementation."""
from gateway.watcher.facade import StateCallback, Subscription, WatcherFacade
from gateway.watcher.memory import ItemWatcher, item_identifier
from gateway.watcher.types import InvalidItemState, ItemState, ValidItemState

__all__ = [
    "InvalidItemState",
    "ItemState",
    "ItemWatcher",
    "StateCallback",
    "Subscription",
    "ValidItemState",
    "WatcherFacade",
    "item_identifier",
]
