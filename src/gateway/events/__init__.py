"""Events subsystem relaying watcher state changes to clients."""
from gateway.events.relay import BroadcastRelay
from gateway.events.types import UPDATE_ACTION, broadcast_event, state_change_result

__all__ = [
    "UPDATE_ACTION",
    "BroadcastRelay",
    "broadcast_event",
    "state_change_result",
]
