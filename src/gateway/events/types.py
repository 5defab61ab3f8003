"""Broadcast payloads pushed to every client."""
from typing import Any

from gateway.commands.schemas import CommandResponse
from gateway.watcher.types import ItemState

UPDATE_ACTION = "update"


def state_change_result(
    error: Exception | None,
    state: ItemState | None,
) -> dict[str, Any] | None:
    """Build the ``result`` of a broadcast from a watcher callback.

    Item states are sent as their camelCase wire form. Errors from the
    watcher's error channel are sent as ``{"error": message}``, which
    has no ``isValid`` key.

    Args:
        error: Error reported by the watcher, if any.
        state: Item state reported by the watcher, if any.

    Returns:
        JSON-ready payload, or None when the watcher sent neither.
    """
    if state is not None:
        return state.model_dump(mode="json", by_alias=True)
    if error is not None:
        return {"error": str(error)}
    return None


def broadcast_event(result: dict[str, Any] | None) -> CommandResponse:
    """Wrap a state change result in an ``update`` message."""
    return CommandResponse(action=UPDATE_ACTION, success=1, result=result)
