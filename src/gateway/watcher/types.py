"""State change payloads emitted by the watcher."""
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidItemState(_WireModel):
    """State of a tracked item that is still valid.

    Attributes:
        item_id: Identifier of the tracked item.
        is_valid: Always True.
        relevant_state: Watcher-specific details about the item.
    """

    item_id: str
    is_valid: Literal[True] = True
    relevant_state: dict[str, Any] = Field(default_factory=dict)


class InvalidItemState(_WireModel):
    """State of a tracked item that became invalid.

    Attributes:
        item_id: Identifier of the tracked item.
        is_valid: Always False.
        error: Reason the item is no longer valid.
    """

    item_id: str
    is_valid: Literal[False] = False
    error: str


ItemState = ValidItemState | InvalidItemState
