"""Typed command requests and responses exchanged over the channel."""
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ADD_ITEM = "addItem"
REMOVE_ITEM = "removeItem"
GET_STATS = "getStats"


class CommandResponse(BaseModel):
    """Reply to one command, or a broadcast pushed to every client.

    ``result`` is left out of the wire form unless it was set explicitly.

    Attributes:
        action: Echo of the request action, empty when none was readable.
        success: 1 if the command was handled, 0 otherwise.
        result: Action-specific payload.
    """

    action: str
    success: Literal[0, 1]
    result: Any = None

    def to_json(self) -> str:
        """Serialize for the wire, omitting an unset result."""
        exclude = None if "result" in self.model_fields_set else {"result"}
        return self.model_dump_json(exclude=exclude)


class AddItemParams(BaseModel):
    """Parameters of ``addItem``."""

    model_config = ConfigDict(extra="allow")

    item: dict[str, Any]


class AddItemCommand(BaseModel):
    """Start tracking the item described in ``params.item``."""

    action: Literal["addItem"]
    params: AddItemParams


class RemoveItemParams(BaseModel):
    """Parameters of ``removeItem``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    item_id: str | None = Field(default=None, alias="itemId")


class RemoveItemCommand(BaseModel):
    """Stop tracking the item named by ``params.itemId``."""

    action: Literal["removeItem"]
    params: RemoveItemParams


class GetStatsCommand(BaseModel):
    """Report the watcher's aggregate counters."""

    action: Literal["getStats"]
    params: dict[str, Any] = Field(default_factory=dict)


Command = Annotated[
    AddItemCommand | RemoveItemCommand | GetStatsCommand,
    Field(discriminator="action"),
]

command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def echo_action(data: object) -> str:
    """Recover the action of a decoded request for the response echo.

    Args:
        data: Decoded JSON payload of any shape.

    Returns:
        The ``action`` field if it is a string, otherwise an empty string.
    """
    if isinstance(data, dict):
        action = data.get("action")
        if isinstance(action, str):
            return action
    return ""


def restore_numeric_fields(
    descriptor: dict[str, Any],
    fields: list[str],
) -> dict[str, Any]:
    """Rebuild exact numeric values that were stringified for transport.

    Args:
        descriptor: Item descriptor as decoded from JSON.
        fields: Names of the fields that hold numbers.

    Returns:
        Copy of the descriptor with those fields as ``Decimal``.

    Raises:
        ValueError: If a field is missing or is not a finite number.
    """
    restored = dict(descriptor)
    for field in fields:
        if field not in restored:
            raise ValueError(f"Missing numeric field: {field}")
        raw = restored[field]
        if isinstance(raw, bool) or not isinstance(raw, str | int):
            raise ValueError(f"Numeric field {field} must be a string or integer")
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation as e:
            raise ValueError(f"Numeric field {field} is not a number: {raw!r}") from e
        if not value.is_finite():
            raise ValueError(f"Numeric field {field} is not finite: {raw!r}")
        restored[field] = value
    return restored
