"""Command parsing and dispatch."""
from gateway.commands.router import CommandRouter
from gateway.commands.schemas import (
    ADD_ITEM,
    GET_STATS,
    REMOVE_ITEM,
    AddItemCommand,
    Command,
    CommandResponse,
    GetStatsCommand,
    RemoveItemCommand,
    restore_numeric_fields,
)

__all__ = [
    "ADD_ITEM",
    "GET_STATS",
    "REMOVE_ITEM",
    "AddItemCommand",
    "Command",
    "CommandResponse",
    "CommandRouter",
    "GetStatsCommand",
    "RemoveItemCommand",
    "restore_numeric_fields",
]
