"""Client connection tracking."""
from gateway.connections.connection import Connection, format_peer
from gateway.connections.registry import ConnectionRegistry

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "format_peer",
]
