"""Exception types raised by the gateway."""


class GatewayError(Exception):
    """Base class for gateway errors."""


class ListenerStartupError(GatewayError):
    """The listening socket could not be bound.

    Attributes:
        host: Address the listener tried to bind.
        port: Port the listener tried to bind.
    """

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"Cannot listen on {host}:{port}: {reason}")
        self.host = host
        self.port = port


class WatcherError(GatewayError):
    """The watcher rejected an operation."""
