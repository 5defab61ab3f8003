"""Listener process wrapping uvicorn around the gateway application."""

import asyncio
import socket

import structlog
import uvicorn
from fastapi import FastAPI

from gateway.app import GOING_AWAY, create_app
from gateway.config import Settings
from gateway.errors import GatewayError, ListenerStartupError
from gateway.watcher import WatcherFacade

logger = structlog.get_logger()

STARTUP_POLL_INTERVAL = 0.01


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket.

    Args:
        host: Address to bind.
        port: Port to bind, 0 for an ephemeral port.

    Returns:
        Bound TCP socket.

    Raises:
        ListenerStartupError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise ListenerStartupError(host, port, e.strerror or str(e)) from e
    return sock


class GatewayServer:
    """Owns the listening socket and the uvicorn server for one gateway.

    ``start`` binds and returns once the application is accepting
    connections. ``stop`` closes every open connection, then the
    listener.

    Attributes:
        app: FastAPI application being served.
    """

    def __init__(
        self,
        settings: Settings,
        watcher: WatcherFacade | None = None,
    ) -> None:
        """Initialize server without binding.

        Args:
            settings: Listener and gateway configuration.
            watcher: Watcher to serve. Creates an in-memory one if None.
        """
        self._settings = settings
        self.app: FastAPI = create_app(settings, watcher)
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None
        self._bound_port: int | None = None

    @property
    def port(self) -> int:
        """Port actually bound, or the configured port before start."""
        if self._bound_port is None:
            return self._settings.port
        return self._bound_port

    @property
    def is_serving(self) -> bool:
        """Whether the listener is accepting connections."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Bind the listener and start serving.

        Raises:
            ListenerStartupError: If the address cannot be bound.
            GatewayError: If the server stops before it finished starting.
        """
        if self._task is not None:
            raise GatewayError("Gateway server already started")

        sock = bind_socket(self._settings.host, self._settings.port)
        config = uvicorn.Config(
            self.app,
            log_level="warning",
            access_log=False,
            lifespan="on",
        )
        server = uvicorn.Server(config)

        self._socket = sock
        self._bound_port = sock.getsockname()[1]
        self._server = server
        self._task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if self._task.done():
                sock.close()
                raise GatewayError("Gateway server exited during startup")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        logger.info("listener_started", host=self._settings.host, port=self.port)

    async def wait_closed(self) -> None:
        """Wait until the server task has finished."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def stop(self) -> None:
        """Force-close open connections and shut the listener down."""
        if self._server is None or self._task is None:
            return

        registry = getattr(self.app.state, "registry", None)
        if registry is not None:
            await registry.close_all(code=GOING_AWAY)

        self._server.should_exit = True
        await self._task

        # uvicorn has already closed the socket by now
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        logger.info("listener_stopped", port=self.port)
