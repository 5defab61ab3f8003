"""WebSocket command channel accepted on every path."""

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, WebSocket

from gateway.connections import Connection

if TYPE_CHECKING:
    from gateway.commands import CommandRouter
    from gateway.config import Settings
    from gateway.connections import ConnectionRegistry

logger = structlog.get_logger()

router = APIRouter(tags=["channel"])


@router.websocket("/{path:path}")
async def command_channel(websocket: WebSocket, path: str) -> None:
    """Serve one client for the lifetime of its WebSocket.

    The connection is registered for broadcasts before its first frame
    is read and deregistered when the channel closes, whatever the cause.
    Each frame is handed to the command router, which queues exactly one
    response on this connection.

    Args:
        websocket: Incoming WebSocket upgrade.
        path: Request path; every path serves the same channel.
    """
    settings: Settings = websocket.app.state.settings
    registry: ConnectionRegistry = websocket.app.state.registry
    command_router: CommandRouter = websocket.app.state.command_router

    await websocket.accept()
    connection = Connection(websocket, queue_size=settings.connection_queue_size)
    registry.add(connection)
    logger.info(
        "connection_opened",
        client=connection.remote_address,
        path=f"/{path}",
        active_connections=len(registry),
    )

    writer = asyncio.create_task(connection.run_writer())
    close_code: int | None = None

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                close_code = message.get("code")
                break
            await command_router.handle_frame(connection, message.get("text"))
    except Exception as e:
        logger.warning(
            "connection_error",
            client=connection.remote_address,
            error=str(e),
        )
    finally:
        registry.remove(connection)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer

        logger.info(
            "connection_closed",
            client=connection.remote_address,
            code=close_code,
            active_connections=len(registry),
        )
