"""Client connection with a queued, non-blocking send path."""

import asyncio

import structlog
from starlette.websockets import WebSocket, WebSocketState

logger = structlog.get_logger()


def format_peer(websocket: WebSocket) -> str:
    """Render the remote address of a WebSocket for logging.

    Args:
        websocket: Accepted or pending WebSocket.

    Returns:
        ``host:port`` of the peer, or ``unknown`` when not available.
    """
    client = websocket.client
    if client is None:
        return "unknown"
    return f"{client.host}:{client.port}"


class Connection:
    """Live duplex channel to one client.

    Outbound messages go through a bounded FIFO queue drained by
    ``run_writer``, so callers never wait on the socket and every message
    reaches the client in the order it was queued. When the queue is
    full the oldest pending message is dropped.

    Attributes:
        remote_address: Peer address used in log events.
    """

    def __init__(self, websocket: WebSocket, queue_size: int = 1000) -> None:
        """Initialize connection.

        Args:
            websocket: Accepted WebSocket for this client.
            queue_size: Maximum number of pending outbound messages.
        """
        self._websocket = websocket
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        self._dropped_count = 0
        self.remote_address = format_peer(websocket)

    @property
    def is_open(self) -> bool:
        """Whether messages can still be queued for this client."""
        return not self._closed

    @property
    def dropped_messages(self) -> int:
        """Number of messages dropped due to queue overflow."""
        return self._dropped_count

    @property
    def pending_messages(self) -> int:
        """Number of messages waiting to be written."""
        return self._queue.qsize()

    def send(self, text: str) -> bool:
        """Queue a text frame for delivery.

        Args:
            text: Serialized message.

        Returns:
            True if queued, False if the connection is already closed.
        """
        if self._closed:
            return False

        try:
            self._queue.put_nowait(text)
        except asyncio.QueueFull:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self._queue.put_nowait(text)
            self._dropped_count += 1
            logger.warning(
                "connection_queue_overflow",
                client=self.remote_address,
                dropped_messages=self._dropped_count,
            )
        return True

    async def run_writer(self) -> None:
        """Write queued messages to the socket until cancelled or it fails."""
        try:
            while True:
                text = await self._queue.get()
                await self._websocket.send_text(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._closed = True
            logger.info(
                "connection_write_failed",
                client=self.remote_address,
                error=str(e),
            )

    def mark_closed(self) -> None:
        """Stop accepting new messages."""
        self._closed = True

    async def close(self, code: int = 1000) -> None:
        """Close the channel from the server side.

        Args:
            code: WebSocket close code sent to the client.
        """
        self._closed = True
        if (
            self._websocket.application_state != WebSocketState.CONNECTED
            or self._websocket.client_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self._websocket.close(code=code)
        except RuntimeError as e:
            logger.debug("connection_close_raced", client=self.remote_address, error=str(e))
