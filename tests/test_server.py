"""Listener lifecycle tests."""

import asyncio
import json
import socket
from collections.abc import Iterator

import httpx
import pytest
import websockets
from websockets.exceptions import ConnectionClosed

from gateway.config import Settings
from gateway.errors import ListenerStartupError
from gateway.lifecycle import GracefulShutdown
from gateway.server import GatewayServer, bind_socket


@pytest.fixture
def occupied_port() -> Iterator[int]:
    """Hold a listening socket on an ephemeral port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


def test_bind_failure_is_fatal(occupied_port: int) -> None:
    """A port already in use raises instead of retrying."""
    with pytest.raises(ListenerStartupError) as exc_info:
        bind_socket("127.0.0.1", occupied_port)

    assert exc_info.value.port == occupied_port
    assert str(occupied_port) in str(exc_info.value)


@pytest.mark.asyncio
async def test_start_fails_on_occupied_port(occupied_port: int) -> None:
    """start() surfaces the bind failure."""
    server = GatewayServer(Settings(port=occupied_port))

    with pytest.raises(ListenerStartupError):
        await server.start()
    assert not server.is_serving


@pytest.mark.asyncio
async def test_start_and_stop() -> None:
    """The listener serves 404 over plain HTTP until stopped."""
    server = GatewayServer(Settings(port=0))
    await server.start()
    assert server.is_serving
    port = server.port
    assert port != 0

    async with httpx.AsyncClient() as http:
        response = await http.get(f"http://127.0.0.1:{port}/")
    assert response.status_code == 404
    assert len(server.app.state.registry) == 0

    await server.stop()
    assert not server.is_serving
    assert not server.app.state.relay.is_subscribed


@pytest.mark.asyncio
async def test_drain_reports_timeout() -> None:
    """Shutdown work that overruns its budget is abandoned."""
    shutdown = GracefulShutdown(timeout=0.01)
    shutdown.trigger()
    shutdown.trigger()

    async def slow() -> None:
        await asyncio.sleep(1)

    async def quick() -> None:
        return None

    assert shutdown.is_triggered
    assert await shutdown.drain(quick()) is True
    assert await shutdown.drain(slow()) is False


@pytest.mark.asyncio
async def test_stop_closes_clients_going_away() -> None:
    """Stopping the listener closes live clients with 1001 and returns."""
    server = GatewayServer(Settings(port=0))
    await server.start()
    port = server.port

    async with websockets.connect(f"ws://127.0.0.1:{port}/orders") as client:
        await client.send(json.dumps({"action": "getStats"}))
        reply = json.loads(await client.recv())
        assert reply == {"action": "getStats", "success": 1, "result": {"count": 0}}

        await server.stop()

        with pytest.raises(ConnectionClosed) as exc_info:
            await client.recv()
    assert exc_info.value.rcvd is not None
    assert exc_info.value.rcvd.code == 1001
    assert not server.is_serving
    assert server.port == port
    assert len(server.app.state.registry) == 0
