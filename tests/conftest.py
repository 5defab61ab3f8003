"""Pytest configuration and fixtures."""

import sys
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.datastructures import Address
from starlette.websockets import WebSocketState

from gateway.app import create_app
from gateway.config import Settings
from gateway.watcher import ItemWatcher

FUTURE_EXPIRY = "9999999999"


def make_item(item_id: str = "item-1", **overrides: Any) -> dict[str, Any]:
    """Build an item descriptor as a client would send it."""
    item: dict[str, Any] = {
        "id": item_id,
        "makerAddress": "0x5409ed021d9299bf6814279a6a1411a7e866a631",
        "salt": "71987654321098765432109876543210987654321",
        "makerFee": "0",
        "takerFee": "0",
        "makerAssetAmount": "5000000000000000000",
        "takerAssetAmount": "5000000000000000000",
        "expirationTimeSeconds": FUTURE_EXPIRY,
    }
    item.update(overrides)
    return item


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll a condition from the test thread."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeWebSocket:
    """Stand-in for a Starlette WebSocket that records outbound frames."""

    def __init__(self, host: str = "10.0.0.1", port: int = 50000, fail: bool = False) -> None:
        self.client = Address(host, port)
        self.sent: list[str] = []
        self.close_codes: list[int] = []
        self.fail = fail
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("socket is closed")
        self.sent.append(text)

    async def close(self, code: int = 1000) -> None:
        self.close_codes.append(code)
        self.application_state = WebSocketState.DISCONNECTED


class RecordingConnection:
    """Connection double that keeps every queued payload."""

    def __init__(self, remote_address: str = "10.0.0.2:40000", open: bool = True) -> None:
        self.remote_address = remote_address
        self.payloads: list[str] = []
        self._open = open

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, text: str) -> bool:
        if not self._open:
            return False
        self.payloads.append(text)
        return True

    def mark_closed(self) -> None:
        self._open = False


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        host="127.0.0.1",
        port=8080,
        debug=True,
    )


@pytest.fixture
def watcher() -> ItemWatcher:
    """Create an empty in-memory watcher."""
    return ItemWatcher()


@pytest.fixture
def app(settings: Settings, watcher: ItemWatcher) -> FastAPI:
    """Create configured app around the test watcher."""
    return create_app(settings, watcher)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Create test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client
