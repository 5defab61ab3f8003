"""Broadcast relay tests."""

import json

import pytest

from conftest import RecordingConnection, make_item
from gateway.connections import ConnectionRegistry
from gateway.errors import WatcherError
from gateway.events import BroadcastRelay
from gateway.watcher import ItemWatcher, ValidItemState


class BrokenConnection(RecordingConnection):
    """Connection whose send raises."""

    def send(self, text: str) -> bool:
        raise ConnectionError("peer vanished")


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.mark.asyncio
async def test_state_change_reaches_every_connection(watcher: ItemWatcher, registry) -> None:
    """N open connections receive exactly N identical broadcasts."""
    connections = [RecordingConnection(f"10.0.0.{i}:1") for i in range(3)]
    for connection in connections:
        registry.add(connection)
    BroadcastRelay(watcher, registry)

    await watcher.submit_item(make_item("a"))
    watcher.update_item("a", fillable="10")

    messages = [c.payloads for c in connections]
    assert all(len(m) == 1 for m in messages)
    assert len({m[0] for m in messages}) == 1
    assert json.loads(messages[0][0]) == {
        "action": "update",
        "success": 1,
        "result": {"itemId": "a", "isValid": True, "relevantState": {"fillable": "10"}},
    }


def test_relay_subscribes_once(watcher: ItemWatcher, registry) -> None:
    """The relay holds the watcher's only subscription until closed."""
    relay = BroadcastRelay(watcher, registry)
    assert relay.is_subscribed

    with pytest.raises(WatcherError):
        watcher.subscribe(lambda error, state: None)

    relay.close()
    relay.close()
    assert not relay.is_subscribed
    watcher.subscribe(lambda error, state: None)


def test_send_failure_is_isolated(watcher: ItemWatcher, registry) -> None:
    """One failing recipient does not stop delivery to the others."""
    healthy = RecordingConnection("10.0.0.1:1")
    registry.add(BrokenConnection("10.0.0.9:9"))
    registry.add(healthy)
    relay = BroadcastRelay(watcher, registry)

    delivered = relay.broadcast(None, ValidItemState(item_id="a"))

    assert delivered == 1
    assert len(healthy.payloads) == 1


def test_removed_connection_gets_nothing(watcher: ItemWatcher, registry) -> None:
    """Broadcasts skip connections that were deregistered."""
    gone = RecordingConnection("10.0.0.1:1")
    kept = RecordingConnection("10.0.0.2:2")
    registry.add(gone)
    registry.add(kept)
    registry.remove(gone)
    relay = BroadcastRelay(watcher, registry)

    assert relay.broadcast(None, ValidItemState(item_id="a")) == 1
    assert gone.payloads == []
    assert len(kept.payloads) == 1


def test_broadcast_with_no_connections(watcher: ItemWatcher, registry) -> None:
    """Broadcasting to an empty registry is a no-op."""
    relay = BroadcastRelay(watcher, registry)
    assert relay.broadcast(None, ValidItemState(item_id="a")) == 0
    assert relay.broadcast_count == 1


def test_error_channel_payload(watcher: ItemWatcher, registry) -> None:
    """Watcher errors are relayed as an error-shaped result."""
    connection = RecordingConnection()
    registry.add(connection)
    BroadcastRelay(watcher, registry)

    watcher.report_error(WatcherError("provider timeout"))

    assert json.loads(connection.payloads[0]) == {
        "action": "update",
        "success": 1,
        "result": {"error": "provider timeout"},
    }


@pytest.mark.asyncio
async def test_events_arrive_in_emission_order(watcher: ItemWatcher, registry) -> None:
    """Each connection sees broadcasts in the order the watcher emitted them."""
    connection = RecordingConnection()
    registry.add(connection)
    BroadcastRelay(watcher, registry)
    await watcher.submit_item(make_item("a"))

    for step in range(5):
        watcher.update_item("a", step=step)

    steps = [json.loads(p)["result"]["relevantState"]["step"] for p in connection.payloads]
    assert steps == [0, 1, 2, 3, 4]
