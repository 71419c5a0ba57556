"""Watch loop of the client driver script."""

import pytest

from app.client.config import ClientSettings
from app.client.connectivity import ConnectivityMonitor
from app.client.engine import SyncEngine
from app.client.store import LocalStore
from run_client_sync import poll_once


class RecordingTransport:
    def __init__(self):
        self.reachable = True
        self.posted = []

    def ping(self):
        return self.reachable

    def post_sync(self, stream, payload):
        self.posted.append((stream, [op["id"] for op in payload["operations"]]))
        return {
            "timestamp": "2024-03-01T10:00:00.000000Z",
            "processed": [op["id"] for op in payload["operations"]],
            "errors": [],
        }


class IdleTimer:
    def __init__(self, delay, callback):
        self.daemon = False

    def start(self):
        pass

    def cancel(self):
        pass


@pytest.fixture
def watched():
    client_settings = ClientSettings(sync_interval_seconds=300, device_name="pytest")
    transport = RecordingTransport()
    monitor = ConnectivityMonitor(lambda: None, online=True, timer_factory=IdleTimer)
    engine = SyncEngine(LocalStore("sqlite://"), transport, client_settings, is_online=monitor.is_online)
    return engine, monitor, client_settings, transport


def test_queued_operations_upload_on_interval_while_online(watched):
    engine, monitor, client_settings, transport = watched
    engine.record("reviews", "create", {"vocabularyId": "w1", "rating": "good"}, op_id="r1")

    assert poll_once(engine, monitor, client_settings, last_sync_at=0, now=100) == 0
    assert transport.posted == []

    assert poll_once(engine, monitor, client_settings, last_sync_at=0, now=300) == 300
    assert ("reviews", ["r1"]) in transport.posted
    assert engine.pending_count() == 0


def test_no_periodic_sync_while_offline(watched):
    engine, monitor, client_settings, transport = watched
    transport.reachable = False

    assert poll_once(engine, monitor, client_settings, last_sync_at=0, now=1000) == 0
    assert transport.posted == []
    assert not monitor.is_online()


def test_pending_reconnect_takes_precedence(watched):
    engine, monitor, client_settings, transport = watched
    monitor.set_online(False)

    assert poll_once(engine, monitor, client_settings, last_sync_at=0, now=1000) == 0
    assert monitor.reconnect_pending
    assert transport.posted == []


def test_zero_interval_disables_periodic_sync(watched):
    engine, monitor, client_settings, transport = watched
    client_settings.sync_interval_seconds = 0

    assert poll_once(engine, monitor, client_settings, last_sync_at=0, now=10_000) == 0
    assert transport.posted == []
