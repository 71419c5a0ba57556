"""Local queue, checkpoint and record cache."""

import pytest

from app.client.store import LocalStore


@pytest.fixture
def store():
    return LocalStore("sqlite://")


def test_queue_is_fifo_per_stream(store):
    store.enqueue("reviews", {"id": "a", "operation": "create", "data": {"n": 1}})
    store.enqueue("stats", {"id": "s", "operation": "update", "data": {"date": "2024-01-01"}})
    store.enqueue("reviews", {"id": "b", "operation": "create", "data": {"n": 2}})
    store.enqueue("reviews", {"id": "c", "operation": "create", "data": {"n": 3}})

    batch = store.dequeue_batch("reviews", 2)

    assert [op["id"] for op in batch] == ["a", "b"]
    assert batch[0]["data"] == {"n": 1}
    assert batch[0]["timestamp"].endswith("Z")
    assert "localVersion" not in batch[0]
    # Dequeue does not remove anything
    assert [op["id"] for op in store.dequeue_batch("reviews", 10)] == ["a", "b", "c"]


def test_enqueue_generates_id_and_ignores_duplicates(store):
    generated = store.enqueue("vocabulary", {"operation": "update", "data": {"id": "w1"}, "localVersion": 3})
    store.enqueue("vocabulary", {"id": generated, "operation": "update", "data": {"id": "w1"}})

    batch = store.dequeue_batch("vocabulary", 10)
    assert len(batch) == 1
    assert batch[0]["id"] == generated
    assert batch[0]["localVersion"] == 3


def test_acknowledge_removes_only_listed_operations(store):
    for op_id in ("a", "b", "c"):
        store.enqueue("reviews", {"id": op_id, "operation": "create", "data": {}})

    assert store.acknowledge(["a", "c", "unknown"]) == 2
    assert [op["id"] for op in store.dequeue_batch("reviews", 10)] == ["b"]
    assert store.acknowledge([]) == 0


def test_failed_operation_stays_queued_until_parked(store):
    store.enqueue("reviews", {"id": "a", "operation": "create", "data": {}})

    assert store.mark_failed("a", "rating: bad value", max_attempts=2) == 1
    assert store.status() == {"total": 1, "pending": 1, "failed": 0}

    assert store.mark_failed("a", "rating: bad value", max_attempts=2) == 2
    assert store.status() == {"total": 1, "pending": 0, "failed": 1}
    assert store.dequeue_batch("reviews", 10) == []

    parked = store.pending_operations("reviews")[0]
    assert parked.last_error == "rating: bad value"
    assert parked.attempts == 2

    assert store.retry_failed() == 1
    assert [op["id"] for op in store.dequeue_batch("reviews", 10)] == ["a"]
    assert store.pending_operations()[0].attempts == 0


def test_mark_failed_without_limit_never_parks(store):
    store.enqueue("stats", {"id": "s", "operation": "update", "data": {}})
    for _ in range(5):
        store.mark_failed("s", "boom")

    assert store.status("stats")["pending"] == 1
    assert store.mark_failed("missing", "boom") is None


def test_clear_by_stream(store):
    store.enqueue("reviews", {"id": "a", "operation": "create", "data": {}})
    store.enqueue("stats", {"id": "s", "operation": "update", "data": {}})

    assert store.clear("reviews") == 1
    assert store.status() == {"total": 1, "pending": 1, "failed": 0}


def test_checkpoint_only_moves_forward(store):
    assert store.get_checkpoint("reviews") is None

    assert store.advance_checkpoint("reviews", "2024-03-01T10:00:00.000000Z") is True
    assert store.advance_checkpoint("reviews", "2024-02-01T10:00:00.000000Z") is False
    assert store.get_checkpoint("reviews") == "2024-03-01T10:00:00.000000Z"

    assert store.advance_checkpoint("reviews", "2024-03-02T00:00:00.000000Z") is True
    assert store.get_checkpoint("reviews") == "2024-03-02T00:00:00.000000Z"
    assert store.get_checkpoint("stats") is None


def test_resume_state_round_trip(store):
    store.set_resume("vocabulary", "abc", "2024-03-01T10:00:00.000000Z", None)
    assert store.get_resume("vocabulary") == {
        "cursor": "abc", "timestamp": "2024-03-01T10:00:00.000000Z", "since": None,
    }

    store.clear_resume("vocabulary")
    assert store.get_resume("vocabulary") is None


def test_device_id_is_stable(store):
    assert store.get_device_id() == store.get_device_id()


def test_record_cache(store):
    store.save_records("vocabulary", {"w1": {"id": "w1", "version": 1}, "w2": {"id": "w2", "version": 1}})
    store.save_records("vocabulary", {"w1": {"id": "w1", "version": 2}})

    assert store.get_records("vocabulary", ["w1", "missing"]) == {"w1": {"id": "w1", "version": 2}}
    assert set(store.all_records("vocabulary")) == {"w1", "w2"}
    assert store.all_records("stats") == {}

    assert store.delete_records("vocabulary", ["w2"]) == 1
    assert set(store.all_records("vocabulary")) == {"w1"}


def test_queue_survives_restart(tmp_path):
    url = f"sqlite:///{tmp_path / 'client.db'}"
    first = LocalStore(url)
    first.enqueue("reviews", {"id": "a", "operation": "create", "data": {"rating": "good"}})
    first.advance_checkpoint("reviews", "2024-03-01T10:00:00.000000Z")
    device_id = first.get_device_id()
    first.engine.dispose()

    second = LocalStore(url)
    assert [op["id"] for op in second.dequeue_batch("reviews", 10)] == ["a"]
    assert second.get_checkpoint("reviews") == "2024-03-01T10:00:00.000000Z"
    assert second.get_device_id() == device_id
