"""
Client sync engine.

One cycle drains each stream's queue to the server, acknowledges what the
server processed, merges the returned rows into the local cache and
advances the stream's checkpoint to the server's clock.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.client.config import ClientSettings
from app.client.exceptions import SyncTransportError
from app.client.merge import STREAM_MERGE, PENDING_FLAG, merge
from app.client.store import LocalStore
from app.client.transport import SyncApiClient
from app.models.enums import SyncStream, SyncType
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# Vocabulary first so reviews and stats refer to words the server already has
STREAM_ORDER = (SyncStream.VOCABULARY, SyncStream.REVIEWS, SyncStream.STATS)

STATUS_SUCCESS = "success"
STATUS_PARTIAL = "partial"  # Cycle completed but some operations were rejected
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"


@dataclass
class StreamResult:
    stream: str
    uploaded: int = 0
    failed: int = 0
    downloaded: int = 0
    removed: int = 0
    conflicts: int = 0
    pages: int = 0
    checkpoint: Optional[str] = None
    complete: bool = False


@dataclass
class SyncResult:
    status: str
    sync_type: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    uploaded: int = 0
    downloaded: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)
    streams: Dict[str, StreamResult] = field(default_factory=dict)
    device_id: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


class SyncEngine:
    """
    Runs sync cycles for one device. Only one cycle runs at a time; a trigger
    that arrives while a cycle is in flight is skipped, not queued.
    """

    def __init__(
        self,
        store: LocalStore,
        transport: SyncApiClient,
        settings: Optional[ClientSettings] = None,
        is_online: Optional[Callable[[], bool]] = None,
    ):
        self.store = store
        self.transport = transport
        self.settings = settings if settings is not None else ClientSettings()
        self.is_online = is_online if is_online is not None else (lambda: True)
        self._lock = threading.Lock()
        self.last_result: Optional[SyncResult] = None

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    # --- Public API ---

    def sync(self, sync_type: str = SyncType.INCREMENTAL.value) -> SyncResult:
        """Run one cycle, or return a skipped result if offline or already syncing."""
        sync_type = SyncType(sync_type).value

        if not self.is_online():
            logger.info("Offline, skipping sync")
            return SyncResult(status=STATUS_SKIPPED, sync_type=sync_type, started_at=utcnow(), finished_at=utcnow())

        if not self._lock.acquire(blocking=False):
            logger.info("Sync already in progress, coalescing trigger")
            return SyncResult(status=STATUS_SKIPPED, sync_type=sync_type, started_at=utcnow(), finished_at=utcnow())

        try:
            result = self._run_cycle(sync_type)
        finally:
            self._lock.release()

        self.last_result = result
        return result

    def record(
        self,
        stream: str,
        operation: str,
        data: Dict[str, Any],
        op_id: Optional[str] = None,
        local_version: Optional[int] = None,
    ) -> str:
        """
        Queue a local mutation and apply it optimistically to the cache.

        Vocabulary updates and deletes default localVersion to the cached
        version so the server can detect stale writes.

        Returns:
            The operation id
        """
        stream = SyncStream(stream).value
        key_field, _ = STREAM_MERGE[stream]

        if stream == SyncStream.VOCABULARY.value and operation != "create" and local_version is None:
            cached = self.store.get_records(stream, [data["id"]]).get(str(data["id"]))
            local_version = int(cached.get("version") or 0) if cached else 0

        op = {"id": op_id, "operation": operation, "data": data}
        if local_version is not None:
            op["localVersion"] = local_version
        op_id = self.store.enqueue(stream, op)

        key = op_id if stream == SyncStream.REVIEWS.value else str(data[key_field])
        if stream == SyncStream.VOCABULARY.value and operation == "delete":
            self.store.delete_records(stream, [key])
        else:
            cached = self.store.get_records(stream, [key]).get(key, {})
            self.store.save_records(stream, {key: {**cached, **data, key_field: key, PENDING_FLAG: True}})

        return op_id

    def pending_count(self, stream: Optional[str] = None) -> int:
        return self.store.status(stream)["pending"]

    def state(self) -> Dict[str, Any]:
        queue = self.store.status()
        return {
            "is_syncing": self.is_syncing,
            "is_online": self.is_online(),
            "pending": queue["pending"],
            "failed": queue["failed"],
            "checkpoints": {stream.value: self.store.get_checkpoint(stream.value) for stream in STREAM_ORDER},
            "last_result": self.last_result,
        }

    # --- Cycle ---

    def _run_cycle(self, sync_type: str) -> SyncResult:
        result = SyncResult(status=STATUS_SUCCESS, sync_type=sync_type, started_at=utcnow())
        result.device_id = self.store.get_device_id()
        logger.info(f"Starting {sync_type} sync for device {result.device_id}")

        try:
            for stream in STREAM_ORDER:
                stream_result = self._sync_stream(stream.value, sync_type, result)
                result.streams[stream.value] = stream_result
                result.uploaded += stream_result.uploaded
                result.downloaded += stream_result.downloaded
                result.conflicts += stream_result.conflicts
        except SyncTransportError as e:
            logger.error(f"Sync aborted: {e}")
            result.status = STATUS_ERROR
            result.errors.append(str(e))
        else:
            if result.errors:
                result.status = STATUS_PARTIAL

        result.finished_at = utcnow()
        logger.info(
            f"Sync {result.status} in {result.duration_seconds:.2f}s: "
            f"{result.uploaded} uploaded, {result.downloaded} downloaded, {result.conflicts} conflicts"
        )
        return result

    def _request(self, last_sync_time: Optional[str], operations: List[Dict], device_id: str,
                 sync_type: str, cursor: Optional[str] = None) -> Dict[str, Any]:
        payload = {
            "lastSyncTime": last_sync_time,
            "operations": operations,
            "deviceId": device_id,
            "deviceName": self.settings.device_name,
            "syncType": sync_type,
        }
        if cursor:
            payload["cursor"] = cursor
        return payload

    def _sync_stream(self, stream: str, sync_type: str, result: SyncResult) -> StreamResult:
        stream_result = StreamResult(stream=stream)
        full = sync_type != SyncType.INCREMENTAL.value
        checkpoint = None if full else self.store.get_checkpoint(stream)
        resume = None if full else self.store.get_resume(stream)

        batch = self.store.dequeue_batch(stream, self.settings.batch_size)
        response = self.transport.post_sync(
            stream, self._request(checkpoint, batch, result.device_id, sync_type)
        )
        stream_result.pages = 1
        self._apply_acknowledgements(stream, response, stream_result, result)
        self._merge_response(stream, response, stream_result)

        # Continue an unfinished walk from an earlier cycle before starting a new one
        if resume:
            target, since, cursor = resume["timestamp"], resume["since"], resume["cursor"]
        else:
            target, since = response["timestamp"], checkpoint
            cursor = response.get("nextCursor") if response.get("hasMore") else None

        while cursor:
            if stream_result.pages >= self.settings.max_pages:
                self.store.set_resume(stream, cursor, target, since)
                logger.warning(f"{stream}: stopped after {stream_result.pages} pages, will resume next cycle")
                return stream_result
            page = self.transport.post_sync(stream, self._request(since, [], result.device_id, sync_type, cursor))
            stream_result.pages += 1
            self._merge_response(stream, page, stream_result)
            cursor = page.get("nextCursor") if page.get("hasMore") else None

        self.store.clear_resume(stream)
        self.store.advance_checkpoint(stream, target)
        stream_result.checkpoint = self.store.get_checkpoint(stream)
        stream_result.complete = True
        return stream_result

    def _apply_acknowledgements(self, stream: str, response: Dict[str, Any],
                                stream_result: StreamResult, result: SyncResult) -> None:
        processed = response.get("processed") or []
        if not isinstance(processed, list):
            raise SyncTransportError(f"Unexpected processed field syncing {stream}")

        stream_result.uploaded = self.store.acknowledge(processed)
        for entry in response.get("errors") or []:
            operation_id, error = entry.get("operation"), entry.get("error", "Unknown error")
            self.store.mark_failed(operation_id, error, self.settings.max_attempts)
            stream_result.failed += 1
            result.errors.append(f"{stream} {operation_id}: {error}")

        logger.info(f"{stream}: {stream_result.uploaded} acknowledged, {stream_result.failed} rejected")

    def _merge_response(self, stream: str, response: Dict[str, Any], stream_result: StreamResult) -> None:
        if stream == SyncStream.VOCABULARY.value:
            records = [change["data"] for change in response.get("operations") or []]
            conflicts = response.get("conflicts") or []
            stream_result.conflicts += len(conflicts)
            # The server kept its own copy; adopt it over the optimistic one
            records.extend(conflict["localData"] for conflict in conflicts if conflict.get("localData"))
        else:
            records = response.get(stream) or []

        if not records:
            return

        key_field, rank = STREAM_MERGE[stream]
        local = self.store.get_records(stream, [record[key_field] for record in records])
        merged, changed, removed = merge(local, records, key_field, rank)
        self.store.save_records(stream, {key: merged[key] for key in changed})
        self.store.delete_records(stream, removed)

        stream_result.downloaded += len(records)
        stream_result.removed += len(removed)
        logger.info(f"{stream}: merged {len(changed)} records, removed {len(removed)}")
