"""
Durable client-side storage for the sync engine.

Holds the queue of unacknowledged operations, the cached copy of server
rows, per-stream checkpoints and the device id, all in one SQLite database
so they survive restarts.
"""
import json
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

from app.client.models import LocalOperation, LocalRecord, LocalState, OPERATION_PENDING, OPERATION_FAILED
from app.utils.time_utils import utcnow, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id"


def make_local_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


class LocalStore:
    """
    Persistent queue, record cache and sync state for one device.

    Operations leave the queue only through acknowledge() or clear(). A
    failing operation is retried on later cycles, and once max_attempts is
    reached it is parked as failed rather than dropped.
    """

    def __init__(self, database_url: str = "sqlite:///palabra_client.db", engine: Optional[Engine] = None):
        self.engine = engine if engine is not None else make_local_engine(database_url)
        SQLModel.metadata.create_all(
            self.engine,
            tables=[LocalOperation.__table__, LocalRecord.__table__, LocalState.__table__],
        )

    # --- Operation queue ---

    def enqueue(self, stream: str, op: Dict[str, Any]) -> str:
        """
        Append an operation to the stream's queue.

        Args:
            stream: 'vocabulary', 'reviews' or 'stats'
            op: Dict with 'operation', 'data' and optionally 'id' and 'localVersion'

        Returns:
            The operation id (generated when op has none)
        """
        operation_id = op.get("id") or str(uuid.uuid4())
        with Session(self.engine) as session:
            existing = session.exec(
                select(LocalOperation).where(LocalOperation.operation_id == operation_id)
            ).first()
            if existing:
                logger.debug(f"Operation {operation_id} already queued")
                return operation_id

            session.add(LocalOperation(
                operation_id=operation_id,
                stream=stream,
                operation=op["operation"],
                data=dict(op.get("data") or {}),
                local_version=op.get("localVersion"),
            ))
            session.commit()

        logger.debug(f"Queued {op['operation']} {operation_id} on {stream}")
        return operation_id

    def dequeue_batch(self, stream: str, max_size: int) -> List[Dict[str, Any]]:
        """Oldest pending operations first, in wire shape. Nothing is removed."""
        with Session(self.engine) as session:
            rows = session.exec(
                select(LocalOperation)
                .where(LocalOperation.stream == stream, LocalOperation.status == OPERATION_PENDING)
                .order_by(LocalOperation.seq)
                .limit(max_size)
            ).all()
            return [self._to_wire(row) for row in rows]

    @staticmethod
    def _to_wire(row: LocalOperation) -> Dict[str, Any]:
        op = {
            "id": row.operation_id,
            "operation": row.operation,
            "data": row.data,
            "timestamp": format_timestamp(row.created_at),
        }
        if row.local_version is not None:
            op["localVersion"] = row.local_version
        return op

    def acknowledge(self, ids: Iterable[str]) -> int:
        """Remove operations the server has processed. Returns how many were removed."""
        ids = list(set(ids))
        if not ids:
            return 0
        with Session(self.engine) as session:
            rows = session.exec(select(LocalOperation).where(LocalOperation.operation_id.in_(ids))).all()
            for row in rows:
                session.delete(row)
            session.commit()
            return len(rows)

    def mark_failed(self, operation_id: str, error: str, max_attempts: Optional[int] = None) -> Optional[int]:
        """
        Record a failed attempt; the operation stays queued.

        Returns:
            The new attempt count, or None if the operation is no longer queued
        """
        with Session(self.engine) as session:
            row = session.exec(
                select(LocalOperation).where(LocalOperation.operation_id == operation_id)
            ).first()
            if row is None:
                logger.warning(f"Cannot mark unknown operation {operation_id} as failed")
                return None

            row.attempts += 1
            row.last_error = error
            row.last_attempt_at = utcnow()
            if max_attempts is not None and row.attempts >= max_attempts:
                row.status = OPERATION_FAILED
                logger.warning(f"Operation {operation_id} parked after {row.attempts} attempts: {error}")
            session.add(row)
            session.commit()
            return row.attempts

    def status(self, stream: Optional[str] = None) -> Dict[str, int]:
        with Session(self.engine) as session:
            statement = select(LocalOperation.status, func.count()).group_by(LocalOperation.status)
            if stream:
                statement = statement.where(LocalOperation.stream == stream)
            counts = dict(session.exec(statement).all())

        pending = counts.get(OPERATION_PENDING, 0)
        failed = counts.get(OPERATION_FAILED, 0)
        return {"total": pending + failed, "pending": pending, "failed": failed}

    def pending_operations(self, stream: Optional[str] = None) -> List[LocalOperation]:
        """All queued operations, parked ones included, in queue order."""
        with Session(self.engine) as session:
            statement = select(LocalOperation).order_by(LocalOperation.seq)
            if stream:
                statement = statement.where(LocalOperation.stream == stream)
            return list(session.exec(statement).all())

    def retry_failed(self, ids: Optional[Iterable[str]] = None) -> int:
        """Put parked operations back in the queue with a fresh attempt count."""
        with Session(self.engine) as session:
            statement = select(LocalOperation).where(LocalOperation.status == OPERATION_FAILED)
            if ids is not None:
                statement = statement.where(LocalOperation.operation_id.in_(list(ids)))
            rows = session.exec(statement).all()
            for row in rows:
                row.status = OPERATION_PENDING
                row.attempts = 0
                session.add(row)
            session.commit()
            return len(rows)

    def clear(self, stream: Optional[str] = None) -> int:
        """Drop queued operations. This is the only removal path besides acknowledge()."""
        with Session(self.engine) as session:
            statement = select(LocalOperation)
            if stream:
                statement = statement.where(LocalOperation.stream == stream)
            rows = session.exec(statement).all()
            for row in rows:
                session.delete(row)
            session.commit()
            logger.info(f"Cleared {len(rows)} queued operations{f' on {stream}' if stream else ''}")
            return len(rows)

    # --- Key/value state ---

    def _get_state(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            row = session.get(LocalState, key)
            return row.value if row else None

    def _set_state(self, key: str, value: Optional[str]) -> None:
        with Session(self.engine) as session:
            row = session.get(LocalState, key)
            if value is None:
                if row:
                    session.delete(row)
            elif row:
                row.value = value
                session.add(row)
            else:
                session.add(LocalState(key=key, value=value))
            session.commit()

    def get_checkpoint(self, stream: str) -> Optional[str]:
        return self._get_state(f"checkpoint:{stream}")

    def advance_checkpoint(self, stream: str, timestamp: str) -> bool:
        """
        Move the stream's checkpoint forward to a server timestamp.

        Returns:
            False (keeping the stored value) when timestamp is older than it
        """
        current = self.get_checkpoint(stream)
        if current is not None and parse_timestamp(timestamp) < parse_timestamp(current):
            logger.warning(f"Refusing to move {stream} checkpoint back from {current} to {timestamp}")
            return False
        self._set_state(f"checkpoint:{stream}", timestamp)
        logger.info(f"Checkpoint for {stream} advanced to {timestamp}")
        return True

    def get_resume(self, stream: str) -> Optional[Dict[str, Any]]:
        """An unfinished page walk left by a cycle that hit its page limit."""
        value = self._get_state(f"resume:{stream}")
        return json.loads(value) if value else None

    def set_resume(self, stream: str, cursor: str, timestamp: str, since: Optional[str]) -> None:
        self._set_state(
            f"resume:{stream}",
            json.dumps({"cursor": cursor, "timestamp": timestamp, "since": since}),
        )

    def clear_resume(self, stream: str) -> None:
        self._set_state(f"resume:{stream}", None)

    def get_device_id(self) -> str:
        """Stable id for this device, created on first use."""
        device_id = self._get_state(DEVICE_ID_KEY)
        if device_id is None:
            device_id = str(uuid.uuid4())
            self._set_state(DEVICE_ID_KEY, device_id)
            logger.info(f"Generated device id {device_id}")
        return device_id

    # --- Record cache ---

    def get_records(self, stream: str, keys: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        keys = [str(key) for key in keys]
        if not keys:
            return {}
        with Session(self.engine) as session:
            rows = session.exec(
                select(LocalRecord).where(LocalRecord.stream == stream, LocalRecord.key.in_(keys))
            ).all()
            return {row.key: dict(row.data) for row in rows}

    def all_records(self, stream: str) -> Dict[str, Dict[str, Any]]:
        with Session(self.engine) as session:
            rows = session.exec(select(LocalRecord).where(LocalRecord.stream == stream)).all()
            return {row.key: dict(row.data) for row in rows}

    def save_records(self, stream: str, records: Dict[str, Dict[str, Any]]) -> int:
        if not records:
            return 0
        with Session(self.engine) as session:
            for key, data in records.items():
                row = session.get(LocalRecord, (stream, str(key)))
                if row is None:
                    row = LocalRecord(stream=stream, key=str(key), data=dict(data))
                else:
                    row.data = dict(data)
                    row.updated_at = utcnow()
                session.add(row)
            session.commit()
        return len(records)

    def delete_records(self, stream: str, keys: Iterable[str]) -> int:
        keys = [str(key) for key in keys]
        if not keys:
            return 0
        with Session(self.engine) as session:
            rows = session.exec(
                select(LocalRecord).where(LocalRecord.stream == stream, LocalRecord.key.in_(keys))
            ).all()
            for row in rows:
                session.delete(row)
            session.commit()
            return len(rows)
