"""
Sync service for applying client operation batches and collecting remote changes.

Every sync request follows the same shape:
1. Reject oversize batches and bad cursors before anything is written
2. Take one server timestamp for the whole request
3. Apply operations in submission order, each inside its own savepoint
4. Collect rows changed since the client's checkpoint, one page at a time
5. Record a sync log row and commit
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date as date_type, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import and_, or_
from sqlalchemy.exc import DataError, IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.exceptions import (
    PalabraException,
    ValidationError,
    NotFoundError,
    ConflictError,
    UnsupportedOperationError,
)
from app.models.enums import SyncStream, SyncOperationKind, ReviewRating, ReviewDirection
from app.models.models import Review, DailyStats, VocabularyItem, SyncReceipt, SyncLog, DeviceInfo
from app.schemas.sync import (
    SyncRequest,
    SyncOperationEnvelope,
    SyncErrorEntry,
    SyncConflictEntry,
    ReviewRecord,
    ReviewSyncResponse,
    DailyStatsRecord,
    StatsSyncResponse,
    VocabularyChange,
    VocabularySyncResponse,
    VocabularyPayload,
    review_operation_adapter,
    stats_operation_adapter,
    vocabulary_operation_adapter,
)
from app.utils.cursor_utils import encode_cursor, decode_cursor
from app.utils.time_utils import utcnow, to_naive_utc, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

# Failures that only discard the operation that raised them
OPERATION_ERRORS = (PalabraException, SchemaValidationError, IntegrityError, DataError)

RATING_QUALITY = {
    ReviewRating.FORGOT: 0,
    ReviewRating.HARD: 2,
    ReviewRating.GOOD: 4,
    ReviewRating.EASY: 5,
}

STORED_DIRECTION = {
    ReviewDirection.SPANISH_TO_ENGLISH: "spanish-english",
    ReviewDirection.ENGLISH_TO_SPANISH: "english-spanish",
    ReviewDirection.MIXED: "spanish-english",
}


@dataclass
class BatchOutcome:
    """What happened to each operation of one request."""
    processed: List[str] = field(default_factory=list)
    errors: List[SyncErrorEntry] = field(default_factory=list)
    conflicts: List[SyncConflictEntry] = field(default_factory=list)


@dataclass
class ChangePage:
    rows: List[Any]
    has_more: bool = False
    next_cursor: Optional[str] = None


ApplyFn = Callable[[Session, int, SyncOperationEnvelope, datetime, BatchOutcome], None]


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _page_size(value: Optional[int]) -> Optional[int]:
    """None or 0 means unbounded."""
    return value if value else None


def _error_message(error: Exception) -> str:
    if isinstance(error, SchemaValidationError):
        parts = []
        for detail in error.errors():
            location = ".".join(str(part) for part in detail.get("loc", ()))
            parts.append(f"{location}: {detail.get('msg')}" if location else detail.get("msg", ""))
        return "; ".join(parts) or "Invalid operation payload"
    if isinstance(error, IntegrityError):
        return "Operation violates a database constraint"
    if isinstance(error, DataError):
        return "Operation contains a value the database rejected"
    return str(error)


def validate_sync_request(request: SyncRequest) -> None:
    """
    Reject requests that cannot be processed at all.

    Raises:
        ValidationError: If the batch is larger than sync_max_operations
    """
    if len(request.operations) > settings.sync_max_operations:
        raise ValidationError(
            f"Too many operations: {len(request.operations)} (max {settings.sync_max_operations})"
        )


def has_receipt(session: Session, user_id: int, stream: SyncStream, operation_id: str) -> bool:
    statement = select(SyncReceipt.id).where(
        SyncReceipt.user_id == user_id,
        SyncReceipt.stream == stream.value,
        SyncReceipt.operation_id == operation_id,
    )
    return session.exec(statement).first() is not None


def add_receipt(session: Session, user_id: int, stream: SyncStream, operation_id: str, sync_time: datetime) -> None:
    session.add(SyncReceipt(
        user_id=user_id,
        stream=stream.value,
        operation_id=operation_id,
        created_at=sync_time,
    ))


def process_operations(
    session: Session,
    user_id: int,
    stream: SyncStream,
    operations: List[SyncOperationEnvelope],
    sync_time: datetime,
    apply_fn: ApplyFn,
) -> BatchOutcome:
    """
    Apply operations in order, isolating each one in a savepoint.

    A recoverable failure rolls back only its own savepoint and is reported
    in outcome.errors. Anything else propagates and fails the request.

    Returns:
        BatchOutcome where every operation id appears in exactly one of
        processed or errors
    """
    outcome = BatchOutcome()

    for envelope in operations:
        try:
            with session.begin_nested():
                apply_fn(session, user_id, envelope, sync_time, outcome)
                session.flush()
        except OPERATION_ERRORS as e:
            message = _error_message(e)
            logger.warning(f"Sync {stream.value} operation {envelope.id} failed for user {user_id}: {message}")
            outcome.errors.append(SyncErrorEntry(operation=envelope.id, error=message))
            continue
        outcome.processed.append(envelope.id)

    return outcome


def _paginate(session: Session, statement, page_size: Optional[int], cursor_for: Callable[[Any], str]) -> ChangePage:
    """Run a change query, fetching one extra row to learn whether another page exists."""
    if page_size is None:
        return ChangePage(rows=list(session.exec(statement).all()))

    rows = list(session.exec(statement.limit(page_size + 1)).all())
    if len(rows) <= page_size:
        return ChangePage(rows=rows)

    rows = rows[:page_size]
    return ChangePage(rows=rows, has_more=True, next_cursor=cursor_for(rows[-1]))


def _decode_synced_cursor(cursor: Optional[str]) -> Optional[Tuple[datetime, Any]]:
    """Cursor for feeds ordered by (last_synced_at, id) descending."""
    if not cursor:
        return None
    synced_at, row_id = decode_cursor(cursor, 2)
    try:
        return parse_timestamp(synced_at), row_id
    except (AttributeError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid cursor: {cursor}") from e


def _after_synced_cursor(model, position: Tuple[datetime, Any]):
    synced_at, row_id = position
    return or_(
        model.last_synced_at < synced_at,
        and_(model.last_synced_at == synced_at, model.id < row_id),
    )


def record_sync_log(
    session: Session,
    user_id: int,
    stream: SyncStream,
    request: SyncRequest,
    outcome: BatchOutcome,
    items_returned: int,
    sync_time: datetime,
) -> SyncLog:
    log = SyncLog(
        user_id=user_id,
        stream=stream.value,
        sync_type=request.sync_type.value,
        device_id=request.device_id,
        items_synced=len(outcome.processed),
        items_returned=items_returned,
        conflicts_found=len(outcome.conflicts),
        errors=[entry.model_dump(by_alias=True) for entry in outcome.errors] or None,
        created_at=sync_time,
    )
    session.add(log)
    return log


def upsert_device(
    session: Session,
    user_id: int,
    device_id: str,
    device_name: Optional[str],
    sync_time: datetime,
) -> DeviceInfo:
    """Create or refresh the device row for a syncing client."""
    device = session.exec(select(DeviceInfo).where(DeviceInfo.device_id == device_id)).first()
    if device is None:
        device = DeviceInfo(
            device_id=device_id,
            user_id=user_id,
            device_name=device_name or "Unknown Device",
        )
    elif device.user_id != user_id:
        logger.info(f"Device {device_id} moved from user {device.user_id} to user {user_id}")
        device.user_id = user_id

    if device_name:
        device.device_name = device_name
    device.last_active_at = sync_time
    device.last_sync_at = sync_time
    session.add(device)
    return device


def _run_sync(
    session: Session,
    user_id: int,
    stream: SyncStream,
    request: SyncRequest,
    apply_fn: ApplyFn,
    fetch_fn: Callable[[Session, int, SyncRequest, datetime], ChangePage],
) -> Tuple[BatchOutcome, ChangePage, datetime]:
    validate_sync_request(request)
    sync_time = utcnow()

    logger.info(
        f"Sync {stream.value} for user {user_id}: {len(request.operations)} operations, "
        f"since={request.last_sync_time}, cursor={'yes' if request.cursor else 'no'}"
    )

    outcome = process_operations(session, user_id, stream, request.operations, sync_time, apply_fn)
    page = fetch_fn(session, user_id, request, sync_time)

    if request.device_id:
        upsert_device(session, user_id, request.device_id, request.device_name, sync_time)
    record_sync_log(session, user_id, stream, request, outcome, len(page.rows), sync_time)
    session.commit()

    logger.info(
        f"Sync {stream.value} for user {user_id} done: {len(outcome.processed)} processed, "
        f"{len(outcome.errors)} errors, {len(outcome.conflicts)} conflicts, {len(page.rows)} returned"
    )
    return outcome, page, sync_time


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


def apply_review_operation(
    session: Session,
    user_id: int,
    envelope: SyncOperationEnvelope,
    sync_time: datetime,
    outcome: BatchOutcome,
) -> None:
    """
    Create one review. The operation id is the idempotency key.

    Raises:
        UnsupportedOperationError: For update and delete
        pydantic.ValidationError: If the payload is invalid
    """
    if envelope.operation != SyncOperationKind.CREATE:
        raise UnsupportedOperationError(SyncStream.REVIEWS.value, envelope.operation.value)

    existing = session.exec(
        select(Review.id).where(Review.user_id == user_id, Review.client_id == envelope.id)
    ).first()
    if existing is not None:
        logger.debug(f"Review operation {envelope.id} already applied for user {user_id}")
        return

    operation = review_operation_adapter.validate_python(envelope.model_dump(mode="json"))
    payload = operation.data

    session.add(Review(
        client_id=envelope.id,
        user_id=user_id,
        vocabulary_id=payload.vocabulary_id,
        review_type=payload.mode,
        direction=STORED_DIRECTION[payload.direction],
        rating=payload.rating.value,
        quality=RATING_QUALITY[payload.rating],
        time_spent=payload.time_spent,
        correct=payload.rating != ReviewRating.FORGOT,
        difficulty=payload.difficulty_multiplier,
        reviewed_at=to_naive_utc(payload.reviewed_at) or sync_time,
        created_at=sync_time,
        last_synced_at=sync_time,
    ))


def fetch_review_changes(session: Session, user_id: int, request: SyncRequest, sync_time: datetime) -> ChangePage:
    """Reviews changed after the checkpoint, newest first by (last_synced_at, id)."""
    statement = select(Review).where(Review.user_id == user_id)
    since = to_naive_utc(request.last_sync_time)
    if since is not None:
        statement = statement.where(Review.last_synced_at > since)

    position = _decode_synced_cursor(request.cursor)
    if position is not None:
        statement = statement.where(_after_synced_cursor(Review, position))

    statement = statement.order_by(Review.last_synced_at.desc(), Review.id.desc())
    return _paginate(
        session,
        statement,
        _page_size(settings.sync_reviews_page_size),
        lambda row: encode_cursor(format_timestamp(row.last_synced_at), row.id),
    )


def review_to_record(review: Review) -> ReviewRecord:
    return ReviewRecord(
        id=review.client_id,
        vocabulary_id=review.vocabulary_id,
        review_type=review.review_type,
        direction=review.direction,
        rating=review.rating,
        quality=review.quality,
        time_spent=review.time_spent,
        correct=review.correct,
        difficulty=review.difficulty,
        reviewed_at=format_timestamp(review.reviewed_at),
        last_synced_at=format_timestamp(review.last_synced_at),
    )


def sync_reviews(session: Session, user_id: int, request: SyncRequest) -> ReviewSyncResponse:
    """Apply review creates and return reviews changed since the checkpoint."""
    # Decode the cursor before writing anything so a bad cursor is a clean 400
    _decode_synced_cursor(request.cursor)
    outcome, page, sync_time = _run_sync(
        session, user_id, SyncStream.REVIEWS, request, apply_review_operation, fetch_review_changes
    )
    return ReviewSyncResponse(
        timestamp=format_timestamp(sync_time),
        processed=outcome.processed,
        processed_count=len(outcome.processed),
        errors=outcome.errors,
        has_more=page.has_more,
        next_cursor=page.next_cursor,
        reviews=[review_to_record(row) for row in page.rows],
    )


# ---------------------------------------------------------------------------
# Daily stats
# ---------------------------------------------------------------------------


def apply_stats_operation(
    session: Session,
    user_id: int,
    envelope: SyncOperationEnvelope,
    sync_time: datetime,
    outcome: BatchOutcome,
) -> None:
    """
    Upsert one day of stats keyed by (user_id, date).

    An existing row is overwritten and its version goes up by exactly one.
    Versions are never compared; the last applied write wins.

    Raises:
        UnsupportedOperationError: For delete
        pydantic.ValidationError: If the payload is invalid
    """
    if envelope.operation == SyncOperationKind.DELETE:
        raise UnsupportedOperationError(SyncStream.STATS.value, envelope.operation.value)

    if has_receipt(session, user_id, SyncStream.STATS, envelope.id):
        logger.debug(f"Stats operation {envelope.id} already applied for user {user_id}")
        return

    operation = stats_operation_adapter.validate_python(envelope.model_dump(mode="json"))
    payload = operation.data
    correct_reviews = round(payload.cards_reviewed * payload.accuracy_rate)

    stats = session.exec(
        select(DailyStats).where(DailyStats.user_id == user_id, DailyStats.date == payload.date)
    ).first()

    if stats is None:
        stats = DailyStats(user_id=user_id, date=payload.date, version=1, created_at=sync_time)
    else:
        stats.version += 1

    stats.words_added = payload.new_words_added
    stats.cards_reviewed = payload.cards_reviewed
    stats.correct_reviews = correct_reviews
    stats.study_time = payload.time_spent
    stats.sessions_completed = payload.sessions_completed
    stats.is_active = payload.cards_reviewed > 0
    stats.last_synced_at = sync_time
    session.add(stats)

    add_receipt(session, user_id, SyncStream.STATS, envelope.id, sync_time)


def _decode_date_cursor(cursor: Optional[str]) -> Optional[date_type]:
    if not cursor:
        return None
    (value,) = decode_cursor(cursor, 1)
    try:
        return date_type.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid cursor: {cursor}") from e


def fetch_stats_changes(session: Session, user_id: int, request: SyncRequest, sync_time: datetime) -> ChangePage:
    """Stats changed after the checkpoint, by date descending."""
    statement = select(DailyStats).where(DailyStats.user_id == user_id)
    since = to_naive_utc(request.last_sync_time)
    if since is not None:
        statement = statement.where(DailyStats.last_synced_at > since)

    after_date = _decode_date_cursor(request.cursor)
    if after_date is not None:
        statement = statement.where(DailyStats.date < after_date)

    statement = statement.order_by(DailyStats.date.desc())
    return _paginate(
        session,
        statement,
        _page_size(settings.sync_stats_page_size),
        lambda row: encode_cursor(row.date.isoformat()),
    )


def stats_to_record(stats: DailyStats) -> DailyStatsRecord:
    return DailyStatsRecord(
        date=stats.date.isoformat(),
        new_words_added=stats.words_added,
        cards_reviewed=stats.cards_reviewed,
        sessions_completed=stats.sessions_completed,
        accuracy_rate=stats.accuracy_rate,
        time_spent=stats.study_time,
        version=stats.version,
        last_synced_at=format_timestamp(stats.last_synced_at),
    )


def sync_stats(session: Session, user_id: int, request: SyncRequest) -> StatsSyncResponse:
    """Apply daily stats upserts and return stats changed since the checkpoint."""
    _decode_date_cursor(request.cursor)
    outcome, page, sync_time = _run_sync(
        session, user_id, SyncStream.STATS, request, apply_stats_operation, fetch_stats_changes
    )
    return StatsSyncResponse(
        timestamp=format_timestamp(sync_time),
        processed=outcome.processed,
        processed_count=len(outcome.processed),
        errors=outcome.errors,
        has_more=page.has_more,
        next_cursor=page.next_cursor,
        stats=[stats_to_record(row) for row in page.rows],
    )


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


def vocabulary_to_dict(item: VocabularyItem) -> Dict[str, Any]:
    """Wire representation of a vocabulary row, with both naming styles for the terms."""
    return {
        "id": item.id,
        "spanish": item.spanish,
        "english": item.english,
        "spanishWord": item.spanish,
        "englishTranslation": item.english,
        "partOfSpeech": item.part_of_speech,
        "gender": item.gender,
        "level": item.level,
        "notes": item.notes,
        "examples": item.examples or [],
        "status": item.status,
        "easeFactor": item.ease_factor,
        "interval": item.interval,
        "repetitions": item.repetitions,
        "lastReviewDate": format_timestamp(item.last_review_date),
        "nextReviewDate": format_timestamp(item.next_review_date),
        "isDeleted": item.is_deleted,
        "version": item.version,
        "createdAt": format_timestamp(item.created_at),
        "updatedAt": format_timestamp(item.updated_at),
        "lastSyncedAt": format_timestamp(item.last_synced_at),
    }


def _vocabulary_conflict(
    item: VocabularyItem,
    envelope: SyncOperationEnvelope,
    payload: VocabularyPayload,
) -> SyncConflictEntry:
    return SyncConflictEntry(
        id=str(uuid.uuid4()),
        entity_id=item.id,
        operation_id=envelope.id,
        local_data=vocabulary_to_dict(item),
        remote_data=payload.model_dump(mode="json", by_alias=True, exclude_unset=True),
        local_version=item.version,
        remote_version=payload.version or item.version,
        local_timestamp=format_timestamp(item.updated_at),
        remote_timestamp=format_timestamp(payload.updated_at) or envelope.timestamp,
    )


def _get_owned_item(session: Session, user_id: int, item_id: str) -> Optional[VocabularyItem]:
    """
    Raises:
        ConflictError: If the id is already used by another user's item
    """
    item = session.get(VocabularyItem, item_id)
    if item is not None and item.user_id != user_id:
        raise ConflictError(f"Vocabulary id {item_id} is already in use")
    return item


def _create_vocabulary_item(
    session: Session,
    user_id: int,
    payload: VocabularyPayload,
    sync_time: datetime,
) -> VocabularyItem:
    if not payload.spanish or not payload.english:
        raise ValidationError("Vocabulary items need both spanish and english")

    fields = payload.model_dump(exclude_unset=True, exclude={"id", "version", "created_at", "updated_at"})
    for key in ("last_review_date", "next_review_date"):
        if key in fields:
            fields[key] = to_naive_utc(fields[key])
    if fields.get("level") is not None:
        fields["level"] = fields["level"].value
    # Explicit nulls fall back to column defaults
    fields = {key: value for key, value in fields.items() if value is not None}

    item = VocabularyItem(
        id=payload.id,
        user_id=user_id,
        version=1,
        created_at=to_naive_utc(payload.created_at) or sync_time,
        updated_at=to_naive_utc(payload.updated_at) or sync_time,
        last_synced_at=sync_time,
        **fields,
    )
    session.add(item)
    return item


def apply_vocabulary_operation(
    session: Session,
    user_id: int,
    envelope: SyncOperationEnvelope,
    sync_time: datetime,
    outcome: BatchOutcome,
) -> None:
    """
    Apply one vocabulary create, update or delete.

    Creates of an existing item and updates based on a stale localVersion are
    not applied; they are reported as conflicts and still count as processed.

    Raises:
        NotFoundError: When deleting an item that does not exist
        ConflictError: When the id belongs to another user
        ValidationError: When creating without both terms
        pydantic.ValidationError: If the payload is invalid
    """
    if has_receipt(session, user_id, SyncStream.VOCABULARY, envelope.id):
        logger.debug(f"Vocabulary operation {envelope.id} already applied for user {user_id}")
        return

    operation = vocabulary_operation_adapter.validate_python(envelope.model_dump(mode="json"))
    item = _get_owned_item(session, user_id, operation.data.id)

    if operation.operation == SyncOperationKind.DELETE.value:
        if item is None:
            raise NotFoundError(f"Vocabulary item {operation.data.id} not found")
        item.is_deleted = True
        item.version += 1
        item.updated_at = sync_time
        item.last_synced_at = sync_time
        session.add(item)

    elif item is None:
        # Create, or an update for an item the server has never seen
        _create_vocabulary_item(session, user_id, operation.data, sync_time)

    elif operation.operation == SyncOperationKind.CREATE.value:
        outcome.conflicts.append(_vocabulary_conflict(item, envelope, operation.data))

    elif item.version > (operation.local_version or 0):
        outcome.conflicts.append(_vocabulary_conflict(item, envelope, operation.data))

    else:
        payload = operation.data
        updates = payload.model_dump(exclude_unset=True, exclude={"id", "version", "created_at"})
        for key in ("last_review_date", "next_review_date", "updated_at"):
            if key in updates:
                updates[key] = to_naive_utc(updates[key])
        if updates.get("level") is not None:
            updates["level"] = updates["level"].value
        for key in ("spanish", "english", "level", "is_deleted", "ease_factor", "interval", "repetitions", "updated_at"):
            if key in updates and updates[key] is None:
                del updates[key]

        for key, value in updates.items():
            setattr(item, key, value)
        if "updated_at" not in updates:
            item.updated_at = sync_time
        item.version += 1
        item.last_synced_at = sync_time
        session.add(item)

    add_receipt(session, user_id, SyncStream.VOCABULARY, envelope.id, sync_time)


def fetch_vocabulary_changes(session: Session, user_id: int, request: SyncRequest, sync_time: datetime) -> ChangePage:
    """
    Vocabulary changed after the checkpoint, by (last_synced_at, id) descending.

    A full sync skips soft-deleted items; an incremental one includes them so
    clients can drop their copies.
    """
    statement = select(VocabularyItem).where(VocabularyItem.user_id == user_id)
    since = to_naive_utc(request.last_sync_time)
    if since is not None:
        statement = statement.where(VocabularyItem.last_synced_at > since)
    else:
        statement = statement.where(VocabularyItem.is_deleted == False)  # noqa: E712

    position = _decode_synced_cursor(request.cursor)
    if position is not None:
        statement = statement.where(_after_synced_cursor(VocabularyItem, position))

    statement = statement.order_by(VocabularyItem.last_synced_at.desc(), VocabularyItem.id.desc())
    return _paginate(
        session,
        statement,
        _page_size(settings.sync_vocabulary_page_size),
        lambda row: encode_cursor(format_timestamp(row.last_synced_at), row.id),
    )


def sync_vocabulary(session: Session, user_id: int, request: SyncRequest) -> VocabularySyncResponse:
    """Apply vocabulary operations and return items changed since the checkpoint."""
    _decode_synced_cursor(request.cursor)
    outcome, page, sync_time = _run_sync(
        session, user_id, SyncStream.VOCABULARY, request, apply_vocabulary_operation, fetch_vocabulary_changes
    )
    return VocabularySyncResponse(
        timestamp=format_timestamp(sync_time),
        processed=outcome.processed,
        processed_count=len(outcome.processed),
        errors=outcome.errors,
        has_more=page.has_more,
        next_cursor=page.next_cursor,
        operations=[
            VocabularyChange(
                id=item.id,
                data=vocabulary_to_dict(item),
                timestamp=format_timestamp(item.updated_at),
            )
            for item in page.rows
        ],
        conflicts=outcome.conflicts,
    )
