"""
Merge reducer for folding server rows into the local record cache.

Pure functions with no I/O. The server is authoritative: a remote record
replaces the cached one unless the cached one is strictly newer by the
stream's rank. Records written optimistically by the client carry
PENDING_FLAG and have no rank, so they always lose.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from app.utils.time_utils import parse_timestamp

PENDING_FLAG = "_pending"

Record = Dict[str, Any]
Rank = Callable[[Record], Optional[Tuple]]


def _timestamp(record: Record, field: str) -> Optional[datetime]:
    value = record.get(field)
    if value in (None, ""):
        return None
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        return None


def review_rank(record: Record) -> Optional[Tuple]:
    if record.get(PENDING_FLAG):
        return None
    synced_at = _timestamp(record, "lastSyncedAt")
    return (synced_at,) if synced_at is not None else None


def stats_rank(record: Record) -> Optional[Tuple]:
    if record.get(PENDING_FLAG):
        return None
    synced_at = _timestamp(record, "lastSyncedAt")
    if synced_at is None or record.get("version") is None:
        return None
    return (int(record["version"]), synced_at)


def vocabulary_rank(record: Record) -> Optional[Tuple]:
    if record.get(PENDING_FLAG):
        return None
    updated_at = _timestamp(record, "updatedAt")
    if updated_at is None or record.get("version") is None:
        return None
    return (int(record["version"]), updated_at)


def remote_wins(local: Optional[Record], remote: Record, rank: Rank) -> bool:
    """True unless the local record is strictly newer than the remote one."""
    if local is None:
        return True
    local_rank = rank(local)
    if local_rank is None:
        return True
    remote_rank = rank(remote)
    if remote_rank is None:
        return False
    return not local_rank > remote_rank


def merge(
    local: Dict[str, Record],
    remote: Iterable[Record],
    key: str,
    rank: Rank,
) -> Tuple[Dict[str, Record], List[str], List[str]]:
    """
    Fold remote records into a copy of the local cache.

    Args:
        local: Cached records by key
        remote: Records returned by the server
        key: Field of a record that holds its key
        rank: Orders two versions of the same record

    Returns:
        (merged, changed_keys, removed_keys). A winning remote record with
        isDeleted set removes its key instead of being stored.
    """
    merged = dict(local)
    changed: List[str] = []
    removed: List[str] = []

    for record in remote:
        record_key = str(record[key])
        current = merged.get(record_key)
        if not remote_wins(current, record, rank):
            continue

        if record.get("isDeleted"):
            if record_key in merged:
                del merged[record_key]
                if record_key in changed:
                    changed.remove(record_key)
                removed.append(record_key)
            continue

        merged[record_key] = dict(record)
        if record_key in removed:
            removed.remove(record_key)
        if record_key not in changed:
            changed.append(record_key)

    return merged, changed, removed


# Key field and rank per stream
STREAM_MERGE = {
    "reviews": ("id", review_rank),
    "stats": ("date", stats_rank),
    "vocabulary": ("id", vocabulary_rank),
}
