"""
Timestamp helpers shared by the server and the sync client.

All persisted timestamps are naive UTC; the wire format is ISO-8601 with a
trailing 'Z'.
"""
from datetime import datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 UTC with microseconds, e.g. 2024-01-01T10:00:00.000000Z."""
    if value is None:
        return None
    value = to_naive_utc(value)
    return value.isoformat(timespec="microseconds") + "Z"


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (with 'Z' or an offset) into naive UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(text))
