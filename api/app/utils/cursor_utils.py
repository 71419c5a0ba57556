"""
Opaque pagination cursors for sync change feeds.

A cursor carries the sort key of the last row delivered on a page so the
next request can continue strictly after it.
"""
import base64
import binascii
import json
from typing import List, Union

from app.core.exceptions import ValidationError

CursorPart = Union[str, int]


def encode_cursor(*parts: CursorPart) -> str:
    raw = json.dumps(list(parts), separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str, expected_parts: int) -> List[CursorPart]:
    """
    Decode a cursor produced by encode_cursor.

    Raises:
        ValidationError: If the token is not a cursor with expected_parts parts
    """
    padding = "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(token + padding)
        parts = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValidationError(f"Invalid cursor: {token}") from e

    if not isinstance(parts, list) or len(parts) != expected_parts:
        raise ValidationError(f"Invalid cursor: {token}")
    return parts
