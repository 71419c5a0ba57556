"""
Exceptions raised by the sync client.
"""
from typing import Optional


class SyncError(Exception):
    """Base exception for sync client failures."""
    pass


class SyncTransportError(SyncError):
    """Raised when a sync request could not be completed (network, timeout, non-2xx, bad body)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SyncAuthError(SyncTransportError):
    """Raised when the server rejects the session (401)."""
    pass
