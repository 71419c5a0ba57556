"""
Offline sync client: local queue, merge reducer, transport and engine.
"""
from app.client.config import ClientSettings
from app.client.exceptions import SyncError, SyncTransportError, SyncAuthError
from app.client.store import LocalStore
from app.client.transport import SyncApiClient
from app.client.engine import SyncEngine, SyncResult
from app.client.connectivity import ConnectivityMonitor

__all__ = [
    'ClientSettings',
    'SyncError',
    'SyncTransportError',
    'SyncAuthError',
    'LocalStore',
    'SyncApiClient',
    'SyncEngine',
    'SyncResult',
    'ConnectivityMonitor',
]
