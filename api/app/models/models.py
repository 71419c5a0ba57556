"""
Models module - re-exports all models.

Allows a single import site for every table:
    from app.models.models import Review, DailyStats
"""
from app.models.enums import SyncStream, SyncOperationKind, SyncType
from app.models.user import User
from app.models.review import Review
from app.models.daily_stats import DailyStats
from app.models.vocabulary_item import VocabularyItem
from app.models.sync_receipt import SyncReceipt
from app.models.sync_log import SyncLog, DeviceInfo

__all__ = [
    'SyncStream',
    'SyncOperationKind',
    'SyncType',
    'User',
    'Review',
    'DailyStats',
    'VocabularyItem',
    'SyncReceipt',
    'SyncLog',
    'DeviceInfo',
]
