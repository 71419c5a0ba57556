"""
Models package - imports all models so SQLModel registers their tables.
"""
# Import enums first
from app.models.enums import (
    SyncStream,
    SyncOperationKind,
    SyncType,
    ReviewRating,
    ReviewDirection,
    VocabularyLevel,
)

# Import all models
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
    'ReviewRating',
    'ReviewDirection',
    'VocabularyLevel',
    'User',
    'Review',
    'DailyStats',
    'VocabularyItem',
    'SyncReceipt',
    'SyncLog',
    'DeviceInfo',
]
