"""
Model enums.
"""
from enum import Enum


class SyncStream(str, Enum):
    """Entity streams that have their own sync endpoint."""
    VOCABULARY = "vocabulary"
    REVIEWS = "reviews"
    STATS = "stats"


class SyncOperationKind(str, Enum):
    """Kinds of client mutations carried by a SyncOperation."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncType(str, Enum):
    """How a client asked to sync."""
    INCREMENTAL = "incremental"
    FULL = "full"
    FORCE = "force"


class ReviewRating(str, Enum):
    """Self-assessed outcome of one flashcard review."""
    FORGOT = "forgot"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class ReviewDirection(str, Enum):
    """Direction a card was shown in on the client."""
    SPANISH_TO_ENGLISH = "spanish-to-english"
    ENGLISH_TO_SPANISH = "english-to-spanish"
    MIXED = "mixed"


class VocabularyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
