"""
VocabularyItem model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

from app.utils.time_utils import utcnow

if TYPE_CHECKING:
    from app.models.user import User


class VocabularyItem(SQLModel, table=True):
    """VocabularyItem table - a learner's word with its spaced-repetition state."""
    __tablename__ = "vocabulary_item"

    id: str = Field(primary_key=True, max_length=64)  # Client-generated id
    user_id: int = Field(foreign_key="user.id", index=True)
    spanish: str
    english: str
    part_of_speech: Optional[str] = None
    gender: Optional[str] = None  # 'masculine' or 'feminine' for nouns
    level: str = Field(default="beginner")
    notes: Optional[str] = None
    examples: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    status: Optional[str] = None  # e.g. 'new', 'learning', 'mastered'

    # SM-2 state
    ease_factor: float = Field(default=2.5)
    interval: int = Field(default=0)  # Days
    repetitions: int = Field(default=0)
    last_review_date: Optional[datetime] = None
    next_review_date: Optional[datetime] = None

    is_deleted: bool = Field(default=False)  # Soft delete, propagated to other devices
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_synced_at: datetime = Field(default_factory=utcnow, index=True)

    # Relationships
    user: "User" = Relationship(back_populates="vocabulary_items")
