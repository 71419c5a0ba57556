"""
Review model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from typing import Optional, TYPE_CHECKING
from datetime import datetime

from app.utils.time_utils import utcnow

if TYPE_CHECKING:
    from app.models.user import User


class Review(SQLModel, table=True):
    """Review table - one flashcard review event. Rows are only ever created by sync."""
    __tablename__ = "review"
    __table_args__ = (
        UniqueConstraint("user_id", "client_id", name="uq_review_user_client_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: str = Field(max_length=64)  # Client-generated operation id, the idempotency key
    user_id: int = Field(foreign_key="user.id", index=True)
    vocabulary_id: str = Field(index=True)
    review_type: str = Field(default="recognition")  # e.g. 'recognition', 'recall', 'listening'
    direction: str = Field(default="spanish-english")  # 'spanish-english' or 'english-spanish'
    rating: str  # 'forgot', 'hard', 'good' or 'easy'
    quality: int  # SM-2 quality 0-5 derived from rating
    time_spent: int = Field(default=0)  # Milliseconds spent on the card
    correct: bool = Field(default=True)
    difficulty: float = Field(default=1.0)  # Client difficulty multiplier
    reviewed_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
    last_synced_at: datetime = Field(default_factory=utcnow, index=True)  # Checkpoint boundary

    # Relationships
    user: "User" = Relationship(back_populates="reviews")
