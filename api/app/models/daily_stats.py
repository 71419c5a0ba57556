"""
DailyStats model.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from typing import Optional, TYPE_CHECKING
from datetime import date as date_type, datetime

from app.utils.time_utils import utcnow

if TYPE_CHECKING:
    from app.models.user import User


class DailyStats(SQLModel, table=True):
    """DailyStats table - one aggregate row per user and calendar date."""
    __tablename__ = "daily_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_stats_user_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    date: date_type
    words_added: int = Field(default=0)
    cards_reviewed: int = Field(default=0)
    correct_reviews: int = Field(default=0)
    study_time: int = Field(default=0)  # Milliseconds
    sessions_completed: int = Field(default=0)
    is_active: bool = Field(default=False)
    version: int = Field(default=1)  # Incremented on every applied update; informational only
    created_at: datetime = Field(default_factory=utcnow)
    last_synced_at: datetime = Field(default_factory=utcnow, index=True)

    # Relationships
    user: "User" = Relationship(back_populates="daily_stats")

    @property
    def accuracy_rate(self) -> float:
        if self.cards_reviewed <= 0:
            return 0.0
        return self.correct_reviews / self.cards_reviewed
