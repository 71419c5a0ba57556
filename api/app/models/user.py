"""
User model.
"""
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
import hashlib

from app.utils.time_utils import utcnow

if TYPE_CHECKING:
    from app.models.review import Review
    from app.models.daily_stats import DailyStats
    from app.models.vocabulary_item import VocabularyItem


class User(SQLModel, table=True):
    """User table - stores account information for the learner."""
    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)  # Unique username
    email: str = Field(unique=True, index=True)  # Email address
    password: str  # Hashed password
    lang_native: str = Field(default="en")  # Native language code
    lang_learning: str = Field(default="es")  # Learning language code
    full_name: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    reviews: List["Review"] = Relationship(back_populates="user")
    daily_stats: List["DailyStats"] = Relationship(back_populates="user")
    vocabulary_items: List["VocabularyItem"] = Relationship(back_populates="user")

    @staticmethod
    def hash_password(password: str) -> str:
        """Simple password hashing using SHA256."""
        return hashlib.sha256(password.encode()).hexdigest()

    def verify_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""
        return self.password == self.hash_password(password)
