"""
SyncReceipt model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime

from app.utils.time_utils import utcnow


class SyncReceipt(SQLModel, table=True):
    """
    SyncReceipt table - remembers which client operations a stream has applied.

    A receipt is written in the same savepoint as the mutation it records, so
    a replayed operation id is acknowledged without being applied twice.
    """
    __tablename__ = "sync_receipt"
    __table_args__ = (
        UniqueConstraint("user_id", "stream", "operation_id", name="uq_sync_receipt_operation"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    stream: str  # 'vocabulary', 'reviews' or 'stats'
    operation_id: str = Field(max_length=64)
    created_at: datetime = Field(default_factory=utcnow, index=True)
