"""
Tables of the client's local SQLite database.

These live in a separate database file from the server; LocalStore creates
only these three tables.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime

from app.utils.time_utils import utcnow

OPERATION_PENDING = "pending"
OPERATION_FAILED = "failed"  # Parked after max_attempts; kept until retried or cleared


class LocalOperation(SQLModel, table=True):
    """LocalOperation table - the durable queue of mutations the server has not acknowledged."""
    __tablename__ = "local_operation"

    seq: Optional[int] = Field(default=None, primary_key=True)  # FIFO order
    operation_id: str = Field(unique=True, index=True, max_length=64)
    stream: str = Field(index=True)
    operation: str  # 'create', 'update' or 'delete'
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    local_version: Optional[int] = None
    status: str = Field(default=OPERATION_PENDING, index=True)
    attempts: int = Field(default=0)
    last_error: Optional[str] = None
    last_attempt_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class LocalRecord(SQLModel, table=True):
    """LocalRecord table - cached copy of server rows, keyed per stream."""
    __tablename__ = "local_record"

    stream: str = Field(primary_key=True)
    key: str = Field(primary_key=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow)


class LocalState(SQLModel, table=True):
    """LocalState table - small key/value settings such as checkpoints and the device id."""
    __tablename__ = "local_state"

    key: str = Field(primary_key=True)
    value: str
