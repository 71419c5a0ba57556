"""
SyncLog and DeviceInfo models.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, List
from datetime import datetime

from app.utils.time_utils import utcnow


class SyncLog(SQLModel, table=True):
    """SyncLog table - one row per handled sync request, for debugging."""
    __tablename__ = "sync_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    stream: str
    sync_type: str = Field(default="incremental")
    direction: str = Field(default="bidirectional")
    device_id: Optional[str] = None
    items_synced: int = Field(default=0)
    items_returned: int = Field(default=0)
    conflicts_found: int = Field(default=0)
    errors: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)


class DeviceInfo(SQLModel, table=True):
    """DeviceInfo table - devices that have synced for a user."""
    __tablename__ = "device_info"

    id: Optional[int] = Field(default=None, primary_key=True)
    device_id: str = Field(unique=True, index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    device_name: str = Field(default="Unknown Device")
    last_active_at: datetime = Field(default_factory=utcnow)
    last_sync_at: Optional[datetime] = None
