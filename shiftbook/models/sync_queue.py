"""
Outbound change queue rows

Each row is a full post-mutation snapshot of one record. The transport that
drains the queue is idempotent by (table_name, record_id).
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from shiftbook.core.clock import utcnow


class SyncOperation(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


class SyncQueueItem(SQLModel, table=True):
    __tablename__ = "sync_queue"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    table_name: str = Field(max_length=64, index=True)
    record_id: str = Field(max_length=64, index=True)
    operation: SyncOperation
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    status: SyncStatus = Field(default=SyncStatus.PENDING, index=True)
    attempts: int = Field(default=0)
    last_error: Optional[str] = Field(default=None, max_length=1000, nullable=True)

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    synced_at: Optional[datetime] = Field(default=None, nullable=True, sa_type=DateTime)
