"""
Table session model for tracking one seating at a table
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from shiftbook.core.clock import utcnow


class TableSessionStatus(str, Enum):
    """Status of a table session"""
    SEATED = "seated"           # Guests just arrived
    ACTIVE = "active"           # Session in progress, orders placed
    PAYING = "paying"           # Payment in progress
    PAID = "paid"               # Payment completed
    CLOSED = "closed"           # Session completed


class TableSession(SQLModel, table=True):
    """Table session for tracking guest dining experience"""

    __tablename__ = "table_sessions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    branch_id: str = Field(max_length=64, index=True)
    table_id: uuid.UUID = Field(foreign_key="restaurant_tables.id", index=True)

    guest_count: int = Field(default=1, description="Number of guests at table")
    status: TableSessionStatus = Field(default=TableSessionStatus.SEATED, index=True)
    server_shift_id: Optional[uuid.UUID] = Field(default=None, nullable=True, index=True)

    seated_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    closed_at: Optional[datetime] = Field(default=None, nullable=True, sa_type=DateTime)
