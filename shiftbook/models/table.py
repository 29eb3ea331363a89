"""
Restaurant table model for seating state
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from shiftbook.core.clock import utcnow


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class RestaurantTable(SQLModel, table=True):
    """Table model for restaurant seating"""

    __tablename__ = "restaurant_tables"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    branch_id: str = Field(max_length=64, index=True)

    name: str = Field(max_length=50, description="Table identifier (e.g., 'A1', 'B3')")
    capacity: int = Field(default=4, description="Maximum number of guests")

    status: TableStatus = Field(default=TableStatus.AVAILABLE, index=True)
    current_order_id: Optional[uuid.UUID] = Field(default=None, nullable=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    def release(self, at: datetime) -> None:
        """Return the table to the available pool"""
        self.status = TableStatus.AVAILABLE
        self.current_order_id = None
        self.updated_at = at
