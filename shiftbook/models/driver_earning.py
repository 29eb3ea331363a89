"""
Driver earning - one delivery's fee, tip and cash split
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, JSON, Numeric
from datetime import datetime
from typing import Optional
from decimal import Decimal
from enum import Enum
import uuid

from pydantic import BaseModel

from shiftbook.core.clock import utcnow
from shiftbook.models.order import OrderStatus, OrderType, PaymentMethod


class DeliveryStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeliverySnapshot(BaseModel):
    """Order details captured when the earning is recorded"""

    order_number: str
    order_type: OrderType
    total_amount: Decimal
    status: OrderStatus
    address: Optional[str] = None


class DriverEarning(SQLModel, table=True):
    """Per-order earning on a driver shift"""

    __tablename__ = "driver_earnings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    staff_shift_id: uuid.UUID = Field(foreign_key="staff_shifts.id", index=True)
    driver_id: str = Field(max_length=64, index=True)
    branch_id: str = Field(max_length=64, index=True)
    order_id: uuid.UUID = Field(unique=True, index=True)

    delivery_fee: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    tip_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    total_earning: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )

    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    cash_collected: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    card_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    cash_to_return: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )

    status: DeliveryStatus = Field(default=DeliveryStatus.COMPLETED, index=True)
    is_transferred: bool = Field(default=False, index=True)

    order_details: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def get_order_details(self) -> Optional[DeliverySnapshot]:
        if not self.order_details:
            return None
        return DeliverySnapshot.model_validate(self.order_details)

    def set_order_details(self, snapshot: DeliverySnapshot) -> None:
        self.order_details = snapshot.model_dump(mode="json")

    def is_cancelled(self) -> bool:
        return self.status == DeliveryStatus.CANCELLED
