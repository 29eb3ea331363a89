"""
Order model - the slice of a sales order the shift core reads

Orders are written by the ordering flow; the shift core only attributes them
to shifts, sums them into drawers and reports, and purges them at end of day.
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, JSON, Numeric
from datetime import datetime
from typing import List, Optional
from decimal import Decimal
from enum import Enum
import uuid

from pydantic import BaseModel

from shiftbook.core.clock import utcnow


class OrderStatus(str, Enum):
    """Status of an order"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that no longer block the end-of-day close
TERMINAL_ORDER_STATUSES = (
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
)

# Statuses that count as a sale
SETTLED_ORDER_STATUSES = (OrderStatus.DELIVERED, OrderStatus.COMPLETED)


class OrderType(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    PICKUP = "pickup"
    DELIVERY = "delivery"

    @property
    def is_delivery(self) -> bool:
        return self == OrderType.DELIVERY


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"


class OrderItem(BaseModel):
    """One line of an order, stored inside the order's items column"""

    name: str
    quantity: int = 1
    unit_price: Decimal = Decimal("0.00")
    customizations: List[str] = []

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(SQLModel, table=True):
    """Sales order attributed to a shift"""

    __tablename__ = "orders"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    order_number: str = Field(max_length=50, index=True)
    branch_id: str = Field(max_length=64, index=True)
    terminal_id: str = Field(max_length=64, index=True)
    staff_shift_id: Optional[uuid.UUID] = Field(
        default=None,
        nullable=True,
        index=True,
        description="Shift that took the order"
    )
    driver_shift_id: Optional[uuid.UUID] = Field(default=None, nullable=True, index=True)

    order_type: OrderType = Field(default=OrderType.DINE_IN, index=True)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)

    total_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    refunded_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False)
    )

    items: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def get_items(self) -> List[OrderItem]:
        return [OrderItem.model_validate(raw) for raw in self.items or []]

    def set_items(self, items: List[OrderItem]) -> None:
        self.items = [item.model_dump(mode="json") for item in items]

    def is_settled(self) -> bool:
        return self.status in SETTLED_ORDER_STATUSES
