"""
Staff payment model - cash paid from a cashier drawer to a staff member
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, Numeric
from datetime import datetime
from typing import Optional
from decimal import Decimal
from enum import Enum
import uuid

from shiftbook.core.clock import utcnow


class StaffPaymentType(str, Enum):
    WAGE = "wage"
    TIP = "tip"
    BONUS = "bonus"
    ADVANCE = "advance"
    OTHER = "other"


class StaffPayment(SQLModel, table=True):
    """Drawer disbursement to a staff member, never counted as an expense"""

    __tablename__ = "staff_payments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    staff_shift_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="staff_shifts.id",
        nullable=True,
        index=True,
        description="Recipient's shift; None for an off-shift payment"
    )
    paid_to_staff_id: str = Field(max_length=64, index=True)
    paid_by_cashier_shift_id: uuid.UUID = Field(
        foreign_key="staff_shifts.id",
        index=True,
        description="Active cashier shift whose drawer paid out"
    )

    amount: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    payment_type: StaffPaymentType = Field(default=StaffPaymentType.WAGE)
    notes: Optional[str] = Field(default=None, max_length=500, nullable=True)

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)

    @property
    def is_off_shift(self) -> bool:
        return self.staff_shift_id is None
