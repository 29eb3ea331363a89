"""
Shift expense model
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, Numeric
from datetime import datetime
from typing import Optional
from decimal import Decimal
from enum import Enum
import uuid

from shiftbook.core.clock import utcnow


class ExpenseType(str, Enum):
    SUPPLIES = "supplies"
    MAINTENANCE = "maintenance"
    FUEL = "fuel"
    STAFF_PAYMENT = "staff_payment"   # Legacy rows; wages go to staff_payments
    OTHER = "other"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ShiftExpense(SQLModel, table=True):
    """Cash paid out of a shift's float"""

    __tablename__ = "shift_expenses"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    staff_shift_id: uuid.UUID = Field(foreign_key="staff_shifts.id", index=True)
    staff_id: str = Field(max_length=64, index=True)
    branch_id: str = Field(max_length=64, index=True)

    expense_type: ExpenseType = Field(default=ExpenseType.OTHER, index=True)
    amount: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    description: str = Field(max_length=500)
    receipt_number: Optional[str] = Field(default=None, max_length=100, nullable=True)

    status: ExpenseStatus = Field(default=ExpenseStatus.APPROVED, index=True)
    approved_by: Optional[str] = Field(default=None, max_length=64, nullable=True)
    approved_at: Optional[datetime] = Field(default=None, nullable=True, sa_type=DateTime)

    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def can_transition_to(self, new_status: ExpenseStatus) -> bool:
        valid_transitions = {
            ExpenseStatus.PENDING: [ExpenseStatus.APPROVED, ExpenseStatus.REJECTED],
            ExpenseStatus.APPROVED: [ExpenseStatus.REJECTED],
            ExpenseStatus.REJECTED: [],
        }
        return new_status in valid_transitions.get(self.status, [])

    def counts_toward_drawer(self) -> bool:
        """Approved, non-wage expenses reduce expected drawer cash"""
        return (
            self.status == ExpenseStatus.APPROVED
            and self.expense_type != ExpenseType.STAFF_PAYMENT
        )
