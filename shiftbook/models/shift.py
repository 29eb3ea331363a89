"""
Shift model for tracking staff work sessions and cash responsibility
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, Numeric
from datetime import datetime
from typing import Optional
from decimal import Decimal
from enum import Enum
import uuid

from shiftbook.core.clock import utcnow


class ShiftRole(str, Enum):
    """Role a staff member works under for one shift"""
    CASHIER = "cashier"
    MANAGER = "manager"
    DRIVER = "driver"
    KITCHEN = "kitchen"
    SERVER = "server"


# Report ordering
ROLE_ORDER = {role: index for index, role in enumerate(ShiftRole)}


class ShiftStatus(str, Enum):
    """Status of a shift"""
    ACTIVE = "active"             # Checked in, responsible for cash
    CLOSED = "closed"             # Checked out with counted cash
    ABANDONED = "abandoned"       # Ended without a cash count


class TransferState(str, Enum):
    """Which cashier is liable for a driver's outstanding cash"""
    ATTACHED = "attached"         # Whichever cashier is active on the terminal
    PENDING = "pending"           # Outgoing cashier closed, nobody claimed yet
    CLAIMED = "claimed"           # A successor cashier inherited the driver


class Shift(SQLModel, table=True):
    """Staff shift - one working period for one staff member under one role"""

    __tablename__ = "staff_shifts"

    # Primary key
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Identity
    staff_id: str = Field(
        max_length=64,
        index=True,
        description="Staff member working this shift"
    )
    staff_name: Optional[str] = Field(
        default=None,
        max_length=200,
        nullable=True,
        description="Display name snapshot taken at check-in"
    )
    branch_id: str = Field(max_length=64, index=True)
    terminal_id: str = Field(max_length=64, index=True)

    role: ShiftRole = Field(index=True)
    status: ShiftStatus = Field(
        default=ShiftStatus.ACTIVE,
        index=True,
        description="Current status of the shift"
    )

    # Timestamps
    check_in_time: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    check_out_time: Optional[datetime] = Field(default=None, nullable=True, sa_type=DateTime)

    # Cash
    opening_amount: Decimal = Field(
        default=Decimal("0.00"),
        description="Cash handed over at check-in",
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    closing_amount: Optional[Decimal] = Field(
        default=None,
        description="Physical cash counted at check-out",
        sa_column=Column(Numeric(12, 2), nullable=True)
    )
    expected_amount: Optional[Decimal] = Field(
        default=None,
        description="Formula-computed expected cash at check-out",
        sa_column=Column(Numeric(12, 2), nullable=True)
    )
    variance: Optional[Decimal] = Field(
        default=None,
        description="closing_amount - expected_amount",
        sa_column=Column(Numeric(12, 2), nullable=True)
    )
    payment_amount: Optional[Decimal] = Field(
        default=None,
        description="Wage paid out at check-out (driver/server)",
        sa_column=Column(Numeric(12, 2), nullable=True)
    )

    # Driver transfer
    transfer_pending: bool = Field(default=False, index=True)
    transferred_to_cashier_shift_id: Optional[uuid.UUID] = Field(
        default=None,
        nullable=True,
        index=True,
        description="Cashier shift that inherited this driver"
    )

    is_day_start: bool = Field(
        default=False,
        description="First cashier shift on the terminal that day, fixed at creation"
    )

    # Audit
    opened_by: Optional[str] = Field(default=None, max_length=64, nullable=True)
    closed_by: Optional[str] = Field(default=None, max_length=64, nullable=True)
    notes: Optional[str] = Field(default=None, max_length=1000, nullable=True)

    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    @property
    def transfer_state(self) -> TransferState:
        if self.transfer_pending:
            return TransferState.PENDING
        if self.transferred_to_cashier_shift_id is not None:
            return TransferState.CLAIMED
        return TransferState.ATTACHED

    def can_transition_to(self, new_status: ShiftStatus) -> tuple[bool, str]:
        """Check if shift can transition to new status"""
        valid_transitions = {
            ShiftStatus.ACTIVE: [ShiftStatus.CLOSED, ShiftStatus.ABANDONED],
            ShiftStatus.CLOSED: [],
            ShiftStatus.ABANDONED: [],
        }

        if new_status in valid_transitions.get(self.status, []):
            return True, "Can transition"
        return False, f"Cannot transition from {self.status.value} to {new_status.value}"

    def is_active(self) -> bool:
        return self.status == ShiftStatus.ACTIVE

    def mark_pending_transfer(self) -> None:
        """Attached -> Pending, when the governing cashier leaves"""
        if self.role != ShiftRole.DRIVER:
            raise ValueError("Only driver shifts can be transferred")
        self.transfer_pending = True
        self.transferred_to_cashier_shift_id = None

    def claim_by(self, cashier_shift_id: uuid.UUID) -> None:
        """Pending -> Claimed, when a successor cashier opens"""
        if self.transfer_state != TransferState.PENDING:
            raise ValueError(f"Cannot claim driver in {self.transfer_state.value} state")
        self.transfer_pending = False
        self.transferred_to_cashier_shift_id = cashier_shift_id

    def end_shift(
        self,
        closed_at: datetime,
        closed_by: str,
        status: ShiftStatus = ShiftStatus.CLOSED,
    ) -> None:
        """Close or abandon the shift"""
        allowed, message = self.can_transition_to(status)
        if not allowed:
            raise ValueError(message)
        self.check_out_time = closed_at
        self.closed_by = closed_by
        self.status = status
        self.updated_at = closed_at

    def get_variance_description(self) -> str:
        """Get human-readable variance description"""
        if self.variance is None:
            return "Not reconciled"
        if self.variance == 0:
            return "Balanced"
        if self.variance > 0:
            return f"Over by {self.variance:.2f}"
        return f"Short by {abs(self.variance):.2f}"
