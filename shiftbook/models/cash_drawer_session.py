"""
Cash drawer session - running cash accountability for one cashier shift
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, Numeric
from datetime import datetime
from typing import Optional
from decimal import Decimal
import uuid

from shiftbook.core.clock import utcnow


ZERO = Decimal("0.00")


class CashDrawerSession(SQLModel, table=True):
    """Cash drawer tied 1:1 to a cashier shift"""

    __tablename__ = "cash_drawer_sessions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    staff_shift_id: uuid.UUID = Field(
        foreign_key="staff_shifts.id",
        unique=True,
        index=True,
        description="Owning cashier shift"
    )
    cashier_id: str = Field(max_length=64, index=True)
    branch_id: str = Field(max_length=64, index=True)
    terminal_id: str = Field(max_length=64, index=True)

    opened_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    closed_at: Optional[datetime] = Field(default=None, nullable=True, index=True, sa_type=DateTime)

    # Running totals
    opening_amount: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    total_cash_sales: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    total_card_sales: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    total_refunds: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    total_expenses: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    cash_drops: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    driver_cash_given: Decimal = Field(
        default=ZERO,
        description="Opening floats of drivers currently attributed to this drawer",
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    driver_cash_returned: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )
    total_staff_payments: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(12, 2), nullable=False)
    )

    # Closing
    closing_amount: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(12, 2), nullable=True)
    )
    expected_amount: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(12, 2), nullable=True)
    )
    variance_amount: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(12, 2), nullable=True)
    )

    # Reconciliation
    reconciled: bool = Field(default=False, index=True)
    reconciled_at: Optional[datetime] = Field(default=None, nullable=True, sa_type=DateTime)
    reconciled_by: Optional[str] = Field(default=None, max_length=64, nullable=True)
    reconciliation_notes: Optional[str] = Field(default=None, max_length=1000, nullable=True)

    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    def is_open(self) -> bool:
        return self.closed_at is None

    def close(
        self,
        closing_amount: Optional[Decimal],
        expected_amount: Optional[Decimal],
        variance_amount: Optional[Decimal],
        closed_at: datetime,
    ) -> None:
        """Stamp the closing fields"""
        if not self.is_open():
            raise ValueError("Cash drawer is already closed")
        self.closing_amount = closing_amount
        self.expected_amount = expected_amount
        self.variance_amount = variance_amount
        self.closed_at = closed_at
        self.updated_at = closed_at

    def reconcile(self, reconciled_by: str, notes: Optional[str], at: datetime) -> None:
        """Mark the counted drawer as reconciled"""
        if self.is_open():
            raise ValueError("Cannot reconcile an open cash drawer")
        if self.reconciled:
            raise ValueError("Cash drawer is already reconciled")
        self.reconciled = True
        self.reconciled_by = reconciled_by
        self.reconciliation_notes = notes
        self.reconciled_at = at
        self.updated_at = at
