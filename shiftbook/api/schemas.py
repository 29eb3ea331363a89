"""
Request and response schemas for the HTTP command surface
"""

from sqlmodel import SQLModel, Field
from datetime import date, datetime
from typing import Dict, List, Optional
from decimal import Decimal
import uuid

from shiftbook.models.driver_earning import DeliveryStatus
from shiftbook.models.expense import ExpenseStatus, ExpenseType
from shiftbook.models.order import PaymentMethod
from shiftbook.models.shift import ShiftRole, ShiftStatus, TransferState
from shiftbook.models.staff_payment import StaffPaymentType
from shiftbook.schemas.report import TerminalReport


# ============================================================================
# Shift Schemas
# ============================================================================

class ShiftOpen(SQLModel):
    staff_id: str = Field(min_length=1, max_length=64)
    staff_name: Optional[str] = None
    branch_id: str = Field(min_length=1, max_length=64)
    terminal_id: str = Field(min_length=1, max_length=64)
    role: ShiftRole
    opening_amount: Decimal = Decimal("0.00")
    opened_by: Optional[str] = None


class ShiftClose(SQLModel):
    closing_cash: Decimal
    closed_by: str
    payment_amount: Optional[Decimal] = None


class ShiftAbandon(SQLModel):
    closed_by: str
    reason: Optional[str] = None


class ShiftRead(SQLModel):
    id: uuid.UUID
    staff_id: str
    staff_name: Optional[str] = None
    branch_id: str
    terminal_id: str
    role: ShiftRole
    status: ShiftStatus
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    opening_amount: Decimal
    closing_amount: Optional[Decimal] = None
    expected_amount: Optional[Decimal] = None
    variance: Optional[Decimal] = None
    payment_amount: Optional[Decimal] = None
    transfer_pending: bool
    transferred_to_cashier_shift_id: Optional[uuid.UUID] = None
    transfer_state: TransferState
    is_day_start: bool
    closed_by: Optional[str] = None


class ShiftCloseRead(SQLModel):
    shift: ShiftRead
    expected: Decimal
    variance: Decimal
    variance_description: str
    transferred_driver_ids: List[uuid.UUID] = []
    returned_to_drawer_id: Optional[uuid.UUID] = None


class ActiveDriverRead(SQLModel):
    shift_id: uuid.UUID
    staff_id: str
    staff_name: Optional[str] = None
    opening_amount: Decimal
    transfer_state: TransferState
    transferred_to_cashier_shift_id: Optional[uuid.UUID] = None
    check_in_time: datetime


# ============================================================================
# Cash Drawer Schemas
# ============================================================================

class CashDropCreate(SQLModel):
    amount: Decimal
    reason: Optional[str] = None


class DrawerReconcile(SQLModel):
    reconciled_by: str
    notes: Optional[str] = None


class DrawerRead(SQLModel):
    id: uuid.UUID
    staff_shift_id: uuid.UUID
    opening_amount: Decimal
    cash_drops: Decimal
    driver_cash_given: Decimal
    driver_cash_returned: Decimal
    total_expenses: Decimal
    total_staff_payments: Decimal
    closing_amount: Optional[Decimal] = None
    expected_amount: Optional[Decimal] = None
    variance_amount: Optional[Decimal] = None
    closed_at: Optional[datetime] = None
    reconciled: bool
    reconciled_by: Optional[str] = None
    reconciliation_notes: Optional[str] = None


# ============================================================================
# Expense & Staff Payment Schemas
# ============================================================================

class ExpenseCreate(SQLModel):
    expense_type: ExpenseType = ExpenseType.OTHER
    amount: Decimal
    description: str
    receipt_number: Optional[str] = None


class ExpenseReview(SQLModel):
    actor: str


class ExpenseRead(SQLModel):
    id: uuid.UUID
    staff_shift_id: uuid.UUID
    expense_type: ExpenseType
    amount: Decimal
    description: str
    status: ExpenseStatus
    approved_by: Optional[str] = None
    created_at: datetime


class StaffPaymentCreate(SQLModel):
    paid_to_staff_id: str
    amount: Decimal
    payment_type: StaffPaymentType = StaffPaymentType.WAGE
    notes: Optional[str] = None


class StaffPaymentRead(SQLModel):
    id: uuid.UUID
    staff_shift_id: Optional[uuid.UUID] = None
    paid_to_staff_id: str
    paid_by_cashier_shift_id: uuid.UUID
    amount: Decimal
    payment_type: StaffPaymentType
    notes: Optional[str] = None
    created_at: datetime


# ============================================================================
# Driver Earning Schemas
# ============================================================================

class DriverEarningCreate(SQLModel):
    order_id: uuid.UUID
    delivery_fee: Decimal = Decimal("0.00")
    tip_amount: Decimal = Decimal("0.00")
    payment_method: PaymentMethod = PaymentMethod.CASH
    cash_collected: Decimal = Decimal("0.00")
    card_amount: Decimal = Decimal("0.00")
    status: DeliveryStatus = DeliveryStatus.COMPLETED
    address: Optional[str] = None


class DriverEarningRead(SQLModel):
    id: uuid.UUID
    staff_shift_id: uuid.UUID
    order_id: uuid.UUID
    delivery_fee: Decimal
    tip_amount: Decimal
    total_earning: Decimal
    payment_method: PaymentMethod
    cash_collected: Decimal
    card_amount: Decimal
    cash_to_return: Decimal
    status: DeliveryStatus
    is_transferred: bool


# ============================================================================
# Report & End-of-Day Schemas
# ============================================================================

class AggregateRequest(SQLModel):
    main: TerminalReport
    children: List[TerminalReport] = []


class FinalizeRequest(SQLModel):
    date: date


class FinalizeCheckRead(SQLModel):
    ok: bool
    reason: Optional[str] = None


class FinalizeRead(SQLModel):
    ok: bool
    reason: Optional[str] = None
    cleared: Dict[str, int] = {}
