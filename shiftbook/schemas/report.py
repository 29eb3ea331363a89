"""
Daily report read models

The report is regenerated on demand and never persisted. Sections are
additive so reports from sibling terminals can be merged field by field.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel

from shiftbook.models.expense import ExpenseStatus, ExpenseType
from shiftbook.models.shift import ShiftRole, ShiftStatus
from shiftbook.models.staff_payment import StaffPaymentType
from shiftbook.schemas.common import ExportModel, Money

ZERO = Decimal("0.00")


class ShiftCounts(ExportModel):
    total: int = 0
    cashier: int = 0
    manager: int = 0
    driver: int = 0
    kitchen: int = 0
    server: int = 0


class PaymentCounts(ExportModel):
    cash_orders: int = 0
    card_orders: int = 0


class ChannelTotals(ExportModel):
    cash: Money = ZERO
    card: Money = ZERO
    cash_count: int = 0
    card_count: int = 0


class SalesByType(ExportModel):
    instore: ChannelTotals = ChannelTotals()
    delivery: ChannelTotals = ChannelTotals()


class SalesSection(ExportModel):
    total_orders: int = 0
    total_sales: Money = ZERO
    cash_sales: Money = ZERO
    card_sales: Money = ZERO
    counts: PaymentCounts = PaymentCounts()
    by_type: SalesByType = SalesByType()
    cancelled_orders: int = 0
    cancelled_total: Money = ZERO
    cash_refunds: Money = ZERO


class CashDrawerSection(ExportModel):
    total_variance: Money = ZERO
    total_cash_drops: Money = ZERO
    unreconciled_count: int = 0
    opening_total: Money = ZERO
    driver_cash_given: Money = ZERO
    driver_cash_returned: Money = ZERO
    staff_payments_total: Money = ZERO
    expected_total: Money = ZERO
    closing_total: Money = ZERO


class ExpenseLine(ExportModel):
    id: uuid.UUID
    staff_shift_id: uuid.UUID
    staff_id: str
    expense_type: ExpenseType
    amount: Money
    description: str
    status: ExpenseStatus
    created_at: datetime


class ExpensesSection(ExportModel):
    total: Money = ZERO
    pending_count: int = 0
    staff_payments_total: Money = ZERO
    items: List[ExpenseLine] = []


class DriverEarningsSection(ExportModel):
    total_deliveries: int = 0
    completed_deliveries: int = 0
    cancelled_deliveries: int = 0
    transferred_deliveries: int = 0
    total_earnings: Money = ZERO
    cash_collected_total: Money = ZERO
    card_amount_total: Money = ZERO
    cash_to_return_total: Money = ZERO


class StaffPaymentLine(ExportModel):
    id: uuid.UUID
    paid_to_staff_id: str
    staff_shift_id: Optional[uuid.UUID] = None
    paid_by_cashier_shift_id: uuid.UUID
    amount: Money
    payment_type: StaffPaymentType
    notes: Optional[str] = None
    created_at: datetime


class DrawerLine(ExportModel):
    id: uuid.UUID
    staff_shift_id: uuid.UUID
    cashier_id: str
    terminal_id: str
    opening_amount: Money
    cash_drops: Money
    driver_cash_given: Money
    driver_cash_returned: Money
    total_staff_payments: Money
    total_expenses: Money
    closing_amount: Optional[Money] = None
    expected_amount: Optional[Money] = None
    variance_amount: Optional[Money] = None
    opened_at: datetime
    closed_at: Optional[datetime] = None
    reconciled: bool = False


class StaffOrders(ExportModel):
    count: int = 0
    cash_amount: Money = ZERO
    card_amount: Money = ZERO
    total_amount: Money = ZERO


class StaffPayments(ExportModel):
    staff_payments: Money = ZERO


class StaffExpenses(ExportModel):
    total: Money = ZERO


class StaffDriver(ExportModel):
    deliveries: int = 0
    completed: int = 0
    cancelled: int = 0
    earnings: Money = ZERO
    cash_collected: Money = ZERO
    card_amount: Money = ZERO
    cash_to_return: Money = ZERO


class StaffDrawer(ExportModel):
    opening: Money = ZERO
    expected: Optional[Money] = None
    closing: Optional[Money] = None
    variance: Optional[Money] = None


class StaffReport(ExportModel):
    """One entry per shift, so a staff member with two shifts appears twice"""

    staff_shift_id: uuid.UUID
    staff_id: str
    staff_name: Optional[str] = None
    role: ShiftRole
    check_in: datetime
    check_out: Optional[datetime] = None
    shift_status: ShiftStatus
    opening_amount: Money = ZERO
    closing_amount: Optional[Money] = None
    expected_amount: Optional[Money] = None
    variance: Optional[Money] = None
    payment_amount: Optional[Money] = None
    orders: StaffOrders = StaffOrders()
    payments: StaffPayments = StaffPayments()
    expenses: StaffExpenses = StaffExpenses()
    driver: Optional[StaffDriver] = None
    drawer: Optional[StaffDrawer] = None
    returned_to_drawer_amount: Optional[Money] = None
    terminal: Optional[str] = None


class DaySummary(ExportModel):
    cash_total: Money = ZERO
    card_total: Money = ZERO
    total: Money = ZERO
    total_orders: int = 0


class TerminalBreakdown(ExportModel):
    terminal_id: str
    name: str
    orders: int = 0
    cash: Money = ZERO
    card: Money = ZERO
    total: Money = ZERO
    type: str = "child"


class DailyReport(ExportModel):
    date: date
    branch_id: str
    generated_at: datetime
    shifts: ShiftCounts = ShiftCounts()
    sales: SalesSection = SalesSection()
    cash_drawer: CashDrawerSection = CashDrawerSection()
    expenses: ExpensesSection = ExpensesSection()
    driver_earnings: DriverEarningsSection = DriverEarningsSection()
    staff_payments: List[StaffPaymentLine] = []
    drawers: List[DrawerLine] = []
    staff_reports: List[StaffReport] = []
    day_summary: DaySummary = DaySummary()
    terminal_breakdown: List[TerminalBreakdown] = []
    is_aggregated: bool = False


class TerminalReport(BaseModel):
    """A report tagged with the terminal that produced it"""

    terminal_id: str
    name: str
    report: DailyReport
