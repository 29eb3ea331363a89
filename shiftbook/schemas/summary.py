"""
Shift summary read models
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from shiftbook.models.order import OrderStatus, PaymentMethod
from shiftbook.models.shift import ShiftRole, ShiftStatus, TransferState
from shiftbook.schemas.common import ExportModel, Money
from shiftbook.schemas.report import ExpenseLine, SalesByType, StaffPaymentLine


class ShiftSnapshot(ExportModel):
    id: uuid.UUID
    staff_id: str
    staff_name: Optional[str] = None
    branch_id: str
    terminal_id: str
    role: ShiftRole
    status: ShiftStatus
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    opening_amount: Money
    closing_amount: Optional[Money] = None
    expected_amount: Optional[Money] = None
    variance: Optional[Money] = None
    payment_amount: Optional[Money] = None
    transfer_state: TransferState
    transferred_to_cashier_shift_id: Optional[uuid.UUID] = None
    is_day_start: bool = False


class DrawerSnapshot(ExportModel):
    id: uuid.UUID
    opening_amount: Money
    total_cash_sales: Money
    total_card_sales: Money
    total_refunds: Money
    total_expenses: Money
    cash_drops: Money
    driver_cash_given: Money
    driver_cash_returned: Money
    total_staff_payments: Money
    closing_amount: Optional[Money] = None
    expected_amount: Optional[Money] = None
    variance_amount: Optional[Money] = None
    closed_at: Optional[datetime] = None
    reconciled: bool = False


class OrderLine(ExportModel):
    id: uuid.UUID
    order_number: str
    order_type: str
    payment_method: PaymentMethod
    status: OrderStatus
    total_amount: Money


class DeliveryLine(ExportModel):
    id: uuid.UUID
    order_id: uuid.UUID
    order_number: Optional[str] = None
    status: str
    delivery_fee: Money
    tip_amount: Money
    cash_collected: Money
    card_amount: Money
    cash_to_return: Money
    is_transferred: bool


class TransferredDriver(ExportModel):
    shift_id: uuid.UUID
    staff_id: str
    staff_name: Optional[str] = None
    opening_amount: Money
    check_in_time: datetime


class ShiftSummary(ExportModel):
    shift: ShiftSnapshot
    cash_drawer: Optional[DrawerSnapshot] = None
    expenses: List[ExpenseLine] = []
    total_expenses: Money = Decimal("0.00")
    breakdown: SalesByType = SalesByType()
    orders_count: int = 0
    sales_total: Money = Decimal("0.00")
    canceled_orders: List[OrderLine] = []
    cash_refunds: Money = Decimal("0.00")
    driver_deliveries: List[DeliveryLine] = []
    transferred_drivers: List[TransferredDriver] = []
    staff_payments: List[StaffPaymentLine] = []
