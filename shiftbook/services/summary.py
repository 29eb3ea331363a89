"""
Shift summary - everything a checkout screen shows for one shift
"""

import uuid

from sqlmodel import Session, select

from shiftbook.core.money import money_sum, to_money
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.order import Order, OrderStatus, PaymentMethod
from shiftbook.models.shift import Shift, ShiftRole
from shiftbook.schemas.report import ExpenseLine, SalesByType, StaffPaymentLine
from shiftbook.schemas.summary import (
    DeliveryLine, DrawerSnapshot, OrderLine, ShiftSnapshot, ShiftSummary, TransferredDriver
)
from shiftbook.services.driver_earnings import DriverEarningLedger
from shiftbook.services.driver_transfer import DriverTransferCoordinator
from shiftbook.services.expenses import ExpenseLedger
from shiftbook.services.reports import channel_totals
from shiftbook.services.shift_registry import ShiftRegistry


class ShiftSummaryBuilder:

    def __init__(
        self,
        session: Session,
        registry: ShiftRegistry,
        expenses: ExpenseLedger,
        earnings: DriverEarningLedger,
        transfers: DriverTransferCoordinator,
    ):
        self.session = session
        self.registry = registry
        self.expenses = expenses
        self.earnings = earnings
        self.transfers = transfers

    def get_shift_summary(self, shift_id: uuid.UUID) -> ShiftSummary:
        shift = self.registry.get_shift(shift_id)
        drawer = self.registry.ledger.for_shift(shift.id)

        orders = list(self.session.exec(
            select(Order)
            .where((Order.staff_shift_id == shift.id) | (Order.driver_shift_id == shift.id))
            .order_by(Order.created_at)
        ).all())
        settled = [order for order in orders if order.is_settled()]
        breakdown = SalesByType(
            instore=channel_totals([o for o in settled if not o.order_type.is_delivery]),
            delivery=channel_totals([o for o in settled if o.order_type.is_delivery]),
        )

        expenses = self.expenses.list_expenses(shift.id)
        counted = [expense for expense in expenses if expense.counts_toward_drawer()]

        summary = ShiftSummary(
            shift=self._shift_snapshot(shift),
            cash_drawer=self._drawer_snapshot(drawer) if drawer is not None else None,
            expenses=[
                ExpenseLine(
                    id=e.id,
                    staff_shift_id=e.staff_shift_id,
                    staff_id=e.staff_id,
                    expense_type=e.expense_type,
                    amount=to_money(e.amount),
                    description=e.description,
                    status=e.status,
                    created_at=e.created_at,
                )
                for e in expenses
            ],
            total_expenses=money_sum(expense.amount for expense in counted),
            breakdown=breakdown,
            orders_count=len(settled),
            sales_total=money_sum(order.total_amount for order in settled),
            canceled_orders=[
                OrderLine(
                    id=order.id,
                    order_number=order.order_number,
                    order_type=order.order_type.value,
                    payment_method=order.payment_method,
                    status=order.status,
                    total_amount=to_money(order.total_amount),
                )
                for order in orders if order.status == OrderStatus.CANCELLED
            ],
            cash_refunds=money_sum(
                order.refunded_amount for order in orders
                if order.payment_method == PaymentMethod.CASH
            ),
        )

        if shift.role == ShiftRole.DRIVER:
            summary.driver_deliveries = [
                DeliveryLine(
                    id=earning.id,
                    order_id=earning.order_id,
                    order_number=(
                        earning.get_order_details().order_number
                        if earning.order_details else None
                    ),
                    status=earning.status.value,
                    delivery_fee=to_money(earning.delivery_fee),
                    tip_amount=to_money(earning.tip_amount),
                    cash_collected=to_money(earning.cash_collected),
                    card_amount=to_money(earning.card_amount),
                    cash_to_return=to_money(earning.cash_to_return),
                    is_transferred=earning.is_transferred,
                )
                for earning in self.earnings.list_for_shift(shift.id)
            ]
        elif shift.role == ShiftRole.CASHIER:
            summary.transferred_drivers = [
                TransferredDriver(
                    shift_id=driver.id,
                    staff_id=driver.staff_id,
                    staff_name=driver.staff_name,
                    opening_amount=to_money(driver.opening_amount),
                    check_in_time=driver.check_in_time,
                )
                for driver in self.transfers.claimed_by(shift.id)
            ]
            summary.staff_payments = [
                StaffPaymentLine(
                    id=payment.id,
                    paid_to_staff_id=payment.paid_to_staff_id,
                    staff_shift_id=payment.staff_shift_id,
                    paid_by_cashier_shift_id=payment.paid_by_cashier_shift_id,
                    amount=to_money(payment.amount),
                    payment_type=payment.payment_type,
                    notes=payment.notes,
                    created_at=payment.created_at,
                )
                for payment in self.expenses.list_staff_payments(cashier_shift_id=shift.id)
            ]
        return summary

    def _shift_snapshot(self, shift: Shift) -> ShiftSnapshot:
        return ShiftSnapshot(
            id=shift.id,
            staff_id=shift.staff_id,
            staff_name=shift.staff_name,
            branch_id=shift.branch_id,
            terminal_id=shift.terminal_id,
            role=shift.role,
            status=shift.status,
            check_in_time=shift.check_in_time,
            check_out_time=shift.check_out_time,
            opening_amount=to_money(shift.opening_amount),
            closing_amount=shift.closing_amount,
            expected_amount=shift.expected_amount,
            variance=shift.variance,
            payment_amount=shift.payment_amount,
            transfer_state=shift.transfer_state,
            transferred_to_cashier_shift_id=shift.transferred_to_cashier_shift_id,
            is_day_start=shift.is_day_start,
        )

    def _drawer_snapshot(self, drawer: CashDrawerSession) -> DrawerSnapshot:
        return DrawerSnapshot(
            id=drawer.id,
            opening_amount=to_money(drawer.opening_amount),
            total_cash_sales=to_money(drawer.total_cash_sales),
            total_card_sales=to_money(drawer.total_card_sales),
            total_refunds=to_money(drawer.total_refunds),
            total_expenses=to_money(drawer.total_expenses),
            cash_drops=to_money(drawer.cash_drops),
            driver_cash_given=to_money(drawer.driver_cash_given),
            driver_cash_returned=to_money(drawer.driver_cash_returned),
            total_staff_payments=to_money(drawer.total_staff_payments),
            closing_amount=drawer.closing_amount,
            expected_amount=drawer.expected_amount,
            variance_amount=drawer.variance_amount,
            closed_at=drawer.closed_at,
            reconciled=drawer.reconciled,
        )
