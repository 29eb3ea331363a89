"""
Variance calculator

Pure formulas over shift-scoped totals, plus the queries that collect those
totals fresh at close time. Nothing here trusts a cached running figure for
sales, refunds or expenses.

Cashier/manager:
    expected = opening + cash_sales - cash_refunds - approved_expenses
               - cash_drops - driver_cash_given + driver_cash_returned
               - staff_payments

Driver:
    expected_return = cash_collected - opening - approved_expenses - payment

variance = closing - expected in both cases. A negative driver return is
valid and propagates unchanged.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from shiftbook.core.money import ZERO, to_money
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.driver_earning import DeliveryStatus, DriverEarning
from shiftbook.models.expense import ExpenseStatus, ExpenseType, ShiftExpense
from shiftbook.models.order import Order, PaymentMethod, SETTLED_ORDER_STATUSES
from shiftbook.models.shift import Shift


@dataclass(frozen=True)
class CashierTotals:
    opening: Decimal = ZERO
    cash_sales: Decimal = ZERO
    card_sales: Decimal = ZERO
    cash_refunds: Decimal = ZERO
    approved_expenses: Decimal = ZERO
    cash_drops: Decimal = ZERO
    driver_cash_given: Decimal = ZERO
    driver_cash_returned: Decimal = ZERO
    staff_payments: Decimal = ZERO


@dataclass(frozen=True)
class DriverTotals:
    cash_collected: Decimal = ZERO
    opening: Decimal = ZERO
    approved_expenses: Decimal = ZERO
    payment_amount: Decimal = ZERO


@dataclass(frozen=True)
class VarianceResult:
    closing: Decimal
    expected: Decimal
    variance: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.variance == 0

    @property
    def is_short(self) -> bool:
        return self.variance < 0


def cashier_expected(totals: CashierTotals) -> Decimal:
    return (
        totals.opening
        + totals.cash_sales
        - totals.cash_refunds
        - totals.approved_expenses
        - totals.cash_drops
        - totals.driver_cash_given
        + totals.driver_cash_returned
        - totals.staff_payments
    )


def driver_expected_return(totals: DriverTotals) -> Decimal:
    return (
        totals.cash_collected
        - totals.opening
        - totals.approved_expenses
        - totals.payment_amount
    )


def variance_of(closing: Decimal, expected: Decimal) -> VarianceResult:
    closing = to_money(closing)
    expected = to_money(expected)
    return VarianceResult(closing=closing, expected=expected, variance=closing - expected)


class VarianceCalculator:
    """Collects shift aggregates and applies the role formula"""

    def __init__(self, session: Session):
        self.session = session

    def _sum(self, statement) -> Decimal:
        return to_money(self.session.exec(statement).one())

    def approved_expenses(self, shift_id: uuid.UUID) -> Decimal:
        return self._sum(
            select(func.coalesce(func.sum(ShiftExpense.amount), 0)).where(
                ShiftExpense.staff_shift_id == shift_id,
                ShiftExpense.status == ExpenseStatus.APPROVED,
                ShiftExpense.expense_type != ExpenseType.STAFF_PAYMENT,
            )
        )

    def order_sales(self, shift_id: uuid.UUID, method: PaymentMethod) -> Decimal:
        """Settled sales taken on the shift; driver-carried cash is excluded"""
        statement = select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.staff_shift_id == shift_id,
            Order.payment_method == method,
            Order.status.in_(SETTLED_ORDER_STATUSES),
        )
        if method == PaymentMethod.CASH:
            statement = statement.where(Order.driver_shift_id.is_(None))
        return self._sum(statement)

    def cash_refunds(self, shift_id: uuid.UUID) -> Decimal:
        return self._sum(
            select(func.coalesce(func.sum(Order.refunded_amount), 0)).where(
                Order.staff_shift_id == shift_id,
                Order.payment_method == PaymentMethod.CASH,
            )
        )

    def cash_collected(self, shift_id: uuid.UUID) -> Decimal:
        return self._sum(
            select(func.coalesce(func.sum(DriverEarning.cash_collected), 0)).where(
                DriverEarning.staff_shift_id == shift_id,
                DriverEarning.status == DeliveryStatus.COMPLETED,
            )
        )

    def cashier_totals(self, shift: Shift, drawer: Optional[CashDrawerSession]) -> CashierTotals:
        totals = dict(
            opening=to_money(shift.opening_amount),
            cash_sales=self.order_sales(shift.id, PaymentMethod.CASH),
            card_sales=self.order_sales(shift.id, PaymentMethod.CARD),
            cash_refunds=self.cash_refunds(shift.id),
            approved_expenses=self.approved_expenses(shift.id),
        )
        if drawer is not None:
            totals.update(
                cash_drops=to_money(drawer.cash_drops),
                driver_cash_given=to_money(drawer.driver_cash_given),
                driver_cash_returned=to_money(drawer.driver_cash_returned),
                staff_payments=to_money(drawer.total_staff_payments),
            )
        return CashierTotals(**totals)

    def driver_totals(self, shift: Shift, payment_amount: Decimal) -> DriverTotals:
        return DriverTotals(
            cash_collected=self.cash_collected(shift.id),
            opening=to_money(shift.opening_amount),
            approved_expenses=self.approved_expenses(shift.id),
            payment_amount=to_money(payment_amount),
        )

    def cashier_result(
        self,
        closing: Decimal,
        totals: CashierTotals,
    ) -> VarianceResult:
        return variance_of(closing, cashier_expected(totals))

    def driver_result(self, closing: Decimal, totals: DriverTotals) -> VarianceResult:
        return variance_of(closing, driver_expected_return(totals))
