"""
Daily report generator

Reads across shifts, drawers, orders, expenses, staff payments and driver
earnings for one branch and one date. Read-only: generating a report twice
with no mutation in between yields the same numbers.

Reports from sibling terminals merge additively. Numbers are summed field
by field and lists are concatenated; nothing is recomputed from rows.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Sequence
import uuid

from pydantic import BaseModel
from sqlmodel import Session, select
import structlog

from shiftbook.core.clock import Clock, day_bounds, utcnow
from shiftbook.core.money import money_sum, to_money
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.driver_earning import DriverEarning
from shiftbook.models.expense import ExpenseStatus, ExpenseType, ShiftExpense
from shiftbook.models.order import Order, OrderStatus, PaymentMethod
from shiftbook.models.shift import ROLE_ORDER, Shift, ShiftRole
from shiftbook.models.staff_payment import StaffPayment
from shiftbook.schemas.report import (
    CashDrawerSection, ChannelTotals, DailyReport, DaySummary, DrawerLine,
    DriverEarningsSection, ExpenseLine, ExpensesSection, PaymentCounts,
    SalesByType, SalesSection, ShiftCounts, StaffDrawer, StaffDriver,
    StaffExpenses, StaffOrders, StaffPaymentLine, StaffPayments, StaffReport,
    TerminalBreakdown, TerminalReport,
)

logger = structlog.get_logger(__name__)


def channel_totals(orders: Sequence[Order]) -> ChannelTotals:
    cash = [order for order in orders if order.payment_method == PaymentMethod.CASH]
    card = [order for order in orders if order.payment_method == PaymentMethod.CARD]
    return ChannelTotals(
        cash=money_sum(order.total_amount for order in cash),
        card=money_sum(order.total_amount for order in card),
        cash_count=len(cash),
        card_count=len(card),
    )


def merge_values(main, other):
    """Field-wise additive merge of two same-shaped report values"""
    if isinstance(main, bool) or isinstance(other, bool):
        return main
    if main is None:
        return other
    if other is None:
        return main
    if isinstance(main, (int, Decimal)) and isinstance(other, (int, Decimal)):
        return main + other
    if isinstance(main, BaseModel) and isinstance(other, BaseModel):
        merged = {
            name: merge_values(getattr(main, name), getattr(other, name))
            for name in type(main).model_fields
        }
        return type(main)(**merged)
    if isinstance(main, list) and isinstance(other, list):
        return main + other
    return main


class DailyReportGenerator:

    def __init__(self, session: Session, clock: Clock = utcnow):
        self.session = session
        self.clock = clock

    def generate_daily_report(self, branch_id: str, day: date) -> DailyReport:
        start, end = day_bounds(day)

        shifts = list(self.session.exec(
            select(Shift)
            .where(
                Shift.branch_id == branch_id,
                Shift.check_in_time >= start,
                Shift.check_in_time < end,
            )
            .order_by(Shift.check_in_time, Shift.id)
        ).all())
        orders = list(self.session.exec(
            select(Order)
            .where(Order.branch_id == branch_id, Order.created_at >= start, Order.created_at < end)
            .order_by(Order.created_at, Order.id)
        ).all())
        drawers = list(self.session.exec(
            select(CashDrawerSession)
            .where(
                CashDrawerSession.branch_id == branch_id,
                CashDrawerSession.opened_at >= start,
                CashDrawerSession.opened_at < end,
            )
            .order_by(CashDrawerSession.opened_at, CashDrawerSession.id)
        ).all())
        expenses = list(self.session.exec(
            select(ShiftExpense)
            .where(
                ShiftExpense.branch_id == branch_id,
                ShiftExpense.created_at >= start,
                ShiftExpense.created_at < end,
            )
            .order_by(ShiftExpense.created_at, ShiftExpense.id)
        ).all())
        payments = list(self.session.exec(
            select(StaffPayment)
            .join(Shift, Shift.id == StaffPayment.paid_by_cashier_shift_id)
            .where(
                Shift.branch_id == branch_id,
                StaffPayment.created_at >= start,
                StaffPayment.created_at < end,
            )
            .order_by(StaffPayment.created_at, StaffPayment.id)
        ).all())
        earnings = list(self.session.exec(
            select(DriverEarning)
            .where(
                DriverEarning.branch_id == branch_id,
                DriverEarning.created_at >= start,
                DriverEarning.created_at < end,
            )
            .order_by(DriverEarning.created_at, DriverEarning.id)
        ).all())

        settled = [order for order in orders if order.is_settled()]
        sales = self._sales(orders, settled)
        report = DailyReport(
            date=day,
            branch_id=branch_id,
            generated_at=self.clock(),
            shifts=self._shift_counts(shifts),
            sales=sales,
            cash_drawer=self._cash_drawer(drawers),
            expenses=self._expenses(expenses, payments),
            driver_earnings=self._driver_earnings(earnings),
            staff_payments=[self._payment_line(payment) for payment in payments],
            drawers=[self._drawer_line(drawer) for drawer in drawers],
            staff_reports=self._staff_reports(shifts, settled, drawers, expenses, payments, earnings),
            day_summary=DaySummary(
                cash_total=sales.cash_sales,
                card_total=sales.card_sales,
                total=sales.total_sales,
                total_orders=sales.total_orders,
            ),
        )
        logger.info(
            "daily_report_generated",
            branch_id=branch_id,
            date=day.isoformat(),
            shifts=report.shifts.total,
            orders=report.sales.total_orders,
        )
        return report

    # Sections

    def _shift_counts(self, shifts: Sequence[Shift]) -> ShiftCounts:
        counts = {role.value: 0 for role in ShiftRole}
        for shift in shifts:
            counts[ShiftRole(shift.role).value] += 1
        return ShiftCounts(total=len(shifts), **counts)

    def _sales(self, orders: Sequence[Order], settled: Sequence[Order]) -> SalesSection:
        instore = [order for order in settled if not order.order_type.is_delivery]
        delivery = [order for order in settled if order.order_type.is_delivery]
        cancelled = [order for order in orders if order.status == OrderStatus.CANCELLED]
        by_type = SalesByType(instore=channel_totals(instore), delivery=channel_totals(delivery))
        cash_sales = by_type.instore.cash + by_type.delivery.cash
        card_sales = by_type.instore.card + by_type.delivery.card
        return SalesSection(
            total_orders=len(settled),
            total_sales=cash_sales + card_sales,
            cash_sales=cash_sales,
            card_sales=card_sales,
            counts=PaymentCounts(
                cash_orders=by_type.instore.cash_count + by_type.delivery.cash_count,
                card_orders=by_type.instore.card_count + by_type.delivery.card_count,
            ),
            by_type=by_type,
            cancelled_orders=len(cancelled),
            cancelled_total=money_sum(order.total_amount for order in cancelled),
            cash_refunds=money_sum(
                order.refunded_amount for order in orders
                if order.payment_method == PaymentMethod.CASH
            ),
        )

    def _cash_drawer(self, drawers: Sequence[CashDrawerSession]) -> CashDrawerSection:
        return CashDrawerSection(
            total_variance=money_sum(drawer.variance_amount for drawer in drawers),
            total_cash_drops=money_sum(drawer.cash_drops for drawer in drawers),
            unreconciled_count=sum(1 for drawer in drawers if not drawer.reconciled),
            opening_total=money_sum(drawer.opening_amount for drawer in drawers),
            driver_cash_given=money_sum(drawer.driver_cash_given for drawer in drawers),
            driver_cash_returned=money_sum(drawer.driver_cash_returned for drawer in drawers),
            staff_payments_total=money_sum(drawer.total_staff_payments for drawer in drawers),
            expected_total=money_sum(drawer.expected_amount for drawer in drawers),
            closing_total=money_sum(drawer.closing_amount for drawer in drawers),
        )

    def _expenses(
        self,
        expenses: Sequence[ShiftExpense],
        payments: Sequence[StaffPayment],
    ) -> ExpensesSection:
        # staff_payment rows are reported from staff_payments instead
        listed = [e for e in expenses if e.expense_type != ExpenseType.STAFF_PAYMENT]
        return ExpensesSection(
            total=money_sum(e.amount for e in listed if e.status == ExpenseStatus.APPROVED),
            pending_count=sum(1 for e in listed if e.status == ExpenseStatus.PENDING),
            staff_payments_total=money_sum(payment.amount for payment in payments),
            items=[
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
                for e in listed
            ],
        )

    def _driver_earnings(self, earnings: Sequence[DriverEarning]) -> DriverEarningsSection:
        completed = [earning for earning in earnings if not earning.is_cancelled()]
        return DriverEarningsSection(
            total_deliveries=len(earnings),
            completed_deliveries=len(completed),
            cancelled_deliveries=len(earnings) - len(completed),
            transferred_deliveries=sum(1 for earning in earnings if earning.is_transferred),
            total_earnings=money_sum(earning.total_earning for earning in completed),
            cash_collected_total=money_sum(earning.cash_collected for earning in completed),
            card_amount_total=money_sum(earning.card_amount for earning in completed),
            cash_to_return_total=money_sum(earning.cash_to_return for earning in completed),
        )

    def _payment_line(self, payment: StaffPayment) -> StaffPaymentLine:
        return StaffPaymentLine(
            id=payment.id,
            paid_to_staff_id=payment.paid_to_staff_id,
            staff_shift_id=payment.staff_shift_id,
            paid_by_cashier_shift_id=payment.paid_by_cashier_shift_id,
            amount=to_money(payment.amount),
            payment_type=payment.payment_type,
            notes=payment.notes,
            created_at=payment.created_at,
        )

    def _drawer_line(self, drawer: CashDrawerSession) -> DrawerLine:
        return DrawerLine(
            id=drawer.id,
            staff_shift_id=drawer.staff_shift_id,
            cashier_id=drawer.cashier_id,
            terminal_id=drawer.terminal_id,
            opening_amount=to_money(drawer.opening_amount),
            cash_drops=to_money(drawer.cash_drops),
            driver_cash_given=to_money(drawer.driver_cash_given),
            driver_cash_returned=to_money(drawer.driver_cash_returned),
            total_staff_payments=to_money(drawer.total_staff_payments),
            total_expenses=to_money(drawer.total_expenses),
            closing_amount=drawer.closing_amount,
            expected_amount=drawer.expected_amount,
            variance_amount=drawer.variance_amount,
            opened_at=drawer.opened_at,
            closed_at=drawer.closed_at,
            reconciled=drawer.reconciled,
        )

    def _staff_reports(
        self,
        shifts: Sequence[Shift],
        settled: Sequence[Order],
        drawers: Sequence[CashDrawerSession],
        expenses: Sequence[ShiftExpense],
        payments: Sequence[StaffPayment],
        earnings: Sequence[DriverEarning],
    ) -> List[StaffReport]:
        orders_by_shift: Dict[uuid.UUID, List[Order]] = {}
        for order in settled:
            for shift_id in {order.staff_shift_id, order.driver_shift_id} - {None}:
                orders_by_shift.setdefault(shift_id, []).append(order)
        drawer_by_shift = {drawer.staff_shift_id: drawer for drawer in drawers}

        reports = []
        for shift in sorted(shifts, key=lambda s: (ROLE_ORDER[ShiftRole(s.role)], s.check_in_time)):
            shift_orders = orders_by_shift.get(shift.id, [])
            channel = channel_totals(shift_orders)
            shift_expenses = [
                e for e in expenses
                if e.staff_shift_id == shift.id and e.counts_toward_drawer()
            ]
            received = [p for p in payments if p.staff_shift_id == shift.id]

            driver = None
            returned = None
            if shift.role == ShiftRole.DRIVER:
                own = [earning for earning in earnings if earning.staff_shift_id == shift.id]
                completed = [earning for earning in own if not earning.is_cancelled()]
                driver = StaffDriver(
                    deliveries=len(own),
                    completed=len(completed),
                    cancelled=len(own) - len(completed),
                    earnings=money_sum(earning.total_earning for earning in completed),
                    cash_collected=money_sum(earning.cash_collected for earning in completed),
                    card_amount=money_sum(earning.card_amount for earning in completed),
                    cash_to_return=money_sum(earning.cash_to_return for earning in completed),
                )
                returned = shift.expected_amount

            drawer = None
            if shift.id in drawer_by_shift:
                own_drawer = drawer_by_shift[shift.id]
                drawer = StaffDrawer(
                    opening=to_money(own_drawer.opening_amount),
                    expected=own_drawer.expected_amount,
                    closing=own_drawer.closing_amount,
                    variance=own_drawer.variance_amount,
                )

            reports.append(StaffReport(
                staff_shift_id=shift.id,
                staff_id=shift.staff_id,
                staff_name=shift.staff_name,
                role=shift.role,
                check_in=shift.check_in_time,
                check_out=shift.check_out_time,
                shift_status=shift.status,
                opening_amount=to_money(shift.opening_amount),
                closing_amount=shift.closing_amount,
                expected_amount=shift.expected_amount,
                variance=shift.variance,
                payment_amount=shift.payment_amount,
                orders=StaffOrders(
                    count=len(shift_orders),
                    cash_amount=channel.cash,
                    card_amount=channel.card,
                    total_amount=channel.cash + channel.card,
                ),
                payments=StaffPayments(
                    staff_payments=money_sum(p.amount for p in received)
                    + to_money(shift.payment_amount),
                ),
                expenses=StaffExpenses(total=money_sum(e.amount for e in shift_expenses)),
                driver=driver,
                drawer=drawer,
                returned_to_drawer_amount=returned,
            ))
        return reports

    # Multi-terminal

    def aggregate_reports(
        self,
        main: TerminalReport,
        children: Sequence[TerminalReport],
    ) -> DailyReport:
        """Merge sibling terminal reports into the main terminal's report"""
        merged = main.report.model_copy(update={
            "staff_reports": self._tag(main),
            "terminal_breakdown": [],
        })
        breakdown = [self._breakdown(main, "main")]
        for child in children:
            tagged = child.report.model_copy(update={
                "staff_reports": self._tag(child),
                "terminal_breakdown": [],
            })
            merged = merge_values(merged, tagged)
            breakdown.append(self._breakdown(child, "child"))

        logger.info(
            "daily_reports_aggregated",
            main_terminal=main.terminal_id,
            children=[child.terminal_id for child in children],
        )
        return merged.model_copy(update={"terminal_breakdown": breakdown, "is_aggregated": True})

    def _tag(self, terminal: TerminalReport) -> List[StaffReport]:
        return [
            staff.model_copy(update={"terminal": terminal.name})
            for staff in terminal.report.staff_reports
        ]

    def _breakdown(self, terminal: TerminalReport, kind: str) -> TerminalBreakdown:
        summary = terminal.report.day_summary
        return TerminalBreakdown(
            terminal_id=terminal.terminal_id,
            name=terminal.name,
            orders=summary.total_orders,
            cash=summary.cash_total,
            card=summary.card_total,
            total=summary.total,
            type=kind,
        )
