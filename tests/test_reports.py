"""
Tests for the daily report and terminal aggregation
"""

import pytest
import random
from datetime import date, datetime
from decimal import Decimal

from shiftbook.models import OrderStatus, OrderType, PaymentMethod, ShiftRole
from shiftbook.schemas.report import DailyReport, SalesSection, TerminalReport
from shiftbook.services.reports import merge_values
from tests.conftest import BRANCH, TERMINAL

DAY = date(2026, 3, 14)


@pytest.fixture
def busy_day(services, make_order, clock):
    """A cashier, a driver and a server with a mix of orders"""
    cashier = services.shifts.open_shift("cashier-a", BRANCH, TERMINAL, "cashier", "100", staff_name="Ana")
    clock.advance(minutes=5)
    driver = services.shifts.open_shift("driver-1", BRANCH, TERMINAL, "driver", "20", staff_name="Dev")
    clock.advance(minutes=5)
    server = services.shifts.open_shift("server-1", BRANCH, TERMINAL, "server", staff_name="Sam")

    make_order(cashier.id, total="30.00")
    make_order(cashier.id, total="45.00", payment_method=PaymentMethod.CARD)
    make_order(cashier.id, total="12.00", order_type=OrderType.TAKEAWAY)
    make_order(cashier.id, total="99.00", status=OrderStatus.CANCELLED)
    delivery = make_order(cashier.id, total="50.00", order_type=OrderType.DELIVERY)
    make_order(cashier.id, total="18.00", refunded="18.00")

    services.earnings.record_driver_earning(
        driver.id, delivery.id, delivery_fee="5", tip_amount="2", cash_collected="50"
    )
    services.expenses.record_expense(cashier.id, "supplies", "7.50", "napkins")
    services.expenses.record_expense(cashier.id, "staff_payment", "40", "legacy wage row")
    services.expenses.record_staff_payment(cashier.id, "server-1", "15", "tip")
    return cashier, driver, server


class TestDailyReport:

    def test_shift_counts(self, services, busy_day):
        report = services.reports.generate_daily_report(BRANCH, DAY)

        assert report.shifts.total == 3
        assert report.shifts.cashier == 1
        assert report.shifts.driver == 1
        assert report.shifts.server == 1
        assert report.shifts.manager == 0

    def test_sales_by_channel_and_type(self, services, busy_day):
        sales = services.reports.generate_daily_report(BRANCH, DAY).sales

        # 30 + 12 + 50 + 18 cash, 45 card; the cancelled order is excluded
        assert sales.total_orders == 5
        assert sales.cash_sales == Decimal("110.00")
        assert sales.card_sales == Decimal("45.00")
        assert sales.total_sales == Decimal("155.00")
        assert sales.counts.cash_orders == 4
        assert sales.counts.card_orders == 1
        assert sales.by_type.delivery.cash == Decimal("50.00")
        assert sales.by_type.instore.cash == Decimal("60.00")
        assert sales.cancelled_orders == 1
        assert sales.cancelled_total == Decimal("99.00")
        assert sales.cash_refunds == Decimal("18.00")

    def test_day_summary_matches_sales(self, services, busy_day):
        report = services.reports.generate_daily_report(BRANCH, DAY)

        assert report.day_summary.total == report.sales.total_sales
        assert report.day_summary.total_orders == report.sales.total_orders

    def test_staff_payment_expenses_are_not_listed(self, services, busy_day):
        expenses = services.reports.generate_daily_report(BRANCH, DAY).expenses

        assert [line.description for line in expenses.items] == ["napkins"]
        assert expenses.total == Decimal("7.50")
        assert expenses.staff_payments_total == Decimal("15.00")

    def test_driver_earnings_section(self, services, busy_day):
        earnings = services.reports.generate_daily_report(BRANCH, DAY).driver_earnings

        assert earnings.total_deliveries == 1
        assert earnings.total_earnings == Decimal("7.00")
        assert earnings.cash_collected_total == Decimal("50.00")

    def test_staff_reports_sorted_by_role_then_check_in(self, services, busy_day, clock):
        clock.advance(minutes=1)
        services.shifts.open_shift("cashier-b", "branch-1", "terminal-2", "cashier", "50")

        roles = [
            (staff.role, staff.staff_id)
            for staff in services.reports.generate_daily_report(BRANCH, DAY).staff_reports
        ]

        assert roles == [
            (ShiftRole.CASHIER, "cashier-a"),
            (ShiftRole.CASHIER, "cashier-b"),
            (ShiftRole.DRIVER, "driver-1"),
            (ShiftRole.SERVER, "server-1"),
        ]

    def test_staff_report_details(self, services, busy_day):
        cashier, driver, server = busy_day
        services.shifts.close_shift(driver.id, Decimal("30"), closed_by="driver-1")

        reports = {
            staff.staff_id: staff
            for staff in services.reports.generate_daily_report(BRANCH, DAY).staff_reports
        }

        assert reports["driver-1"].driver.cash_collected == Decimal("50.00")
        assert reports["driver-1"].returned_to_drawer_amount == Decimal("30.00")
        assert reports["server-1"].payments.staff_payments == Decimal("15.00")
        assert reports["cashier-a"].expenses.total == Decimal("7.50")
        assert reports["cashier-a"].drawer.opening == Decimal("100.00")

    def test_other_days_and_branches_excluded(self, services, busy_day, make_order, clock):
        make_order(None, total="500.00", branch_id="branch-2")
        clock.set(datetime(2026, 3, 15, 1, 0))
        make_order(None, total="600.00")

        report = services.reports.generate_daily_report(BRANCH, DAY)

        assert report.sales.total_sales == Decimal("155.00")

    def test_generation_is_idempotent(self, services, busy_day, clock):
        first = services.reports.generate_daily_report(BRANCH, DAY)
        clock.advance(minutes=30)
        second = services.reports.generate_daily_report(BRANCH, DAY)

        assert first.generated_at != second.generated_at
        assert first.model_dump(exclude={"generated_at"}) == second.model_dump(exclude={"generated_at"})

    def test_every_settled_order_counted_once(self, services, make_order):
        rng = random.Random(1403)
        cashier = services.shifts.open_shift("cashier-a", BRANCH, TERMINAL, "cashier", "0")
        expected_cash = Decimal("0.00")
        expected_card = Decimal("0.00")
        settled = 0
        for _ in range(40):
            total = Decimal(rng.randint(100, 9999)) / 100
            method = rng.choice(list(PaymentMethod))
            status = rng.choice(list(OrderStatus))
            order_type = rng.choice(list(OrderType))
            make_order(
                cashier.id,
                total=str(total),
                payment_method=method,
                status=status,
                order_type=order_type,
            )
            if status in (OrderStatus.COMPLETED, OrderStatus.DELIVERED):
                settled += 1
                if method == PaymentMethod.CASH:
                    expected_cash += total
                else:
                    expected_card += total

        sales = services.reports.generate_daily_report(BRANCH, DAY).sales

        assert sales.total_orders == settled
        assert sales.cash_sales == expected_cash
        assert sales.card_sales == expected_card
        assert sales.by_type.instore.cash + sales.by_type.delivery.cash == expected_cash

    @pytest.mark.parametrize("seed", [7, 2026, 90210])
    def test_every_shift_gets_one_staff_report(self, services, clock, seed):
        rng = random.Random(seed)
        opened = {role: 0 for role in ShiftRole}
        for index in range(rng.randint(5, 25)):
            role = rng.choice(list(ShiftRole))
            terminal = rng.choice([TERMINAL, "terminal-2"])
            opening = str(rng.randint(0, 200)) if role == ShiftRole.CASHIER else None
            shift = services.shifts.open_shift(f"{role.value}-{index}", BRANCH, terminal, role, opening)
            if role in (ShiftRole.KITCHEN, ShiftRole.SERVER, ShiftRole.MANAGER) and rng.random() < 0.5:
                services.shifts.close_shift(shift.id, Decimal("0"), closed_by=shift.staff_id)
            opened[role] += 1
            clock.advance(minutes=rng.randint(1, 20))

        report = services.reports.generate_daily_report(BRANCH, DAY)

        assert len(report.staff_reports) == report.shifts.total == sum(opened.values())
        for role, expected in opened.items():
            listed = [staff for staff in report.staff_reports if staff.role == role]
            assert getattr(report.shifts, role.value) == expected
            assert len(listed) == expected
        assert len({staff.staff_shift_id for staff in report.staff_reports}) == len(report.staff_reports)

    def test_export_uses_camel_case_numbers(self, services, busy_day):
        exported = services.reports.generate_daily_report(BRANCH, DAY).export()

        assert exported["branchId"] == BRANCH
        assert exported["sales"]["byType"]["delivery"]["cashCount"] == 1
        assert exported["sales"]["cashSales"] == 110.0
        assert "staffReports" in exported


class TestAggregation:

    def test_merge_sums_numbers_and_keeps_main_identity(self):
        main = DailyReport(
            date=DAY,
            branch_id="main",
            generated_at=datetime(2026, 3, 14, 23, 0),
            sales=SalesSection(total_orders=2, cash_sales=Decimal("10.00")),
        )
        other = DailyReport(
            date=date(2026, 3, 13),
            branch_id="other",
            generated_at=datetime(2026, 3, 14, 23, 5),
            sales=SalesSection(total_orders=3, cash_sales=Decimal("2.50")),
        )

        merged = merge_values(main, other)

        assert merged.sales.total_orders == 5
        assert merged.sales.cash_sales == Decimal("12.50")
        assert merged.branch_id == "main"
        assert merged.date == DAY

    def test_aggregate_reports(self, services, busy_day):
        main_report = services.reports.generate_daily_report(BRANCH, DAY)
        child_report = main_report.model_copy(deep=True)

        merged = services.reports.aggregate_reports(
            TerminalReport(terminal_id=TERMINAL, name="Front", report=main_report),
            [TerminalReport(terminal_id="terminal-2", name="Patio", report=child_report)],
        )

        assert merged.is_aggregated is True
        assert merged.sales.total_sales == Decimal("310.00")
        assert merged.shifts.total == 6
        assert merged.expenses.total == Decimal("15.00")
        assert len(merged.staff_reports) == 6
        assert {staff.terminal for staff in merged.staff_reports} == {"Front", "Patio"}
        assert [(b.terminal_id, b.type) for b in merged.terminal_breakdown] == [
            (TERMINAL, "main"),
            ("terminal-2", "child"),
        ]
        assert merged.terminal_breakdown[1].total == Decimal("155.00")

    def test_aggregate_without_children(self, services, busy_day):
        report = services.reports.generate_daily_report(BRANCH, DAY)

        merged = services.reports.aggregate_reports(
            TerminalReport(terminal_id=TERMINAL, name="Front", report=report), []
        )

        assert merged.is_aggregated is True
        assert merged.sales == report.sales
        assert len(merged.terminal_breakdown) == 1
        assert report.is_aggregated is False
