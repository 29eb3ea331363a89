"""
Tests for opening, closing and abandoning shifts
"""

import pytest
from datetime import datetime
from decimal import Decimal
import uuid

from sqlmodel import Session, select

from shiftbook.core.errors import (
    AlreadyActive, InvalidAmount, NoActiveCashier, NotFound, ShiftNotActive, ValidationError
)
from shiftbook.models import (
    CashDrawerSession, Shift, ShiftRole, ShiftStatus, SyncQueueItem, SyncOperation
)
from tests.conftest import BRANCH, TERMINAL


def open_cashier(services, staff_id="cashier-a", opening="100.00", terminal=TERMINAL):
    return services.shifts.open_shift(staff_id, BRANCH, terminal, ShiftRole.CASHIER, opening)


class TestOpenShift:
    """Test check-in rules"""

    def test_second_open_without_close_fails(self, services):
        """Test a staff member cannot hold two active shifts"""
        services.shifts.open_shift("server-1", BRANCH, TERMINAL, "server")

        with pytest.raises(AlreadyActive, match="already has an active shift"):
            services.shifts.open_shift("server-1", BRANCH, TERMINAL, "server")

    def test_reopen_after_close(self, services):
        """Test a staff member can check in again after checking out"""
        shift = services.shifts.open_shift("server-1", BRANCH, TERMINAL, "server")
        services.shifts.close_shift(shift.id, Decimal("0"), closed_by="manager")

        again = services.shifts.open_shift("server-1", BRANCH, TERMINAL, "server")

        assert again.id != shift.id
        assert services.shifts.get_active_shift("server-1").id == again.id

    def test_cashier_gets_exactly_one_drawer(self, services, db: Session):
        """Test a cashier shift is created together with its drawer"""
        shift = open_cashier(services)

        drawers = db.exec(
            select(CashDrawerSession).where(CashDrawerSession.staff_shift_id == shift.id)
        ).all()
        assert len(drawers) == 1
        assert drawers[0].opening_amount == Decimal("100.00")
        assert drawers[0].closed_at is None

    def test_non_cashier_roles_get_no_drawer(self, services, db: Session):
        for index, role in enumerate(["manager", "kitchen", "server", "driver"]):
            services.shifts.open_shift(f"staff-{index}", BRANCH, TERMINAL, role)

        assert db.exec(select(CashDrawerSession)).all() == []

    def test_first_cashier_of_day_is_day_start(self, services, clock):
        first = open_cashier(services, "cashier-a")
        services.shifts.close_shift(first.id, Decimal("100.00"), closed_by="cashier-a")
        clock.advance(hours=4)
        second = open_cashier(services, "cashier-b")

        assert first.is_day_start is True
        assert second.is_day_start is False

    def test_day_start_is_per_terminal_and_date(self, services, clock):
        first = open_cashier(services, "cashier-a")
        other_terminal = open_cashier(services, "cashier-b", terminal="terminal-2")
        services.shifts.close_shift(first.id, Decimal("100.00"), closed_by="cashier-a")
        clock.set(datetime(2026, 3, 15, 8, 0))
        next_day = open_cashier(services, "cashier-a")

        assert other_terminal.is_day_start is True
        assert next_day.is_day_start is True

    def test_driver_float_requires_active_cashier(self, services, db: Session):
        """Test driver opening cash fails without a cashier and leaves nothing behind"""
        with pytest.raises(NoActiveCashier):
            services.shifts.open_shift("driver-1", BRANCH, TERMINAL, "driver", "50.00")

        assert db.exec(select(Shift)).all() == []
        assert db.exec(select(SyncQueueItem)).all() == []

    def test_driver_without_float_opens_without_cashier(self, services):
        shift = services.shifts.open_shift("driver-1", BRANCH, TERMINAL, "driver")
        assert shift.status == ShiftStatus.ACTIVE

    def test_driver_float_is_given_from_active_drawer(self, services):
        cashier = open_cashier(services)
        services.shifts.open_shift("driver-1", BRANCH, TERMINAL, "driver", "50.00")

        drawer = services.drawers.for_shift(cashier.id)
        assert drawer.driver_cash_given == Decimal("50.00")

    def test_invalid_role_is_rejected(self, services):
        with pytest.raises(ValidationError, match="Invalid role"):
            services.shifts.open_shift("x", BRANCH, TERMINAL, "dishwasher")

    def test_negative_opening_is_rejected(self, services):
        with pytest.raises(InvalidAmount):
            open_cashier(services, opening="-1")

    @pytest.mark.parametrize("opening", ["1e30", "10000000000", "NaN", "Infinity", "abc"])
    def test_unstorable_opening_is_rejected_before_any_write(self, services, db: Session, opening):
        with pytest.raises(InvalidAmount):
            open_cashier(services, opening=opening)

        assert db.exec(select(Shift)).all() == []
        assert db.exec(select(CashDrawerSession)).all() == []

    def test_missing_identifiers_are_rejected(self, services):
        with pytest.raises(ValidationError):
            services.shifts.open_shift("", BRANCH, TERMINAL, "server")

    def test_open_enqueues_shift_and_drawer_snapshots(self, services, db: Session):
        shift = open_cashier(services)

        rows = db.exec(select(SyncQueueItem).order_by(SyncQueueItem.created_at)).all()
        tables = {(row.table_name, row.operation) for row in rows}
        assert ("staff_shifts", SyncOperation.INSERT) in tables
        assert ("cash_drawer_sessions", SyncOperation.INSERT) in tables
        shift_row = next(row for row in rows if row.table_name == "staff_shifts")
        assert shift_row.record_id == str(shift.id)
        assert shift_row.payload["role"] == "cashier"
        assert shift_row.payload["opening_amount"] == "100.00"


class TestCloseShift:
    """Test check-out rules"""

    def test_unknown_shift(self, services):
        with pytest.raises(NotFound):
            services.shifts.close_shift(uuid.uuid4(), Decimal("0"), closed_by="x")

    def test_close_twice_fails(self, services):
        shift = open_cashier(services)
        services.shifts.close_shift(shift.id, Decimal("100"), closed_by="cashier-a")

        with pytest.raises(ShiftNotActive, match="already closed"):
            services.shifts.close_shift(shift.id, Decimal("100"), closed_by="cashier-a")

    def test_close_stamps_shift_and_drawer(self, services, clock):
        shift = open_cashier(services)
        clock.advance(hours=8)

        closed = services.shifts.close_shift(shift.id, Decimal("95.00"), closed_by="manager-1")

        assert closed.shift.status == ShiftStatus.CLOSED
        assert closed.shift.check_out_time == clock()
        assert closed.shift.closed_by == "manager-1"
        assert closed.shift.expected_amount == Decimal("100.00")
        assert closed.shift.variance == Decimal("-5.00")
        assert closed.drawer.closed_at == clock()
        assert closed.drawer.variance_amount == Decimal("-5.00")
        assert closed.shift.get_variance_description() == "Short by 5.00"

    def test_payment_amount_only_for_paid_roles(self, services):
        shift = open_cashier(services)

        with pytest.raises(ValidationError, match="payment_amount"):
            services.shifts.close_shift(
                shift.id, Decimal("100"), closed_by="x", payment_amount=Decimal("10")
            )
        assert services.shifts.get_shift(shift.id).status == ShiftStatus.ACTIVE

    def test_server_payment_is_recorded(self, services):
        shift = services.shifts.open_shift("server-1", BRANCH, TERMINAL, "server")

        closed = services.shifts.close_shift(
            shift.id, Decimal("0"), closed_by="server-1", payment_amount=Decimal("40")
        )

        assert closed.shift.payment_amount == Decimal("40.00")


class TestAbandonShift:

    def test_abandon_marks_status_without_variance(self, services):
        shift = services.shifts.open_shift("kitchen-1", BRANCH, TERMINAL, "kitchen")

        abandoned = services.shifts.abandon_shift(shift.id, closed_by="manager", reason="left early")

        assert abandoned.status == ShiftStatus.ABANDONED
        assert abandoned.variance is None
        assert abandoned.notes == "left early"
        assert services.shifts.get_active_shift("kitchen-1") is None

    def test_abandoned_cashier_hands_off_drivers_and_closes_drawer(self, services):
        cashier = open_cashier(services)
        driver = services.shifts.open_shift("driver-1", BRANCH, TERMINAL, "driver", "30.00")

        services.shifts.abandon_shift(cashier.id, closed_by="manager")

        drawer = services.drawers.for_shift(cashier.id)
        assert drawer.closed_at is not None
        assert drawer.expected_amount is None
        assert drawer.driver_cash_given == Decimal("0.00")
        assert services.shifts.get_shift(driver.id).transfer_pending is True

    def test_cannot_abandon_closed_shift(self, services):
        shift = open_cashier(services)
        services.shifts.close_shift(shift.id, Decimal("100"), closed_by="x")

        with pytest.raises(ShiftNotActive):
            services.shifts.abandon_shift(shift.id, closed_by="x")
