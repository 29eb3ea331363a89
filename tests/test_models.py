"""
Tests for model helpers and structured sub-records
"""

import pytest
from datetime import datetime
from decimal import Decimal

from shiftbook.models import (
    ExpenseStatus, ExpenseType, Order, OrderItem, RestaurantTable, Shift, ShiftExpense,
    ShiftRole, ShiftStatus, TableStatus, TransferState,
)
from tests.conftest import BRANCH, TERMINAL


def make_shift(**kwargs) -> Shift:
    values = dict(staff_id="driver-1", branch_id=BRANCH, terminal_id=TERMINAL, role=ShiftRole.DRIVER)
    values.update(kwargs)
    return Shift(**values)


class TestShiftModel:

    def test_transfer_state_follows_driver_fields(self):
        shift = make_shift()
        assert shift.transfer_state == TransferState.ATTACHED

        shift.mark_pending_transfer()
        assert shift.transfer_state == TransferState.PENDING

        shift.claim_by(shift.id)
        assert shift.transfer_state == TransferState.CLAIMED

    def test_only_pending_drivers_can_be_claimed(self):
        shift = make_shift()

        with pytest.raises(ValueError, match="attached"):
            shift.claim_by(shift.id)

    def test_closed_shift_cannot_be_abandoned(self):
        shift = make_shift(status=ShiftStatus.CLOSED)

        allowed, message = shift.can_transition_to(ShiftStatus.ABANDONED)

        assert allowed is False
        assert message == "Cannot transition from closed to abandoned"

    def test_variance_description(self):
        shift = make_shift()
        assert shift.get_variance_description() == "Not reconciled"

        shift.variance = Decimal("0.00")
        assert shift.get_variance_description() == "Balanced"

        shift.variance = Decimal("12.5")
        assert shift.get_variance_description() == "Over by 12.50"


class TestOrderItems:

    def test_items_are_structured(self, db):
        order = Order(order_number="ORD-1", branch_id=BRANCH, terminal_id=TERMINAL)
        order.set_items([
            OrderItem(name="Flat white", quantity=2, unit_price=Decimal("3.50"), customizations=["oat"]),
            OrderItem(name="Croissant", unit_price=Decimal("2.75")),
        ])
        db.add(order)
        db.commit()
        db.expire_all()

        items = db.get(Order, order.id).get_items()

        assert [item.name for item in items] == ["Flat white", "Croissant"]
        assert items[0].customizations == ["oat"]
        assert items[0].line_total == Decimal("7.00")


class TestExpenseModel:

    def test_staff_payment_expense_never_counts(self):
        expense = ShiftExpense(
            staff_shift_id=make_shift().id,
            staff_id="cashier-a",
            branch_id=BRANCH,
            expense_type=ExpenseType.STAFF_PAYMENT,
            amount=Decimal("10"),
            description="wage",
            status=ExpenseStatus.APPROVED,
        )

        assert expense.counts_toward_drawer() is False
        assert expense.can_transition_to(ExpenseStatus.REJECTED) is True
        assert expense.can_transition_to(ExpenseStatus.PENDING) is False


class TestRestaurantTable:

    def test_release(self):
        table = RestaurantTable(branch_id=BRANCH, name="C2", status=TableStatus.OCCUPIED)
        at = datetime(2026, 3, 14, 23, 59)

        table.release(at)

        assert table.status == TableStatus.AVAILABLE
        assert table.current_order_id is None
        assert table.updated_at == at


class TestNaiveTimestamps:

    def test_shift_times_round_trip_without_timezone(self, db):
        checked_in = datetime(2026, 3, 14, 9, 0)
        checked_out = datetime(2026, 3, 14, 17, 30)
        shift = make_shift(check_in_time=checked_in, check_out_time=checked_out)
        db.add(shift)
        db.commit()
        db.expire_all()

        stored = db.get(Shift, shift.id)

        assert stored.check_in_time == checked_in
        assert stored.check_in_time.tzinfo is None
        assert stored.check_out_time == checked_out

    def test_datetime_columns_are_plain(self):
        from sqlalchemy import DateTime
        from sqlmodel import SQLModel

        for table in SQLModel.metadata.sorted_tables:
            for column in table.columns:
                if column.name.endswith(("_at", "_time")):
                    assert type(column.type) is DateTime, f"{table.name}.{column.name}"
                    assert column.type.timezone is False
