"""
Expense and staff-payment ledger

Expenses reduce a shift's expected cash through the drawer's
total_expenses. Staff payments go to total_staff_payments instead and are
never counted as expenses.
"""

from decimal import Decimal
from typing import List, Optional, Union
import uuid

from sqlalchemy import case
from sqlmodel import Session, select
import structlog

from shiftbook.core.clock import Clock, utcnow
from shiftbook.core.config import Settings
from shiftbook.core.database import atomic
from shiftbook.core.errors import (
    CashierNotActive, NotFound, ShiftNotActive, StateConflict, ValidationError
)
from shiftbook.core.money import Number, require_positive
from shiftbook.models.expense import ExpenseStatus, ExpenseType, ShiftExpense
from shiftbook.models.shift import Shift, ShiftRole, ShiftStatus
from shiftbook.models.staff_payment import StaffPayment, StaffPaymentType
from shiftbook.services.cash_drawer import CashDrawerLedger
from shiftbook.services.sync_queue import SyncQueue

logger = structlog.get_logger(__name__)


def _parse(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {label}: {value}") from exc


class ExpenseLedger:
    """Records expenses and staff payments against shifts"""

    def __init__(
        self,
        session: Session,
        ledger: CashDrawerLedger,
        sync: SyncQueue,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.ledger = ledger
        self.sync = sync
        self.settings = settings
        self.clock = clock

    # Expenses

    def record_expense(
        self,
        shift_id: uuid.UUID,
        expense_type: Union[ExpenseType, str],
        amount: Number,
        description: str,
        receipt_number: Optional[str] = None,
    ) -> ShiftExpense:
        expense_type = _parse(ExpenseType, expense_type, "expense type")
        amount = require_positive(amount)
        if not description or not description.strip():
            raise ValidationError("description is required")

        with atomic(self.session):
            shift = self.session.get(Shift, shift_id)
            if shift is None or not shift.is_active():
                raise ShiftNotActive("No active shift found")

            now = self.clock()
            status = (
                ExpenseStatus.PENDING
                if self.settings.EXPENSES_REQUIRE_APPROVAL
                else ExpenseStatus.APPROVED
            )
            expense = ShiftExpense(
                staff_shift_id=shift.id,
                staff_id=shift.staff_id,
                branch_id=shift.branch_id,
                expense_type=expense_type,
                amount=amount,
                description=description.strip(),
                receipt_number=receipt_number,
                status=status,
                approved_at=now if status == ExpenseStatus.APPROVED else None,
                created_at=now,
                updated_at=now,
            )
            self.session.add(expense)
            self.sync.record_insert("shift_expenses", expense)
            if expense.counts_toward_drawer():
                self._adjust_drawer(expense, amount)

        logger.info(
            "expense_recorded",
            expense_id=str(expense.id),
            shift_id=str(shift_id),
            amount=str(amount),
            status=status.value,
        )
        return expense

    def _adjust_drawer(self, expense: ShiftExpense, amount: Decimal) -> None:
        drawer = self.ledger.for_shift(expense.staff_shift_id)
        if drawer is not None:
            self.ledger.add_expense(drawer, amount)

    def _transition(self, expense_id: uuid.UUID, new_status: ExpenseStatus, actor: str) -> ShiftExpense:
        with atomic(self.session):
            expense = self.session.get(ShiftExpense, expense_id)
            if expense is None:
                raise NotFound("Expense not found")
            if not expense.can_transition_to(new_status):
                raise StateConflict(
                    f"Cannot change expense from {expense.status.value} to {new_status.value}"
                )

            counted_before = expense.counts_toward_drawer()
            expense.status = new_status
            expense.approved_by = actor
            expense.approved_at = self.clock()
            expense.updated_at = expense.approved_at
            self.session.add(expense)
            self.sync.record_update("shift_expenses", expense)

            counted_after = expense.counts_toward_drawer()
            if counted_after and not counted_before:
                self._adjust_drawer(expense, expense.amount)
            elif counted_before and not counted_after:
                self._adjust_drawer(expense, -expense.amount)

        logger.info("expense_status_changed", expense_id=str(expense_id), status=new_status.value, actor=actor)
        return expense

    def approve_expense(self, expense_id: uuid.UUID, actor: str) -> ShiftExpense:
        return self._transition(expense_id, ExpenseStatus.APPROVED, actor)

    def reject_expense(self, expense_id: uuid.UUID, actor: str) -> ShiftExpense:
        return self._transition(expense_id, ExpenseStatus.REJECTED, actor)

    def list_expenses(self, shift_id: uuid.UUID) -> List[ShiftExpense]:
        statement = (
            select(ShiftExpense)
            .where(ShiftExpense.staff_shift_id == shift_id)
            .order_by(ShiftExpense.created_at)
        )
        return list(self.session.exec(statement).all())

    # Staff payments

    def resolve_recipient_shift(self, staff_id: str) -> Optional[Shift]:
        """Current shift of a staff member, else their most recent one"""
        statement = (
            select(Shift)
            .where(Shift.staff_id == staff_id)
            .order_by(
                case((Shift.status == ShiftStatus.ACTIVE, 0), else_=1),
                Shift.check_in_time.desc(),
            )
        )
        return self.session.exec(statement).first()

    def record_staff_payment(
        self,
        cashier_shift_id: uuid.UUID,
        paid_to_staff_id: str,
        amount: Number,
        payment_type: Union[StaffPaymentType, str] = StaffPaymentType.WAGE,
        notes: Optional[str] = None,
    ) -> StaffPayment:
        amount = require_positive(amount)
        payment_type = _parse(StaffPaymentType, payment_type, "payment type")
        if not paid_to_staff_id:
            raise ValidationError("paid_to_staff_id is required")

        with atomic(self.session):
            cashier_shift = self.session.get(Shift, cashier_shift_id)
            if (
                cashier_shift is None
                or cashier_shift.role != ShiftRole.CASHIER
                or not cashier_shift.is_active()
            ):
                raise CashierNotActive("Cashier shift is not active")
            drawer = self.ledger.for_shift(cashier_shift.id)
            if drawer is None or not drawer.is_open():
                raise CashierNotActive("Cashier shift has no open cash drawer")

            recipient_shift = self.resolve_recipient_shift(paid_to_staff_id)
            if recipient_shift is None:
                logger.warning(
                    "staff_payment_off_shift",
                    paid_to_staff_id=paid_to_staff_id,
                    cashier_shift_id=str(cashier_shift_id),
                )

            payment = StaffPayment(
                staff_shift_id=recipient_shift.id if recipient_shift else None,
                paid_to_staff_id=paid_to_staff_id,
                paid_by_cashier_shift_id=cashier_shift.id,
                amount=amount,
                payment_type=payment_type,
                notes=notes,
                created_at=self.clock(),
            )
            self.session.add(payment)
            self.sync.record_insert("staff_payments", payment)
            self.ledger.add_staff_payment(drawer, amount)

        logger.info(
            "staff_payment_recorded",
            payment_id=str(payment.id),
            paid_to_staff_id=paid_to_staff_id,
            amount=str(amount),
            payment_type=payment_type.value,
        )
        return payment

    def list_staff_payments(
        self,
        cashier_shift_id: Optional[uuid.UUID] = None,
        staff_id: Optional[str] = None,
    ) -> List[StaffPayment]:
        statement = select(StaffPayment).order_by(StaffPayment.created_at)
        if cashier_shift_id is not None:
            statement = statement.where(StaffPayment.paid_by_cashier_shift_id == cashier_shift_id)
        if staff_id is not None:
            statement = statement.where(StaffPayment.paid_to_staff_id == staff_id)
        return list(self.session.exec(statement).all())
