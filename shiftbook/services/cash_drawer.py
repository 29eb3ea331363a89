"""
Cash drawer ledger

Incremental mutators against one drawer row. Each add runs as a single
``SET col = col + :amount`` statement and queues the updated snapshot.
Mutators never recompute variance and never commit; the calling command
owns the transaction.
"""

from decimal import Decimal
from typing import Optional
import uuid

from sqlalchemy import update
from sqlmodel import Session, select
import structlog

from shiftbook.core.clock import Clock, utcnow
from shiftbook.core.database import atomic
from shiftbook.core.errors import CashierNotActive, NotFound, StateConflict
from shiftbook.core.money import require_positive, to_money
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.shift import Shift, ShiftRole, ShiftStatus
from shiftbook.services.sync_queue import SyncQueue

logger = structlog.get_logger(__name__)

TABLE = "cash_drawer_sessions"


class CashDrawerLedger:
    """Running totals for cashier drawers"""

    def __init__(self, session: Session, sync: SyncQueue, clock: Clock = utcnow):
        self.session = session
        self.sync = sync
        self.clock = clock

    # Lookups

    def for_shift(self, shift_id: uuid.UUID) -> Optional[CashDrawerSession]:
        return self.session.exec(
            select(CashDrawerSession).where(CashDrawerSession.staff_shift_id == shift_id)
        ).first()

    def active_drawer(self, branch_id: str, terminal_id: str) -> Optional[CashDrawerSession]:
        """Open drawer of the active cashier on a branch/terminal"""
        statement = (
            select(CashDrawerSession)
            .join(Shift, Shift.id == CashDrawerSession.staff_shift_id)
            .where(
                CashDrawerSession.branch_id == branch_id,
                CashDrawerSession.terminal_id == terminal_id,
                CashDrawerSession.closed_at.is_(None),
                Shift.role == ShiftRole.CASHIER,
                Shift.status == ShiftStatus.ACTIVE,
            )
            .order_by(CashDrawerSession.opened_at.desc())
        )
        return self.session.exec(statement).first()

    # Lifecycle

    def open_for_shift(self, shift: Shift) -> CashDrawerSession:
        """Create the drawer for a freshly opened cashier shift"""
        if self.for_shift(shift.id) is not None:
            raise StateConflict("Cash drawer already exists for this shift")

        drawer = CashDrawerSession(
            staff_shift_id=shift.id,
            cashier_id=shift.staff_id,
            branch_id=shift.branch_id,
            terminal_id=shift.terminal_id,
            opened_at=shift.check_in_time,
            opening_amount=shift.opening_amount,
            updated_at=shift.check_in_time,
        )
        self.session.add(drawer)
        self.sync.record_insert(TABLE, drawer)
        logger.info(
            "cash_drawer_opened",
            drawer_id=str(drawer.id),
            shift_id=str(shift.id),
            opening_amount=str(drawer.opening_amount),
        )
        return drawer

    def apply_closing_totals(
        self,
        drawer: CashDrawerSession,
        cash_sales: Decimal,
        card_sales: Decimal,
        refunds: Decimal,
        expenses: Decimal,
    ) -> None:
        """Replace sales/refund/expense totals with figures re-derived at close"""
        drawer.total_cash_sales = cash_sales
        drawer.total_card_sales = card_sales
        drawer.total_refunds = refunds
        drawer.total_expenses = expenses
        self.session.add(drawer)

    def close(
        self,
        drawer: CashDrawerSession,
        closing_amount: Optional[Decimal],
        expected_amount: Optional[Decimal],
        variance_amount: Optional[Decimal],
    ) -> CashDrawerSession:
        try:
            drawer.close(closing_amount, expected_amount, variance_amount, self.clock())
        except ValueError as exc:
            raise StateConflict(str(exc)) from exc
        self.session.add(drawer)
        self.sync.record_update(TABLE, drawer)
        logger.info(
            "cash_drawer_closed",
            drawer_id=str(drawer.id),
            expected=str(expected_amount),
            variance=str(variance_amount),
        )
        return drawer

    # Incremental mutators

    def _add(self, drawer: CashDrawerSession, column: str, amount: Decimal) -> CashDrawerSession:
        amount = to_money(amount)
        attribute = getattr(CashDrawerSession, column)
        self.session.execute(
            update(CashDrawerSession)
            .where(CashDrawerSession.id == drawer.id)
            .values({attribute: attribute + amount, CashDrawerSession.updated_at: self.clock()})
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(drawer)
        self.sync.record_update(TABLE, drawer)
        logger.debug("cash_drawer_adjusted", drawer_id=str(drawer.id), column=column, amount=str(amount))
        return drawer

    def add_cash_given(self, drawer: CashDrawerSession, amount: Decimal) -> CashDrawerSession:
        return self._add(drawer, "driver_cash_given", amount)

    def add_cash_returned(self, drawer: CashDrawerSession, amount: Decimal) -> CashDrawerSession:
        return self._add(drawer, "driver_cash_returned", amount)

    def add_expense(self, drawer: CashDrawerSession, amount: Decimal) -> CashDrawerSession:
        return self._add(drawer, "total_expenses", amount)

    def add_staff_payment(self, drawer: CashDrawerSession, amount: Decimal) -> CashDrawerSession:
        return self._add(drawer, "total_staff_payments", amount)

    def add_cash_drop(self, drawer: CashDrawerSession, amount: Decimal) -> CashDrawerSession:
        return self._add(drawer, "cash_drops", amount)

    # Commands

    def _require_active_cashier_drawer(self, cashier_shift_id: uuid.UUID) -> CashDrawerSession:
        shift = self.session.get(Shift, cashier_shift_id)
        if shift is None or shift.role != ShiftRole.CASHIER or not shift.is_active():
            raise CashierNotActive("Cashier shift is not active")
        drawer = self.for_shift(shift.id)
        if drawer is None or not drawer.is_open():
            raise CashierNotActive("Cashier shift has no open cash drawer")
        return drawer

    def record_cash_drop(
        self,
        cashier_shift_id: uuid.UUID,
        amount: Decimal,
        reason: Optional[str] = None,
    ) -> CashDrawerSession:
        """Remove cash from an open drawer to the safe"""
        amount = require_positive(amount)
        with atomic(self.session):
            drawer = self._require_active_cashier_drawer(cashier_shift_id)
            self.add_cash_drop(drawer, amount)
        logger.info(
            "cash_drop_recorded",
            shift_id=str(cashier_shift_id),
            amount=str(amount),
            reason=reason,
        )
        return drawer

    def reconcile_drawer(
        self,
        cashier_shift_id: uuid.UUID,
        reconciled_by: str,
        notes: Optional[str] = None,
    ) -> CashDrawerSession:
        with atomic(self.session):
            drawer = self.for_shift(cashier_shift_id)
            if drawer is None:
                raise NotFound("Cash drawer not found")
            try:
                drawer.reconcile(reconciled_by, notes, self.clock())
            except ValueError as exc:
                raise StateConflict(str(exc)) from exc
            self.session.add(drawer)
            self.sync.record_update(TABLE, drawer)
        logger.info("cash_drawer_reconciled", drawer_id=str(drawer.id), reconciled_by=reconciled_by)
        return drawer
