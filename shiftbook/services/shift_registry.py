"""
Shift registry

Opens, closes and abandons shifts. Each command is one transaction that
also drives the drawer ledger, the driver transfer coordinator and the
variance calculator; any failure leaves nothing behind.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Union
import uuid

from sqlmodel import Session, select
import structlog

from shiftbook.core.clock import Clock, day_bounds, utcnow
from shiftbook.core.config import Settings
from shiftbook.core.database import atomic
from shiftbook.core.errors import (
    AlreadyActive, NoActiveCashier, NotFound, ShiftNotActive, ValidationError
)
from shiftbook.core.money import ZERO, Number, require_non_negative
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.shift import Shift, ShiftRole, ShiftStatus
from shiftbook.services.cash_drawer import CashDrawerLedger
from shiftbook.services.driver_transfer import DriverTransferCoordinator
from shiftbook.services.sync_queue import SyncQueue
from shiftbook.services.variance import VarianceCalculator, VarianceResult

logger = structlog.get_logger(__name__)

TABLE = "staff_shifts"

# Roles that may be paid their wage out of the drawer at check-out
PAYABLE_ROLES = (ShiftRole.DRIVER, ShiftRole.SERVER)


@dataclass
class CloseResult:
    shift: Shift
    result: VarianceResult
    drawer: Optional[CashDrawerSession] = None
    transferred_drivers: List[Shift] = field(default_factory=list)
    returned_to_drawer: Optional[CashDrawerSession] = None


def parse_role(role: Union[ShiftRole, str]) -> ShiftRole:
    try:
        return ShiftRole(role)
    except ValueError as exc:
        raise ValidationError(f"Invalid role: {role}") from exc


class ShiftRegistry:
    """CRUD and state transitions for shifts"""

    def __init__(
        self,
        session: Session,
        ledger: CashDrawerLedger,
        transfers: DriverTransferCoordinator,
        variance: VarianceCalculator,
        sync: SyncQueue,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.ledger = ledger
        self.transfers = transfers
        self.variance = variance
        self.sync = sync
        self.settings = settings
        self.clock = clock

    # Queries

    def get_shift(self, shift_id: uuid.UUID) -> Shift:
        shift = self.session.get(Shift, shift_id)
        if shift is None:
            raise NotFound("Shift not found")
        return shift

    def get_active_shift(self, staff_id: str) -> Optional[Shift]:
        statement = (
            select(Shift)
            .where(Shift.staff_id == staff_id, Shift.status == ShiftStatus.ACTIVE)
            .order_by(Shift.check_in_time.desc())
        )
        return self.session.exec(statement).first()

    def _cashier_checked_in_on(self, branch_id: str, terminal_id: str, day: date) -> bool:
        start, end = day_bounds(day)
        statement = select(Shift.id).where(
            Shift.role == ShiftRole.CASHIER,
            Shift.branch_id == branch_id,
            Shift.terminal_id == terminal_id,
            Shift.check_in_time >= start,
            Shift.check_in_time < end,
        )
        return self.session.exec(statement).first() is not None

    # Commands

    def open_shift(
        self,
        staff_id: str,
        branch_id: str,
        terminal_id: str,
        role: Union[ShiftRole, str],
        opening_amount: Optional[Number] = None,
        staff_name: Optional[str] = None,
        opened_by: Optional[str] = None,
    ) -> Shift:
        """Check a staff member in.

        A cashier gets a drawer and inherits any drivers left pending on the
        terminal. A driver taking a float needs an active cashier drawer to
        take it from.
        """
        if not staff_id or not branch_id or not terminal_id:
            raise ValidationError("staff_id, branch_id and terminal_id are required")
        role = parse_role(role)
        opening = require_non_negative(opening_amount, "opening_amount")

        with atomic(self.session):
            if self.get_active_shift(staff_id) is not None:
                raise AlreadyActive("Staff member already has an active shift")

            now = self.clock()
            shift = Shift(
                staff_id=staff_id,
                staff_name=staff_name,
                branch_id=branch_id,
                terminal_id=terminal_id,
                role=role,
                status=ShiftStatus.ACTIVE,
                check_in_time=now,
                opening_amount=opening,
                opened_by=opened_by or staff_id,
                updated_at=now,
            )
            if role == ShiftRole.CASHIER:
                shift.is_day_start = not self._cashier_checked_in_on(
                    branch_id, terminal_id, now.date()
                )

            self.session.add(shift)
            self.sync.record_insert(TABLE, shift)

            if role == ShiftRole.CASHIER:
                drawer = self.ledger.open_for_shift(shift)
                self.transfers.claim_pending_drivers(shift, drawer)
            elif role == ShiftRole.DRIVER:
                if opening > ZERO:
                    drawer = self.ledger.active_drawer(branch_id, terminal_id)
                    if drawer is None:
                        raise NoActiveCashier(
                            "No active cashier found on this terminal to give the driver starting cash"
                        )
                    self.ledger.add_cash_given(drawer, opening)
                self.transfers.invalidate(branch_id, terminal_id)

        logger.info(
            "shift_opened",
            shift_id=str(shift.id),
            staff_id=staff_id,
            role=role.value,
            branch_id=branch_id,
            terminal_id=terminal_id,
            is_day_start=shift.is_day_start,
        )
        return shift

    def close_shift(
        self,
        shift_id: uuid.UUID,
        closing_cash: Number,
        closed_by: str,
        payment_amount: Optional[Number] = None,
    ) -> CloseResult:
        """Check a staff member out and compute their variance"""
        closing = require_non_negative(closing_cash, "closing_cash")
        payment = require_non_negative(payment_amount, "payment_amount")

        with atomic(self.session):
            shift = self.get_shift(shift_id)
            if not shift.is_active():
                raise ShiftNotActive(f"Shift is already {shift.status.value}")
            if payment > ZERO and shift.role not in PAYABLE_ROLES:
                raise ValidationError("payment_amount only applies to driver and server shifts")

            drawer = None
            transferred: List[Shift] = []
            if shift.role == ShiftRole.CASHIER:
                drawer = self.ledger.for_shift(shift.id)
                transferred = self.transfers.transfer_active_driver_shifts(shift, drawer)

            if shift.role == ShiftRole.DRIVER:
                result = self.variance.driver_result(
                    closing, self.variance.driver_totals(shift, payment)
                )
            else:
                totals = self.variance.cashier_totals(shift, drawer)
                result = self.variance.cashier_result(closing, totals)

            shift.closing_amount = result.closing
            shift.expected_amount = result.expected
            shift.variance = result.variance
            if shift.role in PAYABLE_ROLES:
                shift.payment_amount = payment
            shift.end_shift(self.clock(), closed_by)
            self.session.add(shift)
            self.sync.record_update(TABLE, shift)

            if drawer is not None:
                self.ledger.apply_closing_totals(
                    drawer,
                    cash_sales=totals.cash_sales,
                    card_sales=totals.card_sales,
                    refunds=totals.cash_refunds,
                    expenses=totals.approved_expenses,
                )
                self.ledger.close(drawer, result.closing, result.expected, result.variance)

            returned_to = None
            if shift.role == ShiftRole.DRIVER:
                returned_to = self._return_driver_cash(shift, result.expected, payment)

        logger.info(
            "shift_closed",
            shift_id=str(shift.id),
            role=shift.role.value,
            expected=str(result.expected),
            variance=str(result.variance),
            transferred_drivers=len(transferred),
        )
        return CloseResult(
            shift=shift,
            result=result,
            drawer=drawer,
            transferred_drivers=transferred,
            returned_to_drawer=returned_to,
        )

    def _return_driver_cash(
        self,
        shift: Shift,
        expected_return: Decimal,
        payment: Decimal,
    ) -> Optional[CashDrawerSession]:
        """Book a closing driver's cash and wage on the terminal's active drawer"""
        self.transfers.invalidate(shift.branch_id, shift.terminal_id)
        drawer = self.ledger.active_drawer(shift.branch_id, shift.terminal_id)
        if drawer is None:
            logger.warning(
                "driver_closed_without_active_cashier",
                shift_id=str(shift.id),
                branch_id=shift.branch_id,
                terminal_id=shift.terminal_id,
                expected_return=str(expected_return),
            )
            return None

        self.ledger.add_cash_returned(drawer, expected_return)
        if payment > ZERO:
            self.ledger.add_staff_payment(drawer, payment)
        return drawer

    def abandon_shift(
        self,
        shift_id: uuid.UUID,
        closed_by: str,
        reason: Optional[str] = None,
    ) -> Shift:
        """End an active shift without a cash count.

        An abandoned cashier still hands its drivers off, and its drawer is
        stamped closed with no expected or variance figures.
        """
        with atomic(self.session):
            shift = self.get_shift(shift_id)
            if not shift.is_active():
                raise ShiftNotActive(f"Shift is already {shift.status.value}")

            if shift.role == ShiftRole.CASHIER:
                drawer = self.ledger.for_shift(shift.id)
                self.transfers.transfer_active_driver_shifts(shift, drawer)
                if drawer is not None:
                    self.ledger.close(drawer, None, None, None)
            elif shift.role == ShiftRole.DRIVER:
                self.transfers.invalidate(shift.branch_id, shift.terminal_id)

            shift.end_shift(self.clock(), closed_by, status=ShiftStatus.ABANDONED)
            if reason:
                shift.notes = reason
            self.session.add(shift)
            self.sync.record_update(TABLE, shift)

        logger.warning("shift_abandoned", shift_id=str(shift.id), role=shift.role.value, reason=reason)
        return shift
