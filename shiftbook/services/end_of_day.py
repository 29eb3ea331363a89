"""
End-of-day finalizer

A precondition gate followed by the only destructive operation in the
core: purging a closed business day's operational rows in one transaction.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional

from sqlalchemy import delete, func, or_
from sqlmodel import Session, select
import structlog

from shiftbook.core.clock import Clock, day_bounds, end_of_day, utcnow
from shiftbook.core.config import Settings
from shiftbook.core.database import atomic
from shiftbook.core.errors import FinalizeCheck
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.driver_earning import DriverEarning
from shiftbook.models.expense import ShiftExpense
from shiftbook.models.order import Order, TERMINAL_ORDER_STATUSES
from shiftbook.models.shift import Shift, ShiftRole, ShiftStatus
from shiftbook.models.staff_payment import StaffPayment
from shiftbook.models.sync_queue import SyncQueueItem, SyncStatus
from shiftbook.models.table import RestaurantTable, TableStatus
from shiftbook.models.table_session import TableSession

logger = structlog.get_logger(__name__)

TRANSFERRED_DRIVERS_OPEN = (
    "There are transferred driver shifts that have not been checked out. "
    "Please ensure all drivers complete their shifts before running the Z report."
)
ACTIVE_SHIFTS_OPEN = (
    "There are active shifts. Please close all shifts (checkout) before running the Z report."
)
DRAWERS_OPEN = "All cashier checkouts must be executed (cash drawers still open)."
ORDERS_OPEN = (
    "There are open orders for the day. "
    "Please complete or cancel them before running the Z report."
)


@dataclass
class FinalizeResult:
    ok: bool
    reason: Optional[str] = None
    cleared: Dict[str, int] = field(default_factory=dict)


class EndOfDayFinalizer:

    def __init__(self, session: Session, settings: Settings, clock: Clock = utcnow):
        self.session = session
        self.settings = settings
        self.clock = clock

    def _exists(self, statement) -> bool:
        return self.session.exec(statement.limit(1)).first() is not None

    def can_finalize(self, day: date) -> FinalizeCheck:
        """Run the gate checks in order and report the first failure"""
        start, end = day_bounds(day)

        transferred_open = select(Shift.id).where(
            Shift.role == ShiftRole.DRIVER,
            Shift.status == ShiftStatus.ACTIVE,
            or_(
                Shift.transfer_pending.is_(True),
                Shift.transferred_to_cashier_shift_id.is_not(None),
            ),
        )
        if self._exists(transferred_open):
            return FinalizeCheck.blocked(TRANSFERRED_DRIVERS_OPEN)

        if self._exists(select(Shift.id).where(Shift.status == ShiftStatus.ACTIVE)):
            return FinalizeCheck.blocked(ACTIVE_SHIFTS_OPEN)

        open_drawers = select(CashDrawerSession.id).where(
            CashDrawerSession.opened_at >= start,
            CashDrawerSession.opened_at < end,
            CashDrawerSession.closed_at.is_(None),
        )
        if self._exists(open_drawers):
            return FinalizeCheck.blocked(DRAWERS_OPEN)

        open_orders = select(Order.id).where(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status.not_in(TERMINAL_ORDER_STATUSES),
        )
        if self._exists(open_orders):
            return FinalizeCheck.blocked(ORDERS_OPEN)

        return FinalizeCheck.passed()

    def finalize_day(self, day: date) -> FinalizeResult:
        """Purge every operational row dated on or before ``day``"""
        with atomic(self.session):
            check = self.can_finalize(day)
            if not check.ok:
                logger.info("finalize_blocked", date=day.isoformat(), reason=check.reason)
                return FinalizeResult(ok=False, reason=check.reason)

            cutoff = end_of_day(day)
            # Earlier days are never gated, so their unsettled orders go with the purge
            stale_open_orders = self.session.exec(
                select(func.count()).select_from(Order).where(
                    Order.created_at < day_bounds(day)[0],
                    Order.status.not_in(TERMINAL_ORDER_STATUSES),
                )
            ).one()
            if stale_open_orders:
                logger.warning(
                    "finalize_purging_open_orders",
                    date=day.isoformat(),
                    count=stale_open_orders,
                )

            sync_delete = delete(SyncQueueItem).where(SyncQueueItem.created_at < cutoff)
            if self.settings.PRESERVE_UNSYNCED_ON_FINALIZE:
                sync_delete = sync_delete.where(SyncQueueItem.status == SyncStatus.SYNCED)

            # Children before parents
            statements = [
                ("driver_earnings", delete(DriverEarning).where(DriverEarning.created_at < cutoff)),
                ("sync_queue", sync_delete),
                ("shift_expenses", delete(ShiftExpense).where(ShiftExpense.created_at < cutoff)),
                ("staff_payments", delete(StaffPayment).where(StaffPayment.created_at < cutoff)),
                ("cash_drawer_sessions", delete(CashDrawerSession).where(CashDrawerSession.opened_at < cutoff)),
                ("staff_shifts", delete(Shift).where(Shift.check_in_time < cutoff)),
                ("table_sessions", delete(TableSession).where(TableSession.seated_at < cutoff)),
                ("orders", delete(Order).where(Order.created_at < cutoff)),
            ]
            cleared = {}
            for table_name, statement in statements:
                result = self.session.execute(statement.execution_options(synchronize_session=False))
                cleared[table_name] = result.rowcount
            cleared["open_orders_purged"] = stale_open_orders

            now = self.clock()
            tables = self.session.exec(
                select(RestaurantTable).where(
                    or_(
                        RestaurantTable.status != TableStatus.AVAILABLE,
                        RestaurantTable.current_order_id.is_not(None),
                    )
                )
            ).all()
            for table in tables:
                table.release(now)
                self.session.add(table)
            cleared["restaurant_tables_reset"] = len(tables)

        self.session.expire_all()
        logger.info("day_finalized", date=day.isoformat(), cleared=cleared)
        return FinalizeResult(ok=True, cleared=cleared)
