"""
Driver transfer coordinator

Moves cash liability for active drivers between cashiers without making
the driver check out. A driver shift is in one of three states:

    ATTACHED  transfer_pending=False, transferred_to_cashier_shift_id=None
    PENDING   transfer_pending=True,  transferred_to_cashier_shift_id=None
    CLAIMED   transfer_pending=False, transferred_to_cashier_shift_id=<id>

ATTACHED/CLAIMED -> PENDING when the governing cashier leaves, and
PENDING -> CLAIMED when the next cashier opens on the same branch/terminal.
Either way the driver's opening float moves with the liability, so the sum
of driver_cash_given across drawers is conserved.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
import uuid

from sqlalchemy import update
from sqlmodel import Session, select
import structlog

from shiftbook.core.cache import KeyedCache
from shiftbook.core.clock import Clock, utcnow
from shiftbook.core.config import Settings
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.driver_earning import DriverEarning
from shiftbook.models.shift import Shift, ShiftRole, ShiftStatus, TransferState
from shiftbook.services.cash_drawer import CashDrawerLedger
from shiftbook.services.sync_queue import SyncQueue

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ActiveDriver:
    """Detached snapshot of an active driver shift"""

    shift_id: uuid.UUID
    staff_id: str
    staff_name: Optional[str]
    opening_amount: Decimal
    transfer_state: TransferState
    transferred_to_cashier_shift_id: Optional[uuid.UUID]
    check_in_time: datetime

    @classmethod
    def from_shift(cls, shift: Shift) -> "ActiveDriver":
        return cls(
            shift_id=shift.id,
            staff_id=shift.staff_id,
            staff_name=shift.staff_name,
            opening_amount=shift.opening_amount,
            transfer_state=shift.transfer_state,
            transferred_to_cashier_shift_id=shift.transferred_to_cashier_shift_id,
            check_in_time=shift.check_in_time,
        )


DriverListCache = KeyedCache[List[ActiveDriver]]


class DriverTransferCoordinator:
    """Hand-off state machine for driver shifts"""

    def __init__(
        self,
        session: Session,
        ledger: CashDrawerLedger,
        sync: SyncQueue,
        settings: Settings,
        clock: Clock = utcnow,
        cache: Optional[DriverListCache] = None,
    ):
        self.session = session
        self.ledger = ledger
        self.sync = sync
        self.settings = settings
        self.clock = clock
        self.cache = cache if cache is not None else DriverListCache()

    def _active_drivers_query(self, branch_id: str, terminal_id: str):
        return (
            select(Shift)
            .where(
                Shift.role == ShiftRole.DRIVER,
                Shift.status == ShiftStatus.ACTIVE,
                Shift.branch_id == branch_id,
                Shift.terminal_id == terminal_id,
            )
            .order_by(Shift.check_in_time)
        )

    def transfer_active_driver_shifts(
        self,
        cashier_shift: Shift,
        drawer: Optional[CashDrawerSession],
    ) -> List[Shift]:
        """ATTACHED/CLAIMED -> PENDING for every active driver on the cashier's terminal.

        Each driver's opening float leaves the outgoing drawer's
        driver_cash_given and their earnings so far are flagged transferred.
        """
        statement = self._active_drivers_query(
            cashier_shift.branch_id, cashier_shift.terminal_id
        ).where(Shift.transfer_pending.is_(False))
        drivers = list(self.session.exec(statement).all())

        for driver in drivers:
            driver.mark_pending_transfer()
            driver.updated_at = self.clock()
            self.session.add(driver)

            if drawer is not None and driver.opening_amount > 0:
                self.ledger.add_cash_given(drawer, -driver.opening_amount)

            self._flag_earnings_transferred(driver.id)
            self.sync.record_update("staff_shifts", driver)

        if drivers:
            self.invalidate(cashier_shift.branch_id, cashier_shift.terminal_id)
            logger.info(
                "drivers_transferred_to_pending",
                cashier_shift_id=str(cashier_shift.id),
                driver_shift_ids=[str(driver.id) for driver in drivers],
            )
        return drivers

    def _flag_earnings_transferred(self, driver_shift_id: uuid.UUID) -> None:
        self.session.execute(
            update(DriverEarning)
            .where(
                DriverEarning.staff_shift_id == driver_shift_id,
                DriverEarning.is_transferred.is_(False),
            )
            .values(is_transferred=True, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        earnings = self.session.exec(
            select(DriverEarning).where(DriverEarning.staff_shift_id == driver_shift_id)
        ).all()
        for earning in earnings:
            self.session.refresh(earning)
            self.sync.record_update("driver_earnings", earning)

    def claim_pending_drivers(
        self,
        cashier_shift: Shift,
        drawer: CashDrawerSession,
    ) -> List[Shift]:
        """PENDING -> CLAIMED for every pending driver on the new cashier's terminal"""
        statement = self._active_drivers_query(
            cashier_shift.branch_id, cashier_shift.terminal_id
        ).where(Shift.transfer_pending.is_(True))
        drivers = list(self.session.exec(statement).all())

        for driver in drivers:
            driver.claim_by(cashier_shift.id)
            driver.updated_at = self.clock()
            self.session.add(driver)

            if driver.opening_amount > 0:
                self.ledger.add_cash_given(drawer, driver.opening_amount)

            self.sync.record_update("staff_shifts", driver)

        if drivers:
            self.invalidate(cashier_shift.branch_id, cashier_shift.terminal_id)
            logger.info(
                "pending_drivers_claimed",
                cashier_shift_id=str(cashier_shift.id),
                driver_shift_ids=[str(driver.id) for driver in drivers],
            )
        return drivers

    def claimed_by(self, cashier_shift_id: uuid.UUID) -> List[Shift]:
        """Active drivers currently inherited by a cashier shift"""
        statement = (
            select(Shift)
            .where(
                Shift.role == ShiftRole.DRIVER,
                Shift.status == ShiftStatus.ACTIVE,
                Shift.transferred_to_cashier_shift_id == cashier_shift_id,
            )
            .order_by(Shift.check_in_time)
        )
        return list(self.session.exec(statement).all())

    # Active driver list

    def list_active_drivers(self, branch_id: str, terminal_id: str) -> List[ActiveDriver]:
        key: Tuple[str, str] = (branch_id, terminal_id)
        now = self.clock()
        ttl = timedelta(seconds=self.settings.DRIVER_CACHE_TTL_SECONDS)

        cached = self.cache.get(key)
        if cached is not None and cached.is_fresh(now, ttl):
            return cached.data

        drivers = [
            ActiveDriver.from_shift(shift)
            for shift in self.session.exec(self._active_drivers_query(branch_id, terminal_id)).all()
        ]
        self.cache.put(key, drivers, now)
        return drivers

    def invalidate(self, branch_id: str, terminal_id: str) -> None:
        self.cache.invalidate((branch_id, terminal_id))
