"""
Service wiring

Builds one set of services around a session. Dependencies are passed
explicitly; the only state shared across sets is the driver list cache,
which its owner hands in.
"""

from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session

from shiftbook.core.clock import Clock, utcnow
from shiftbook.core.config import Settings, get_settings
from shiftbook.services.cash_drawer import CashDrawerLedger
from shiftbook.services.driver_earnings import DriverEarningLedger
from shiftbook.services.driver_transfer import DriverListCache, DriverTransferCoordinator
from shiftbook.services.end_of_day import EndOfDayFinalizer
from shiftbook.services.expenses import ExpenseLedger
from shiftbook.services.reports import DailyReportGenerator
from shiftbook.services.shift_registry import ShiftRegistry
from shiftbook.services.summary import ShiftSummaryBuilder
from shiftbook.services.sync_queue import SyncQueue
from shiftbook.services.variance import VarianceCalculator


@dataclass
class Services:
    sync: SyncQueue
    drawers: CashDrawerLedger
    transfers: DriverTransferCoordinator
    variance: VarianceCalculator
    shifts: ShiftRegistry
    expenses: ExpenseLedger
    earnings: DriverEarningLedger
    summaries: ShiftSummaryBuilder
    reports: DailyReportGenerator
    end_of_day: EndOfDayFinalizer


def build_services(
    session: Session,
    settings: Optional[Settings] = None,
    clock: Clock = utcnow,
    driver_cache: Optional[DriverListCache] = None,
) -> Services:
    settings = settings or get_settings()
    sync = SyncQueue(session, settings, clock)
    drawers = CashDrawerLedger(session, sync, clock)
    transfers = DriverTransferCoordinator(session, drawers, sync, settings, clock, driver_cache)
    variance = VarianceCalculator(session)
    shifts = ShiftRegistry(session, drawers, transfers, variance, sync, settings, clock)
    expenses = ExpenseLedger(session, drawers, sync, settings, clock)
    earnings = DriverEarningLedger(session, sync, clock)
    return Services(
        sync=sync,
        drawers=drawers,
        transfers=transfers,
        variance=variance,
        shifts=shifts,
        expenses=expenses,
        earnings=earnings,
        summaries=ShiftSummaryBuilder(session, shifts, expenses, earnings, transfers),
        reports=DailyReportGenerator(session, clock),
        end_of_day=EndOfDayFinalizer(session, settings, clock),
    )
