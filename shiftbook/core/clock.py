"""
Time helpers

Timestamps are stored as naive UTC. Business dates are derived from them.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Tuple

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open [start, end) interval covering one calendar day"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def end_of_day(day: date) -> datetime:
    """Exclusive upper bound for records dated on or before ``day``"""
    return day_bounds(day)[1]
