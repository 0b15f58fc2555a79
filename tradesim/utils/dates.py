"""
TradeSim - Date Helpers

All timestamps are stored as naive UTC datetimes.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    """Current UTC calendar day."""
    return utc_now().date()


def start_of_day(day: date) -> datetime:
    """Midnight at the start of ``day``."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Last representable instant of ``day``."""
    return datetime.combine(day, time.max)


def each_day(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
