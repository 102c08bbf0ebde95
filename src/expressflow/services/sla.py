# =============================================================================
# FILE: src/expressflow/services/sla.py
# SLA clock: elapsed hours since receipt and the overdue flag
# =============================================================================

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from pydantic import BaseModel

from expressflow.clock import as_utc, resolve_now
from expressflow.config import settings

HOUR = timedelta(hours=1)


class SLAStatus(BaseModel):
    hours_elapsed: float
    is_overdue: bool


def elapsed_hours(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)) / HOUR


def calculate_sla(
    created_date: datetime,
    now: Optional[datetime] = None,
    threshold_hours: Optional[float] = None,
) -> SLAStatus:
    """
    Elapsed hours since the quote was received.

    No business-calendar adjustment is applied. The overdue flag compares
    the unrounded elapsed time with the threshold.
    """
    threshold = settings.SLA_THRESHOLD_HOURS if threshold_hours is None else threshold_hours
    diff_hours = elapsed_hours(created_date, resolve_now(now))
    return SLAStatus(
        hours_elapsed=round(diff_hours, 1),
        is_overdue=diff_hours > threshold,
    )


def business_month_range(today: Optional[date] = None) -> Tuple[date, date]:
    """
    First and last business day of the month containing `today`.

    A 1st on Saturday or Sunday moves to the following Monday; a last day on
    Saturday or Sunday moves back to the preceding Friday.
    """
    if today is None:
        today = resolve_now().date()

    first = today.replace(day=1)
    if first.weekday() == 5:
        first += timedelta(days=2)
    elif first.weekday() == 6:
        first += timedelta(days=1)

    last = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    if last.weekday() == 5:
        last -= timedelta(days=1)
    elif last.weekday() == 6:
        last -= timedelta(days=2)

    return first, last


def format_duration(
    start: Optional[datetime],
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> str:
    """Stage duration as 'Xh Ym'. An open stage runs until now."""
    if not start:
        return "-"
    start = as_utc(start)
    end = as_utc(end) if end else resolve_now(now)
    if end < start:
        return "0h 0m"
    total_mins = int((end - start).total_seconds() // 60)
    return f"{total_mins // 60}h {total_mins % 60}m"
