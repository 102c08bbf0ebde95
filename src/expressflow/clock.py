# =============================================================================
# FILE: src/expressflow/clock.py
# Wall-clock access, kept in one place so callers can pass a fixed `now`
# =============================================================================

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    return now if now is not None else utcnow()


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
