"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Convert to aware UTC; naive values are taken to already be UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def window_start(as_of: datetime, days: int) -> datetime:
    """Lower bound of a trailing window ending at as_of (inclusive)"""
    return ensure_utc(as_of) - timedelta(days=days)


def calendar_day(value: datetime) -> date:
    """UTC calendar date a timestamp falls on"""
    return ensure_utc(value).date()
