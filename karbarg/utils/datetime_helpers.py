"""Datetime utility functions for timezone handling."""
from datetime import datetime, timedelta, UTC
from typing import Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware in UTC.

    SQLite hands datetimes back timezone-naive even though they were written
    as UTC, so every comparison against ``utc_now()`` goes through here.

    Example:
        >>> naive_dt = datetime(2025, 1, 1, 12, 0, 0)
        >>> ensure_utc(naive_dt).tzinfo == UTC
        True

        >>> ensure_utc(None) is None
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def window_start(days: Optional[int], now: Optional[datetime] = None) -> Optional[datetime]:
    """Return the start of a trailing window of ``days`` days, or None for all-time."""
    if days is None:
        return None
    if days < 0:
        raise ValueError(f"days must be >= 0, got {days}")
    return (ensure_utc(now) or utc_now()) - timedelta(days=days)


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """Return midnight UTC of the day containing ``now``."""
    now = ensure_utc(now) or utc_now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
