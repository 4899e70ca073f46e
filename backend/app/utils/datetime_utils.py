"""Utility functions for datetime handling."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_start(now: datetime | None = None) -> datetime:
    """Midnight on the first day of the calendar month containing ``now``."""
    current = now or utc_now()
    return current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
