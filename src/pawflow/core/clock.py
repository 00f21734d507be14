"""
Time Helpers
============

All engine timestamps are timezone-aware UTC. SQLite hands datetimes back
without tzinfo, so values read from the store pass through ``as_utc``.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def older_than_cutoff(now: datetime, minutes: int) -> datetime:
    """
    Latest timestamp whose age exceeds ``minutes`` whole minutes.

    Ages are counted in whole elapsed minutes, so an age "exceeds 60" only
    once 61 full minutes have passed: ``ts <= now - 61min``.
    """
    return now - timedelta(minutes=minutes + 1)
