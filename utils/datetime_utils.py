"""
DateTime helpers. Everything the token engine stores or compares is UTC.
"""
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware UTC.
    SQLite hands back naive datetimes for DateTime(timezone=True) columns,
    so naive values are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_timestamp(value) -> datetime:
    """Convert a JWT NumericDate (seconds since epoch) to a UTC datetime."""
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
