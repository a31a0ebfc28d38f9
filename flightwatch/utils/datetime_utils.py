"""
UTC datetime helpers.

The database stores naive UTC; everything in memory is timezone-aware UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_aware_utc(value: datetime) -> datetime:
    """Attach UTC to naive values, convert aware ones"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return as_aware_utc(value).replace(tzinfo=None)


def parse_iso_datetime(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts datetimes as-is, a trailing "Z", and naive strings (read as UTC).
    Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_aware_utc(value)
    if not isinstance(value, str):
        return None

    ts_value = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(ts_value)
    except ValueError:
        return None
    return as_aware_utc(parsed)
