"""Datetime utilities for consistent timestamp handling."""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime_utc(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a datetime string and ensure it's timezone-aware (UTC).

    Accepts ISO 8601 strings as well as SQLite ``datetime('now')`` output
    (``YYYY-MM-DD HH:MM:SS``). Naive values are interpreted as UTC.

    Args:
        value: datetime, string, or None

    Returns:
        Timezone-aware datetime in UTC, or None if input is empty

    Raises:
        ValueError: If the string is not a recognizable timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def hours_between(earlier: datetime, later: datetime) -> float:
    """Signed number of hours from ``earlier`` to ``later``."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 3600.0
