"""
storefront/utils/time_utils.py

Purpose: Time and expiry helpers

- ISO-8601 timestamps as stored on documents
- Reset token expiry checks
- Sort keys for optional timestamps
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """
    Formats a datetime the way documents store it.
    Fixed millisecond precision keeps stored strings comparable as text.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def utc_now_iso() -> str:
    return to_iso(utc_now())


def iso_in(hours: int = 0, minutes: int = 0) -> str:
    """
    Timestamp `hours`/`minutes` from now, e.g. a reset token expiry.
    """
    return to_iso(utc_now() + timedelta(hours=hours, minutes=minutes))


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """
    Parses a stored timestamp. Returns None for missing or malformed values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def timestamp_sort_key(value: Optional[str]) -> float:
    """
    Epoch seconds for sorting; missing timestamps sort as the epoch.
    """
    parsed = parse_iso(value)
    return parsed.timestamp() if parsed else 0.0


def from_unix(seconds: Optional[int]) -> Optional[str]:
    """Converts a Stripe unix timestamp to an ISO string."""
    if seconds is None:
        return None
    return to_iso(datetime.fromtimestamp(seconds, tz=timezone.utc))
