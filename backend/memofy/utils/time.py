"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone
from typing import Optional
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime, truncated to milliseconds (MongoDB precision)"""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_iso(dt: Optional[datetime]) -> Optional[str]:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object (naive values are treated as UTC)

    Returns:
        ISO formatted string with Z suffix for UTC, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    dt = date_parser.isoparse(iso_string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the naive UTC datetime MongoDB stores and compares"""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def from_storage(dt: Optional[datetime]) -> Optional[datetime]:
    """Re-attach UTC to a datetime read back from MongoDB"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def seconds_until(dt: datetime, now: datetime) -> int:
    """Whole seconds from now until dt, never negative"""
    delta = (from_storage(dt) - from_storage(now)).total_seconds()
    return int(max(0, delta))


def format_duration(seconds: int) -> str:
    """
    Format a duration in seconds to a human readable string

    Examples:
        >>> format_duration(110)
        '1m 50s'
        >>> format_duration(45)
        '45s'
    """
    if seconds < 0:
        return f"-{format_duration(-seconds)}"

    minutes, remaining = divmod(seconds, 60)
    if minutes == 0:
        return f"{remaining}s"
    if remaining == 0:
        return f"{minutes}m"
    return f"{minutes}m {remaining}s"
