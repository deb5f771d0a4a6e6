"""
Time utilities for Arbscout.

Internally every timestamp is a float of epoch seconds (what the clocks
injected into the cache and active set return). These helpers convert them
for display and logs.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz

DAY_SECONDS = 86400


def now_utc() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def from_epoch(ts: float) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def to_local(dt: datetime, tz_name: str = "UTC") -> datetime:
    """Convert datetime to the given timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(pytz.timezone(tz_name))


def format_timestamp(dt: Optional[datetime] = None, fmt: str = "iso") -> str:
    """
    Format datetime to string.

    Args:
        dt: Datetime to format. Uses current UTC time if not provided.
        fmt: Format type - 'iso', 'display', 'date', 'time'

    Returns:
        Formatted string
    """
    if dt is None:
        dt = now_utc()

    formats = {
        "iso": "%Y-%m-%dT%H:%M:%SZ",
        "display": "%Y-%m-%d %H:%M:%S",
        "date": "%Y-%m-%d",
        "time": "%H:%M:%S",
    }

    return dt.strftime(formats.get(fmt, fmt))


def format_epoch(ts: float, fmt: str = "iso", tz_name: str = "UTC") -> str:
    """Format epoch seconds, optionally in a display timezone."""
    dt = from_epoch(ts)
    if tz_name != "UTC":
        dt = to_local(dt, tz_name)
    return format_timestamp(dt, fmt)


def days(n: float) -> float:
    """Length of n days in seconds."""
    return timedelta(days=n).total_seconds()


def format_duration(seconds: float) -> str:
    """Human-readable duration, e.g. 90 -> '1m30s'."""
    seconds = int(max(seconds, 0))
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"
