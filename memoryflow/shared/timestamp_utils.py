"""
Timestamp utilities for consistent time handling across the system.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: ISO-8601 string (a trailing ``Z`` is accepted) or datetime

    Returns:
        Aware UTC datetime, or None when the value is missing or unparseable
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def years_before(moment: datetime, years: int) -> datetime:
    """Same calendar day ``years`` earlier (Feb 29 falls back to Feb 28)."""
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        return moment.replace(year=moment.year - years, day=28)


def to_iso(moment: datetime) -> str:
    """Format a datetime as an ISO-8601 string with a ``Z`` suffix for UTC."""
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
