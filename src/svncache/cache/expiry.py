"""TTL helpers for cache entries.

Timestamps are stored as ISO-8601 strings in UTC. Values written without a
timezone are interpreted as UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

Timestamp = Union[str, datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Timestamp) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: ISO string or datetime

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the string is not a valid ISO timestamp
        TypeError: If value is neither a string nor a datetime
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        raise TypeError(f"Expected ISO timestamp string, got {type(value).__name__}")

    # Handle timezone-naive datetimes
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string."""
    return parse_timestamp(value).astimezone(timezone.utc).isoformat()


def get_age(last_access: Timestamp, now: Optional[datetime] = None) -> timedelta:
    """Get time elapsed since last access."""
    now = parse_timestamp(now) if now is not None else utcnow()
    return now - parse_timestamp(last_access)


def is_expired(
    last_access: Timestamp,
    ttl_days: Optional[float],
    now: Optional[datetime] = None,
) -> bool:
    """Check if a cache entry has been idle longer than its TTL.

    Args:
        last_access: Timestamp of last access
        ttl_days: Time-to-live in days (None means never expire)
        now: Reference time, defaults to the current time

    Returns:
        True if the idle time strictly exceeds the TTL
    """
    if ttl_days is None:
        return False
    return get_age(last_access, now) > timedelta(days=ttl_days)


def get_ttl_remaining(
    last_access: Timestamp,
    ttl_days: Optional[float],
    now: Optional[datetime] = None,
) -> Optional[timedelta]:
    """Get remaining time until an entry becomes eligible for eviction.

    Args:
        last_access: Timestamp of last access
        ttl_days: Time-to-live in days

    Returns:
        Remaining time (never negative), or None if the entry never expires
    """
    if ttl_days is None:
        return None

    remaining = timedelta(days=ttl_days) - get_age(last_access, now)
    return max(timedelta(0), remaining)
