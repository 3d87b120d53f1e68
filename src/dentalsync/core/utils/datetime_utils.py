"""
Date and time utility functions for DentalSync.
"""

from datetime import date, datetime, timezone
from typing import Optional


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def get_current_date() -> date:
    """Get today's date in UTC."""
    return get_current_timestamp().date()


def ensure_aware(timestamp: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by some drivers) as UTC."""
    if timestamp is None:
        return None
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def milliseconds_to_seconds(value_ms: int) -> float:
    """Convert a configured millisecond interval to asyncio seconds."""
    return value_ms / 1000.0
