"""
Time helpers shared by the identity services.

MongoDB stores datetimes with millisecond precision and, unless the client
is created with ``tz_aware=True``, returns them naive. Anything that feeds a
hash must survive that round trip unchanged.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_to_milliseconds(value: datetime) -> datetime:
    """Drop sub-millisecond precision so the value matches what MongoDB stores."""
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_epoch_milliseconds(value: datetime) -> int:
    """Milliseconds since the Unix epoch, naive values read as UTC."""
    value = as_utc(value)
    delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
