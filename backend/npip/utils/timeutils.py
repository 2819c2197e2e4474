"""
Time helpers
All persisted timestamps are naive UTC
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_key(moment: Optional[datetime] = None) -> str:
    """Calendar-month bucket key, e.g. 2026-10"""
    moment = moment or utcnow()
    return f"{moment.year:04d}-{moment.month:02d}"


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
