"""
Time Utilities

The database holds naive UTC timestamps; DTOs and API responses carry
UTC-aware datetimes or Unix epoch numbers (OpenAI `created`, generated ids).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_naive() -> datetime:
    """Current UTC time as stored in the database"""
    return utc_now().replace(tzinfo=None)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach or convert to UTC

    Naive values come from the database and are already UTC.
    """
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def to_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


def unix_seconds(dt: datetime) -> int:
    """Unix timestamp of a datetime, naive values read as UTC"""
    return int(ensure_utc(dt).timestamp())


def epoch_millis() -> int:
    return int(utc_now().timestamp() * 1000)
