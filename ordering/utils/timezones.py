# ordering/utils/timezones.py
from datetime import datetime
from zoneinfo import ZoneInfo
from typing import Optional

from ordering.core.config import DEFAULT_TIMEZONE

UTC = ZoneInfo("UTC")


def utcnow() -> datetime:
    """Naive UTC, matching how DateTime columns are stored."""
    return datetime.utcnow()


def to_local(naive_utc: datetime, tz_name: Optional[str] = None) -> datetime:
    tz = ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    return naive_utc.replace(tzinfo=UTC).astimezone(tz)


def sunday_based_weekday(d: datetime) -> int:
    """0=Sunday .. 6=Saturday (datetime.weekday() is Monday=0)."""
    return (d.weekday() + 1) % 7


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
