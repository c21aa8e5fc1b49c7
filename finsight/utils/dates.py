"""
Date/time helpers

All timestamps are stored as naive UTC datetimes.
"""
from datetime import datetime, date, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (storage format)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime | date | None) -> str | None:
    """Serialize to ISO-8601; datetimes get a trailing Z"""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat() + "Z"
    return value.isoformat()


def parse_date(value: str) -> date:
    """
    Parse a date from 'YYYY-MM-DD' or a full ISO timestamp

    Raises:
        ValueError: unparseable input
    """
    value = value.strip()
    if len(value) == 10:
        return date.fromisoformat(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value).date()
