"""Date helpers. Timestamps are stored as naive UTC datetimes."""

import re
from datetime import date, datetime, timezone
from typing import Optional, Union

DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Parse user supplied contract dates.

    "YYYY-MM-DD" is pinned to 12:00 UTC of that day so the calendar date
    survives any display time zone. Other strings are read as ISO-8601.
    Unparseable input yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 12, 0, 0)

    text = str(value).strip()
    if DATE_ONLY_PATTERN.match(text):
        try:
            parsed = date.fromisoformat(text)
        except ValueError:
            return None
        return datetime(parsed.year, parsed.month, parsed.day, 12, 0, 0)

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with a trailing Z for naive UTC values"""
    if value is None:
        return None
    return to_naive_utc(value).isoformat(timespec="seconds") + "Z"


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 query parameter as naive UTC; a bare date means midnight UTC"""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        return None
