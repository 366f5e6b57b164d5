# broodlytics/utils/dates.py
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Union

DateLike = Union[date, datetime, str]

SECONDS_PER_DAY = 24 * 60 * 60


def as_datetime(value: DateLike) -> datetime:
    """
    Normalize a date, datetime or ISO string to a naive UTC datetime.
    Plain dates become midnight of that day.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time(0, 0, 0))


def calendar_day(value: DateLike) -> date:
    return as_datetime(value).date()


def days_between(start: DateLike, end: DateLike) -> float:
    """Fractional days from start to end (negative when end precedes start)."""
    return (as_datetime(end) - as_datetime(start)).total_seconds() / SECONDS_PER_DAY


__all__ = ["DateLike", "as_datetime", "calendar_day", "days_between"]
