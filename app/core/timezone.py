# core/timezone.py
from datetime import date, datetime, time, timedelta
from typing import Iterator, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings


REFERENCE_TZ = ZoneInfo(settings.REFERENCE_TIMEZONE)

DATE_KEY_FORMAT = "%Y-%m-%d"


def ensure_aware(ts: datetime) -> datetime:
    """Naive timestamps are read as wall-clock time in the reference zone."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=REFERENCE_TZ)
    return ts


def date_key_for(ts: datetime) -> str:
    """Calendar day (YYYY-MM-DD) of a timestamp in the reference zone."""
    return ensure_aware(ts).astimezone(REFERENCE_TZ).strftime(DATE_KEY_FORMAT)


def date_key_of_day(day: date) -> str:
    return day.strftime(DATE_KEY_FORMAT)


def parse_date_key(key: str) -> date:
    return datetime.strptime(key, DATE_KEY_FORMAT).date()


def day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """
    Half-open instant range covering the calendar days [start, end].

    Returns:
        (start of `start`, start of the day after `end`) in the reference zone
    """
    lower = datetime.combine(start, time.min, tzinfo=REFERENCE_TZ)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=REFERENCE_TZ)
    return lower, upper


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end inclusive; empty if end < start."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)
