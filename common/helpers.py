"""
Silai POS - Shared Helpers
===========================
Pure utility functions with NO database or module dependencies.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from config.settings import BUSINESS_TIMEZONE


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def business_tz() -> ZoneInfo:
    return ZoneInfo(BUSINESS_TIMEZONE)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC (SQLite returns naive)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_today() -> date:
    """Today's calendar date in the business timezone."""
    return now_utc().astimezone(business_tz()).date()


def local_date_of(value: datetime) -> date:
    """Business-local calendar date of a stored timestamp."""
    return as_utc(value).astimezone(business_tz()).date()


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[start, end) of a business-local day, expressed in UTC."""
    tz = business_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None
