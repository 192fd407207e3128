"""
Standardized Date/Time Handling Utilities

Streaks and weekly stats are counted in calendar days, not elapsed hours, so
every comparison goes through the helpers below.

CRITICAL RULES:
- Always store datetimes in DB as UTC (use to_utc())
- Compare workout days with calendar_day() in the effective timezone
- Never mix naive and aware datetimes
"""

import logging
from datetime import datetime, date, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from personalfit.config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def get_timezone(tz_name: Optional[str] = None) -> ZoneInfo:
    """
    Resolve an IANA timezone name, falling back to DEFAULT_TIMEZONE

    Args:
        tz_name: IANA name (e.g. "Europe/Stockholm"), or None for the default

    Returns:
        ZoneInfo object
    """
    name = tz_name or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{name}': {e}")
        return UTC


def now_utc() -> datetime:
    """Current datetime in UTC (timezone-aware)"""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC for database storage

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        logger.debug(f"Received naive datetime, assuming UTC: {dt}")
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def calendar_day(value: Union[datetime, date], tz: Optional[ZoneInfo] = None) -> date:
    """
    Calendar date of a timestamp in the given timezone

    Plain dates are returned unchanged.
    """
    if isinstance(value, datetime):
        return to_utc(value).astimezone(tz or get_timezone()).date()
    return value


def days_between(
    earlier: Union[datetime, date],
    later: Union[datetime, date],
    tz: Optional[ZoneInfo] = None
) -> int:
    """
    Number of calendar-day boundaries between two timestamps

    23:50 and 00:10 the next day are 1 day apart; 00:10 and 23:50 on the
    same day are 0 days apart.
    """
    return (calendar_day(later, tz) - calendar_day(earlier, tz)).days


def week_start(value: Union[datetime, date], tz: Optional[ZoneInfo] = None) -> date:
    """Monday of the week containing value"""
    day = calendar_day(value, tz)
    return day - timedelta(days=day.weekday())


def week_bounds(value: Union[datetime, date], tz: Optional[ZoneInfo] = None) -> tuple[datetime, datetime]:
    """
    Half-open [start, end) UTC range of the Monday-start week containing value

    Returns:
        (week_start_utc, next_week_start_utc)
    """
    zone = tz or get_timezone()
    monday = week_start(value, zone)
    start = datetime(monday.year, monday.month, monday.day, tzinfo=zone)
    end = start + timedelta(days=7)
    return start.astimezone(UTC), end.astimezone(UTC)


def hours_since(dt: datetime, now: Optional[datetime] = None) -> int:
    """Whole hours elapsed since dt (floored, never negative)"""
    reference = now or now_utc()
    elapsed = to_utc(reference) - to_utc(dt)
    return max(int(elapsed.total_seconds() // 3600), 0)
