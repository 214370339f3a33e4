"""
Wall-clock <-> UTC helpers

Appointments and cached slots are stored as naive UTC datetimes. Schedule and
exception times are wall-clock times in the business timezone.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

import pytz

from ..config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_tz(tz_name: str | None) -> pytz.tzinfo.BaseTzInfo:
    """Resolve an IANA timezone name, falling back to the configured default"""
    try:
        return pytz.timezone(tz_name or DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"⚠️ Invalid timezone '{tz_name}', using {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def local_to_utc(day: date, wall_time: time, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
    """Combine a business-local date and time into naive UTC"""
    local_dt = tz.localize(datetime.combine(day, wall_time))
    return local_dt.astimezone(pytz.UTC).replace(tzinfo=None)


def to_utc_naive(value: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
    """
    Normalize an incoming datetime to naive UTC.

    Aware values are converted; naive values are read as business-local wall clock.
    """
    if value.tzinfo is None:
        value = tz.localize(value)
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def utc_to_local(value: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
    """Naive UTC -> aware datetime in the business timezone"""
    return pytz.UTC.localize(value).astimezone(tz)


def local_date_of(value: datetime, tz: pytz.tzinfo.BaseTzInfo) -> date:
    """Business-local calendar date of a naive UTC instant"""
    return utc_to_local(value, tz).date()


def local_day_bounds(day: date, tz: pytz.tzinfo.BaseTzInfo) -> tuple[datetime, datetime]:
    """[start, end) of a business-local day as naive UTC"""
    start = local_to_utc(day, time.min, tz)
    end = local_to_utc(day + timedelta(days=1), time.min, tz)
    return start, end


def local_today(tz: pytz.tzinfo.BaseTzInfo, now: datetime | None = None) -> date:
    return local_date_of(now or utcnow(), tz)


def day_of_week(day: date) -> int:
    """0=Sunday ... 6=Saturday"""
    return day.isoweekday() % 7


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Aware datetimes -> naive UTC; naive values are assumed to be UTC already"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
