"""Wall-clock helpers for slot times stored without a timezone"""
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from soro.config.settings import get_settings


def local_now() -> datetime:
    """Current naive local time in the platform timezone (same clock as booking slot times)"""
    tz = ZoneInfo(get_settings().DEFAULT_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def minutes_between(start: time, end: time) -> int:
    """Whole minutes from start to end on the same day"""
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def session_start(booking_date: date, start: time) -> datetime:
    return datetime.combine(booking_date, start)


def localize(moment: datetime) -> datetime:
    """Attach the platform timezone to a naive wall-clock datetime"""
    return moment.replace(tzinfo=ZoneInfo(get_settings().DEFAULT_TIMEZONE))
