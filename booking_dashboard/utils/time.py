from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def is_aware(dt: datetime) -> bool:
    return dt.tzinfo is not None and dt.utcoffset() is not None


def to_utc_naive(dt: datetime) -> datetime:
    if not is_aware(dt):
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_naive_to_aware(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc)


def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return the [start, end) instants of a calendar day in `tz`."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def format_minute(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M")
