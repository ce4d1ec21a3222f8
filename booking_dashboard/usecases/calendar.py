from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from ..domain.entities import ExistingBooking
from ..domain.repositories import BookingRepository
from ..utils.time import week_start


@dataclass(frozen=True)
class CalendarDay:
    day: date
    bookings: list[ExistingBooking] = field(default_factory=list)


def group_week(bookings: Iterable[ExistingBooking], *, anchor: date, tz: ZoneInfo) -> list[CalendarDay]:
    """Seven days, Monday first, each holding the bookings that start on it in `tz`."""
    first = week_start(anchor)
    days = [first + timedelta(days=offset) for offset in range(7)]
    grouped: dict[date, list[ExistingBooking]] = {day: [] for day in days}
    for booking in sorted(bookings, key=lambda b: b.start_time):
        local_day = booking.start_time.astimezone(tz).date()
        if local_day in grouped:
            grouped[local_day].append(booking)
    return [CalendarDay(day=day, bookings=grouped[day]) for day in days]


async def week_view(booking_repo: BookingRepository, *, anchor: date, tz: ZoneInfo) -> list[CalendarDay]:
    return group_week(await booking_repo.list_all(), anchor=anchor, tz=tz)
