import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Literal
from zoneinfo import ZoneInfo

from ..domain.entities import ExistingBooking, ResourceInfo
from ..domain.repositories import BookingRepository, ResourceRepository
from ..domain.services import derive_timeline_status
from ..models import TimelineStatus

ActivityFilter = Literal["all", "active", "available", "has-bookings", "no-bookings"]
UtilizationBand = Literal["all", "high", "medium", "low"]

HIGH_UTILIZATION = 80
MEDIUM_UTILIZATION = 40


@dataclass(frozen=True)
class BookingStats:
    total_bookings: int
    total_resources: int
    total_bookings_today: int
    ongoing_bookings_today: int


@dataclass(frozen=True)
class ResourceUtilization:
    id: str
    name: str
    total_bookings: int
    upcoming_bookings: int
    ongoing_bookings: int
    total_hours: float
    utilization: int
    is_active: bool


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def summarize_bookings(
    bookings: Iterable[ExistingBooking],
    resources: Iterable[ResourceInfo],
    *,
    now: datetime,
    tz: ZoneInfo,
) -> BookingStats:
    today = now.astimezone(tz).date()
    active = [b for b in bookings if not b.is_cancelled]
    return BookingStats(
        total_bookings=len(active),
        total_resources=len(list(resources)),
        total_bookings_today=sum(1 for b in active if b.start_time.astimezone(tz).date() == today),
        ongoing_bookings_today=sum(
            1 for b in active if derive_timeline_status(b, now) == TimelineStatus.ONGOING
        ),
    )


def summarize_utilization(
    resources: Iterable[ResourceInfo],
    bookings: Iterable[ExistingBooking],
    *,
    now: datetime,
    weekly_available_hours: float,
) -> list[ResourceUtilization]:
    by_resource: dict[str, list[ExistingBooking]] = {}
    for booking in bookings:
        by_resource.setdefault(booking.resource_id, []).append(booking)

    rows: list[ResourceUtilization] = []
    for resource in resources:
        resource_bookings = by_resource.get(resource.id, [])
        active = [b for b in resource_bookings if not b.is_cancelled]
        upcoming = sum(1 for b in active if b.start_time > now)
        ongoing = sum(1 for b in active if b.start_time <= now <= b.end_time)
        total_hours = sum(b.duration_hours for b in active)
        utilization = min(total_hours / weekly_available_hours * 100, 100)
        rows.append(
            ResourceUtilization(
                id=resource.id,
                name=resource.name,
                total_bookings=len(resource_bookings),
                upcoming_bookings=upcoming,
                ongoing_bookings=ongoing,
                total_hours=_round_half_up(total_hours, 1),
                utilization=int(_round_half_up(utilization)),
                is_active=ongoing > 0,
            )
        )
    return rows


def filter_utilization(
    rows: Iterable[ResourceUtilization],
    *,
    search: str | None = None,
    activity: ActivityFilter = "all",
    band: UtilizationBand = "all",
) -> list[ResourceUtilization]:
    result = list(rows)
    if search:
        query = search.lower()
        result = [r for r in result if query in r.name.lower()]

    if activity == "active":
        result = [r for r in result if r.is_active]
    elif activity == "available":
        result = [r for r in result if not r.is_active]
    elif activity == "has-bookings":
        result = [r for r in result if r.total_bookings > 0]
    elif activity == "no-bookings":
        result = [r for r in result if r.total_bookings == 0]

    if band == "high":
        result = [r for r in result if r.utilization >= HIGH_UTILIZATION]
    elif band == "medium":
        result = [r for r in result if MEDIUM_UTILIZATION <= r.utilization < HIGH_UTILIZATION]
    elif band == "low":
        result = [r for r in result if r.utilization < MEDIUM_UTILIZATION]
    return result


async def booking_stats(
    booking_repo: BookingRepository,
    resource_repo: ResourceRepository,
    *,
    now: datetime,
    tz: ZoneInfo,
) -> BookingStats:
    bookings = await booking_repo.list_all()
    resources = await resource_repo.list_all()
    return summarize_bookings(bookings, resources, now=now, tz=tz)


async def resource_utilization(
    booking_repo: BookingRepository,
    resource_repo: ResourceRepository,
    *,
    now: datetime,
    weekly_available_hours: float,
    search: str | None = None,
    activity: ActivityFilter = "all",
    band: UtilizationBand = "all",
) -> list[ResourceUtilization]:
    resources = await resource_repo.list_all()
    bookings = await booking_repo.list_all()
    rows = summarize_utilization(resources, bookings, now=now, weekly_available_hours=weekly_available_hours)
    return filter_utilization(rows, search=search, activity=activity, band=band)
