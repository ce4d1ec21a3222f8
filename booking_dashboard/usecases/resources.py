import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from ..domain.entities import BookingRules, ExistingBooking, ResourceInfo
from ..domain.errors import ResourceNotFoundError, ResourceValidationError
from ..domain.repositories import BookingRepository, ResourceRepository
from ..domain.services import validate_resource_name
from ..utils.time import local_day_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableSlot:
    start: datetime
    end: datetime
    duration_minutes: int


async def list_resources(resource_repo: ResourceRepository) -> list[ResourceInfo]:
    return await resource_repo.list_all()


async def create_resource(resource_repo: ResourceRepository, *, name: str | None) -> ResourceInfo:
    violations = validate_resource_name(name)
    if violations:
        raise ResourceValidationError(violations)
    resource = await resource_repo.create((name or "").strip())
    logger.info("Created resource %s (%s)", resource.id, resource.name)
    return resource


def compute_free_slots(
    bookings: Iterable[ExistingBooking],
    *,
    window_start: datetime,
    window_end: datetime,
    min_duration_minutes: int,
    buffer_minutes: int,
) -> list[AvailableSlot]:
    """
    Gaps inside [window_start, window_end) between the buffered intervals of active bookings.
    A draft placed anywhere inside a returned slot passes the conflict check.
    """
    buffer = timedelta(minutes=buffer_minutes)
    blocked = sorted(
        ((b.start_time - buffer, b.end_time + buffer) for b in bookings if not b.is_cancelled),
        key=lambda interval: interval[0],
    )

    gaps: list[tuple[datetime, datetime]] = []
    cursor = window_start
    for blocked_start, blocked_end in blocked:
        if blocked_end <= cursor:
            continue
        if blocked_start >= window_end:
            break
        if blocked_start > cursor:
            gaps.append((cursor, blocked_start))
        cursor = max(cursor, blocked_end)
    if cursor < window_end:
        gaps.append((cursor, window_end))

    slots: list[AvailableSlot] = []
    for start, end in gaps:
        minutes = int((end - start).total_seconds() // 60)
        if minutes >= min_duration_minutes:
            slots.append(AvailableSlot(start=start, end=end, duration_minutes=minutes))
    return slots


async def find_available_slots(
    booking_repo: BookingRepository,
    resource_repo: ResourceRepository,
    *,
    resource_id: str,
    day: date,
    tz: ZoneInfo,
    min_duration_minutes: int,
    rules: BookingRules,
    not_before: datetime | None = None,
) -> list[AvailableSlot]:
    if await resource_repo.get(resource_id) is None:
        raise ResourceNotFoundError(resource_id)

    window_start, window_end = local_day_bounds(day, tz)
    if not_before is not None and not_before > window_start:
        window_start = not_before
    if window_start >= window_end:
        return []

    bookings = await booking_repo.list_for_resource(resource_id)
    return compute_free_slots(
        bookings,
        window_start=window_start,
        window_end=window_end,
        min_duration_minutes=min_duration_minutes,
        buffer_minutes=rules.buffer_minutes,
    )
