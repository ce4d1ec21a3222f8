from datetime import datetime, timedelta
from typing import Iterable

from ..models import TimelineStatus
from ..utils.time import format_minute, is_aware
from .entities import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_MAX_DURATION_HOURS,
    DEFAULT_MIN_DURATION_MINUTES,
    BookingDraft,
    ExistingBooking,
)

RESOURCE_NAME_MIN_LENGTH = 3
RESOURCE_NAME_MAX_LENGTH = 50


def validate_booking(
    draft: BookingDraft,
    existing_bookings: Iterable[ExistingBooking],
    buffer_minutes: float = DEFAULT_BUFFER_MINUTES,
    max_duration_hours: float = DEFAULT_MAX_DURATION_HOURS,
    *,
    min_duration_minutes: float = DEFAULT_MIN_DURATION_MINUTES,
) -> list[str]:
    """
    Pure validation of a booking draft against the booking rules.
    Returns every violation found, in check order; an empty list means the draft is acceptable.

    Conflicts apply the buffer to the existing booking only: the draft's raw
    [start, end] must not intersect [existing_start - buffer, existing_end + buffer].
    Cancelled bookings and bookings on other resources never conflict.
    """
    errors: list[str] = []

    if not _filled(draft.resource_id):
        errors.append("Resource is required")
    if draft.start_time is None:
        errors.append("Start time is required")
    if draft.end_time is None:
        errors.append("End time is required")
    if not _filled(draft.requested_by):
        errors.append("Requested by is required")

    start, end = draft.start_time, draft.end_time
    if start is None or end is None:
        return errors

    if not is_aware(start):
        errors.append("Start time must include a timezone offset")
    if not is_aware(end):
        errors.append("End time must include a timezone offset")
    if not (is_aware(start) and is_aware(end)):
        return errors

    if end <= start:
        errors.append("End time must be after start time")
        return errors

    duration_minutes = (end - start).total_seconds() / 60
    if duration_minutes < min_duration_minutes or duration_minutes > max_duration_hours * 60:
        errors.append(
            f"Duration must be between {min_duration_minutes:g} minutes and {max_duration_hours:g} hours"
        )

    if _filled(draft.resource_id):
        buffer = timedelta(minutes=buffer_minutes)
        for booking in existing_bookings:
            if booking.is_cancelled or booking.resource_id != draft.resource_id:
                continue
            protected_start = booking.start_time - buffer
            protected_end = booking.end_time + buffer
            if start < protected_end and end > protected_start:
                errors.append(
                    f"Conflicts with an existing booking from {format_minute(booking.start_time)} "
                    f"to {format_minute(booking.end_time)} (including a {buffer_minutes:g}-minute buffer)"
                )

    return errors


def derive_timeline_status(booking: ExistingBooking, now: datetime) -> TimelineStatus:
    if booking.is_cancelled:
        return TimelineStatus.CANCELLED
    if now > booking.end_time:
        return TimelineStatus.PAST
    if booking.start_time <= now <= booking.end_time:
        return TimelineStatus.ONGOING
    return TimelineStatus.UPCOMING


def validate_resource_name(name: str | None) -> list[str]:
    trimmed = (name or "").strip()
    if not trimmed:
        return ["Resource name is required"]
    if len(trimmed) < RESOURCE_NAME_MIN_LENGTH:
        return [f"Resource name must be at least {RESOURCE_NAME_MIN_LENGTH} characters long"]
    if len(trimmed) > RESOURCE_NAME_MAX_LENGTH:
        return [f"Resource name cannot exceed {RESOURCE_NAME_MAX_LENGTH} characters"]
    return []


def _filled(value: str | None) -> bool:
    return value is not None and value.strip() != ""
