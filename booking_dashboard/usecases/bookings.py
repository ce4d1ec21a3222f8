import logging
from dataclasses import replace
from datetime import datetime
from typing import cast

from ..domain.entities import BookingDraft, BookingRules, ExistingBooking, ResourceInfo
from ..domain.errors import (
    BookingCancelledError,
    BookingNotFoundError,
    BookingValidationError,
    ResourceNotFoundError,
)
from ..domain.repositories import BookingRepository, ResourceRepository
from ..domain.services import derive_timeline_status, validate_booking
from ..models import BookingStatus, TimelineStatus

logger = logging.getLogger(__name__)


def _check(draft: BookingDraft, existing: list[ExistingBooking], rules: BookingRules) -> list[str]:
    return validate_booking(
        draft,
        existing,
        rules.buffer_minutes,
        rules.max_duration_hours,
        min_duration_minutes=rules.min_duration_minutes,
    )


async def validate_draft(
    booking_repo: BookingRepository,
    *,
    draft: BookingDraft,
    rules: BookingRules,
) -> list[str]:
    existing: list[ExistingBooking] = []
    if draft.resource_id and draft.resource_id.strip():
        existing = await booking_repo.list_for_resource(draft.resource_id)
    return _check(draft, existing, rules)


async def create_booking(
    booking_repo: BookingRepository,
    resource_repo: ResourceRepository,
    *,
    draft: BookingDraft,
    rules: BookingRules,
) -> ExistingBooking:
    resource: ResourceInfo | None = None
    if draft.resource_id and draft.resource_id.strip():
        # Lock the resource row first so concurrent bookings on it validate one at a time.
        resource = await resource_repo.get_for_update(draft.resource_id)

    violations = await validate_draft(booking_repo, draft=draft, rules=rules)
    if violations:
        logger.info("Rejected booking for resource %s with %d violation(s)", draft.resource_id, len(violations))
        raise BookingValidationError(violations)

    resource_id = cast(str, draft.resource_id)
    if resource is None:
        raise ResourceNotFoundError(resource_id)

    booking = await booking_repo.create(draft)
    logger.info("Created booking %s on resource %s", booking.id, booking.resource_id)
    return booking


async def update_booking(
    booking_repo: BookingRepository,
    resource_repo: ResourceRepository,
    *,
    booking_id: str,
    changes: BookingDraft,
    rules: BookingRules,
) -> tuple[ExistingBooking, ExistingBooking]:
    """Apply partial changes and re-run the booking rules. Returns (before, after)."""
    current = await booking_repo.get(booking_id)
    if current is None:
        raise BookingNotFoundError(booking_id)
    if current.is_cancelled:
        raise BookingCancelledError(booking_id)

    draft = BookingDraft(
        resource_id=changes.resource_id if changes.resource_id is not None else current.resource_id,
        start_time=changes.start_time if changes.start_time is not None else current.start_time,
        end_time=changes.end_time if changes.end_time is not None else current.end_time,
        requested_by=changes.requested_by if changes.requested_by is not None else current.requested_by,
    )
    resource: ResourceInfo | None = None
    others: list[ExistingBooking] = []
    if draft.resource_id and draft.resource_id.strip():
        resource = await resource_repo.get_for_update(draft.resource_id)
        others = [b for b in await booking_repo.list_for_resource(draft.resource_id) if b.id != booking_id]
    violations = _check(draft, others, rules)
    if violations:
        raise BookingValidationError(violations)

    resource_id = cast(str, draft.resource_id)
    if resource_id != current.resource_id and resource is None:
        raise ResourceNotFoundError(resource_id)

    updated = await booking_repo.update(
        replace(
            current,
            resource_id=resource_id,
            start_time=cast(datetime, draft.start_time),
            end_time=cast(datetime, draft.end_time),
            requested_by=draft.requested_by or current.requested_by,
        )
    )
    return current, updated


async def cancel_booking(
    booking_repo: BookingRepository,
    *,
    booking_id: str,
) -> tuple[ExistingBooking, BookingStatus]:
    """Cancel a booking. Returns the booking and its status before the call."""
    current = await booking_repo.get(booking_id)
    if current is None:
        raise BookingNotFoundError(booking_id)
    # Idempotent: already cancelled returns as-is
    if current.is_cancelled:
        return current, current.status

    updated = await booking_repo.set_status(booking_id, BookingStatus.CANCELLED)
    if updated is None:
        raise BookingNotFoundError(booking_id)
    logger.info("Cancelled booking %s", booking_id)
    return updated, current.status


async def get_booking(booking_repo: BookingRepository, *, booking_id: str) -> ExistingBooking | None:
    return await booking_repo.get(booking_id)


async def list_bookings(
    booking_repo: BookingRepository,
    *,
    now: datetime,
    resource_id: str | None = None,
    timeline_status: TimelineStatus | None = None,
) -> list[ExistingBooking]:
    if resource_id is not None:
        bookings = await booking_repo.list_for_resource(resource_id)
    else:
        bookings = await booking_repo.list_all()
    if timeline_status is not None:
        bookings = [b for b in bookings if derive_timeline_status(b, now) == timeline_status]
    return sorted(bookings, key=lambda b: b.start_time)


async def upcoming_and_ongoing(
    booking_repo: BookingRepository,
    *,
    now: datetime,
) -> tuple[list[ExistingBooking], list[ExistingBooking]]:
    upcoming: list[ExistingBooking] = []
    ongoing: list[ExistingBooking] = []
    for booking in await booking_repo.list_all():
        status = derive_timeline_status(booking, now)
        if status == TimelineStatus.UPCOMING:
            upcoming.append(booking)
        elif status == TimelineStatus.ONGOING:
            ongoing.append(booking)
    upcoming.sort(key=lambda b: b.start_time)
    ongoing.sort(key=lambda b: b.end_time)
    return upcoming, ongoing
