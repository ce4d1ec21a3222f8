from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import Repositories, get_booking_rules, get_dashboard_zone, get_now, get_repositories
from ..domain.entities import BookingDraft, BookingRules
from ..domain.errors import (
    BookingCancelledError,
    BookingNotFoundError,
    BookingValidationError,
    ResourceNotFoundError,
    UpstreamError,
)
from ..models import TimelineStatus
from ..schemas import (
    BookingDraftIn,
    BookingRead,
    BookingUpdateIn,
    CalendarDayRead,
    CalendarWeekRead,
    UpcomingOngoingRead,
    ValidationResult,
)
from ..usecases import bookings as booking_usecase
from ..usecases import calendar as calendar_usecase
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="/bookings", tags=["bookings"])

UPSTREAM_FAILURE = "Failed to create booking. Please try again."
UPSTREAM_UNAVAILABLE = "Booking service is unavailable. Please try again."


def _audit_failed() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to write audit log")


@router.get("", response_model=List[BookingRead])
async def list_bookings(
    resource_id: Optional[str] = Query(default=None),
    timeline_status: Optional[TimelineStatus] = Query(default=None, alias="status"),
    repos: Repositories = Depends(get_repositories),
    now: datetime = Depends(get_now),
) -> list[BookingRead]:
    try:
        rows = await booking_usecase.list_bookings(
            repos.bookings,
            now=now,
            resource_id=resource_id,
            timeline_status=timeline_status,
        )
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return [BookingRead.from_entity(b, now=now) for b in rows]


@router.get("/upcoming-ongoing", response_model=UpcomingOngoingRead)
async def upcoming_and_ongoing(
    repos: Repositories = Depends(get_repositories),
    now: datetime = Depends(get_now),
) -> UpcomingOngoingRead:
    try:
        upcoming, ongoing = await booking_usecase.upcoming_and_ongoing(repos.bookings, now=now)
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return UpcomingOngoingRead(
        upcoming_bookings=[BookingRead.from_entity(b, now=now) for b in upcoming],
        ongoing_bookings=[BookingRead.from_entity(b, now=now) for b in ongoing],
    )


@router.get("/calendar", response_model=CalendarWeekRead)
async def calendar_week(
    week_of: Optional[date] = Query(default=None, description="Any date inside the wanted week"),
    repos: Repositories = Depends(get_repositories),
    tz: ZoneInfo = Depends(get_dashboard_zone),
    now: datetime = Depends(get_now),
) -> CalendarWeekRead:
    anchor = week_of or now.astimezone(tz).date()
    try:
        days = await calendar_usecase.week_view(repos.bookings, anchor=anchor, tz=tz)
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return CalendarWeekRead(
        week_start=days[0].day,
        week_end=days[0].day + timedelta(days=6),
        days=[
            CalendarDayRead(day=d.day, bookings=[BookingRead.from_entity(b, now=now) for b in d.bookings])
            for d in days
        ],
    )


@router.post("/validate", response_model=ValidationResult)
async def validate_booking(
    payload: BookingDraftIn,
    repos: Repositories = Depends(get_repositories),
    rules: BookingRules = Depends(get_booking_rules),
) -> ValidationResult:
    try:
        errors = await booking_usecase.validate_draft(repos.bookings, draft=payload.to_draft(), rules=rules)
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return ValidationResult(valid=not errors, errors=errors)


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingDraftIn,
    repos: Repositories = Depends(get_repositories),
    rules: BookingRules = Depends(get_booking_rules),
    now: datetime = Depends(get_now),
) -> BookingRead:
    try:
        booking = await booking_usecase.create_booking(
            repos.bookings,
            repos.resources,
            draft=payload.to_draft(),
            rules=rules,
        )
    except BookingValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"errors": exc.violations})
    except ResourceNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="resource not found")
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_FAILURE)

    try:
        emit_audit_log(
            action="booking.created",
            booking_id=booking.id,
            resource_id=booking.resource_id,
            requested_by=booking.requested_by,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status_to=booking.status,
        )
    except RuntimeError as exc:
        raise _audit_failed() from exc
    return BookingRead.from_entity(booking, now=now)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: str,
    repos: Repositories = Depends(get_repositories),
    now: datetime = Depends(get_now),
) -> BookingRead:
    try:
        booking = await booking_usecase.get_booking(repos.bookings, booking_id=booking_id)
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    return BookingRead.from_entity(booking, now=now)


@router.patch("/{booking_id}", response_model=BookingRead)
async def update_booking(
    booking_id: str,
    payload: BookingUpdateIn,
    repos: Repositories = Depends(get_repositories),
    rules: BookingRules = Depends(get_booking_rules),
    now: datetime = Depends(get_now),
) -> BookingRead:
    changes = BookingDraft(
        resource_id=payload.resource_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        requested_by=payload.requested_by.strip() if payload.requested_by is not None else None,
    )
    try:
        before, after = await booking_usecase.update_booking(
            repos.bookings,
            repos.resources,
            booking_id=booking_id,
            changes=changes,
            rules=rules,
        )
    except BookingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    except BookingCancelledError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="booking is cancelled")
    except BookingValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"errors": exc.violations})
    except ResourceNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="resource not found")
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)

    try:
        emit_audit_log(
            action="booking.updated",
            booking_id=after.id,
            resource_id=after.resource_id,
            requested_by=after.requested_by,
            start_time=after.start_time,
            end_time=after.end_time,
            extra={
                "resource_id_from": before.resource_id,
                "start_time_from": before.start_time.isoformat(),
                "end_time_from": before.end_time.isoformat(),
            },
        )
    except RuntimeError as exc:
        raise _audit_failed() from exc
    return BookingRead.from_entity(after, now=now)


@router.post("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: str,
    repos: Repositories = Depends(get_repositories),
    now: datetime = Depends(get_now),
) -> BookingRead:
    try:
        booking, previous = await booking_usecase.cancel_booking(repos.bookings, booking_id=booking_id)
    except BookingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)

    if previous != booking.status:
        try:
            emit_audit_log(
                action="booking.cancelled",
                booking_id=booking.id,
                resource_id=booking.resource_id,
                requested_by=booking.requested_by,
                status_from=previous,
                status_to=booking.status,
            )
        except RuntimeError as exc:
            raise _audit_failed() from exc
    return BookingRead.from_entity(booking, now=now)
