from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError

from ..config import Settings, get_settings
from ..deps import Repositories, get_booking_rules, get_dashboard_zone, get_now, get_repositories
from ..domain.entities import BookingRules
from ..domain.errors import ResourceNotFoundError, ResourceValidationError, UpstreamError
from ..schemas import (
    AvailabilityRead,
    AvailableSlotRead,
    ResourceCreate,
    ResourceRead,
    ResourceUtilizationRead,
)
from ..usecases import resources as resource_usecase
from ..usecases import stats as stats_usecase
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="/resources", tags=["resources"])

UPSTREAM_UNAVAILABLE = "Booking service is unavailable. Please try again."


@router.get("", response_model=List[ResourceRead])
async def list_resources(repos: Repositories = Depends(get_repositories)) -> list[ResourceRead]:
    try:
        rows = await resource_usecase.list_resources(repos.resources)
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return [ResourceRead.from_entity(r) for r in rows]


@router.post("", response_model=ResourceRead, status_code=status.HTTP_201_CREATED)
async def create_resource(
    payload: ResourceCreate,
    repos: Repositories = Depends(get_repositories),
) -> ResourceRead:
    try:
        resource = await resource_usecase.create_resource(repos.resources, name=payload.name)
    except ResourceValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"errors": exc.violations})
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="resource name already exists")
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to create resource. Please try again.")

    try:
        emit_audit_log(action="resource.created", resource_id=resource.id, message=resource.name)
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to write audit log"
        ) from exc
    return ResourceRead.from_entity(resource)


@router.get("/utilization", response_model=List[ResourceUtilizationRead])
async def resource_utilization(
    search: Optional[str] = Query(default=None),
    activity: stats_usecase.ActivityFilter = Query(default="all", alias="status"),
    band: stats_usecase.UtilizationBand = Query(default="all", alias="utilization"),
    repos: Repositories = Depends(get_repositories),
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
) -> list[ResourceUtilizationRead]:
    try:
        rows = await stats_usecase.resource_utilization(
            repos.bookings,
            repos.resources,
            now=now,
            weekly_available_hours=settings.weekly_available_hours,
            search=search,
            activity=activity,
            band=band,
        )
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return [
        ResourceUtilizationRead(
            id=row.id,
            name=row.name,
            total_bookings=row.total_bookings,
            upcoming_bookings=row.upcoming_bookings,
            ongoing_bookings=row.ongoing_bookings,
            total_hours=row.total_hours,
            utilization=row.utilization,
            is_active=row.is_active,
        )
        for row in rows
    ]


@router.get("/{resource_id}/availability", response_model=AvailabilityRead)
async def resource_availability(
    resource_id: str,
    day: Optional[date] = Query(default=None, alias="date", description="Local calendar date (YYYY-MM-DD)"),
    min_duration: Optional[int] = Query(default=None, gt=0, description="Minimum gap in minutes"),
    repos: Repositories = Depends(get_repositories),
    rules: BookingRules = Depends(get_booking_rules),
    tz: ZoneInfo = Depends(get_dashboard_zone),
    now: datetime = Depends(get_now),
) -> AvailabilityRead:
    wanted_day = day or now.astimezone(tz).date()
    try:
        slots = await resource_usecase.find_available_slots(
            repos.bookings,
            repos.resources,
            resource_id=resource_id,
            day=wanted_day,
            tz=tz,
            min_duration_minutes=min_duration or rules.min_duration_minutes,
            rules=rules,
            not_before=now,
        )
    except ResourceNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="resource not found")
    except UpstreamError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_UNAVAILABLE)
    return AvailabilityRead(
        resource_id=resource_id,
        day=wanted_day,
        total_slots=len(slots),
        available_slots=[
            AvailableSlotRead(start=s.start, end=s.end, duration=s.duration_minutes) for s in slots
        ],
    )
