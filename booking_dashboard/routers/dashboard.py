from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import Repositories, get_booking_rules, get_dashboard_zone, get_now, get_repositories
from ..domain.entities import BookingRules
from ..domain.errors import UpstreamError
from ..schemas import BookingStatsRead, RulesRead
from ..usecases import stats as stats_usecase

router = APIRouter(prefix="", tags=["dashboard"])


@router.get("/dashboard/stats", response_model=BookingStatsRead)
async def dashboard_stats(
    repos: Repositories = Depends(get_repositories),
    tz: ZoneInfo = Depends(get_dashboard_zone),
    now: datetime = Depends(get_now),
) -> BookingStatsRead:
    try:
        stats = await stats_usecase.booking_stats(repos.bookings, repos.resources, now=now, tz=tz)
    except UpstreamError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Booking service is unavailable. Please try again."
        )
    return BookingStatsRead(
        total_bookings=stats.total_bookings,
        total_resources=stats.total_resources,
        total_bookings_today=stats.total_bookings_today,
        ongoing_bookings_today=stats.ongoing_bookings_today,
    )


@router.get("/rules", response_model=RulesRead)
async def booking_rules(rules: BookingRules = Depends(get_booking_rules)) -> RulesRead:
    return RulesRead.from_rules(rules)
