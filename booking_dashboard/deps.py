from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator
from zoneinfo import ZoneInfo

import httpx
from fastapi import Depends, Request

from .config import Settings, get_settings
from .database import get_sessionmaker
from .domain.entities import BookingRules
from .domain.repositories import BookingRepository, ResourceRepository
from .infrastructure.http import BookingApiClient, HttpBookingRepository, HttpResourceRepository
from .infrastructure.memory import InMemoryBookingRepository, InMemoryResourceRepository, InMemoryStore
from .infrastructure.repositories import SqlAlchemyBookingRepository, SqlAlchemyResourceRepository
from .utils.request_id import REQUEST_ID_HEADER, get_request_id
from .utils.time import get_zone


@dataclass
class Repositories:
    bookings: BookingRepository
    resources: ResourceRepository


async def get_repositories(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[Repositories]:
    if settings.storage_backend == "memory":
        store: InMemoryStore = request.app.state.memory_store
        yield Repositories(InMemoryBookingRepository(store), InMemoryResourceRepository(store))
    elif settings.storage_backend == "sql":
        async with get_sessionmaker()() as session, session.begin():
            yield Repositories(SqlAlchemyBookingRepository(session), SqlAlchemyResourceRepository(session))
    else:
        request_id = get_request_id()
        headers = {REQUEST_ID_HEADER: request_id} if request_id else {}
        async with httpx.AsyncClient(
            base_url=settings.upstream_api_url,
            timeout=settings.upstream_timeout_seconds,
            headers=headers,
        ) as client:
            api = BookingApiClient(client)
            yield Repositories(HttpBookingRepository(api), HttpResourceRepository(api))


def get_booking_rules(settings: Settings = Depends(get_settings)) -> BookingRules:
    return settings.booking_rules()


def get_dashboard_zone(settings: Settings = Depends(get_settings)) -> ZoneInfo:
    return get_zone(settings.dashboard_timezone)


def get_now() -> datetime:
    return datetime.now(timezone.utc)
