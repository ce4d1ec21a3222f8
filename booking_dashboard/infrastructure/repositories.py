from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import BookingDraft, ExistingBooking, ResourceInfo
from ..domain.errors import BookingNotFoundError
from ..domain.repositories import BookingRepository, ResourceRepository
from ..models import Booking, BookingStatus, Resource
from ..utils.time import to_utc_naive, utc_naive_to_aware


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def booking_to_entity(row: Booking) -> ExistingBooking:
    return ExistingBooking(
        id=row.id,
        resource_id=row.resource_id,
        start_time=utc_naive_to_aware(row.start_time),
        end_time=utc_naive_to_aware(row.end_time),
        requested_by=row.requested_by,
        status=row.status,
        created_at=utc_naive_to_aware(row.created_at),
        updated_at=utc_naive_to_aware(row.updated_at),
    )


def resource_to_entity(row: Resource) -> ResourceInfo:
    return ResourceInfo(
        id=row.id,
        name=row.name,
        created_at=utc_naive_to_aware(row.created_at),
        updated_at=utc_naive_to_aware(row.updated_at),
    )


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_all(self) -> List[ExistingBooking]:
        rows = await self.session.scalars(select(Booking).order_by(Booking.start_time))
        return [booking_to_entity(row) for row in rows.all()]

    async def list_for_resource(self, resource_id: str) -> List[ExistingBooking]:
        stmt = select(Booking).where(Booking.resource_id == resource_id).order_by(Booking.start_time)
        rows = await self.session.scalars(stmt)
        return [booking_to_entity(row) for row in rows.all()]

    async def get(self, booking_id: str) -> ExistingBooking | None:
        row = await self.session.get(Booking, booking_id)
        return booking_to_entity(row) if row is not None else None

    async def create(self, draft: BookingDraft) -> ExistingBooking:
        if draft.resource_id is None or draft.start_time is None or draft.end_time is None:
            raise ValueError("draft is incomplete")
        now = _utc_now_naive()
        row = Booking(
            id=uuid.uuid4().hex,
            resource_id=draft.resource_id,
            start_time=to_utc_naive(draft.start_time),
            end_time=to_utc_naive(draft.end_time),
            requested_by=draft.requested_by or "",
            status=BookingStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return booking_to_entity(row)

    async def update(self, booking: ExistingBooking) -> ExistingBooking:
        row = await self.session.get(Booking, booking.id, with_for_update=True)
        if row is None:
            raise BookingNotFoundError(booking.id)
        row.resource_id = booking.resource_id
        row.start_time = to_utc_naive(booking.start_time)
        row.end_time = to_utc_naive(booking.end_time)
        row.requested_by = booking.requested_by
        row.status = booking.status
        row.updated_at = _utc_now_naive()
        await self.session.flush()
        return booking_to_entity(row)

    async def set_status(self, booking_id: str, status: BookingStatus) -> ExistingBooking | None:
        row = await self.session.get(Booking, booking_id, with_for_update=True)
        if row is None:
            return None
        row.status = status
        row.updated_at = _utc_now_naive()
        await self.session.flush()
        return booking_to_entity(row)


class SqlAlchemyResourceRepository(ResourceRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_all(self) -> List[ResourceInfo]:
        rows = await self.session.scalars(select(Resource).order_by(Resource.name))
        return [resource_to_entity(row) for row in rows.all()]

    async def get(self, resource_id: str) -> ResourceInfo | None:
        row = await self.session.get(Resource, resource_id)
        return resource_to_entity(row) if row is not None else None

    async def get_for_update(self, resource_id: str) -> ResourceInfo | None:
        row = await self.session.scalar(select(Resource).where(Resource.id == resource_id).with_for_update())
        return resource_to_entity(row) if isinstance(row, Resource) else None

    async def create(self, name: str) -> ResourceInfo:
        now = _utc_now_naive()
        row = Resource(id=uuid.uuid4().hex, name=name, created_at=now, updated_at=now)
        self.session.add(row)
        await self.session.flush()
        return resource_to_entity(row)
