from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List

from ..domain.entities import BookingDraft, ExistingBooking, ResourceInfo
from ..domain.errors import BookingNotFoundError
from ..domain.repositories import BookingRepository, ResourceRepository
from ..models import BookingStatus


class InMemoryStore:
    """Process-local stand-in for the booking API, owned by the app or a test."""

    def __init__(self) -> None:
        self.bookings: Dict[str, ExistingBooking] = {}
        self.resources: Dict[str, ResourceInfo] = {}
        self.lock = asyncio.Lock()

    def reset(self) -> None:
        self.bookings.clear()
        self.resources.clear()


class InMemoryBookingRepository(BookingRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list_all(self) -> List[ExistingBooking]:
        return list(self.store.bookings.values())

    async def list_for_resource(self, resource_id: str) -> List[ExistingBooking]:
        return [b for b in self.store.bookings.values() if b.resource_id == resource_id]

    async def get(self, booking_id: str) -> ExistingBooking | None:
        return self.store.bookings.get(booking_id)

    async def create(self, draft: BookingDraft) -> ExistingBooking:
        if draft.resource_id is None or draft.start_time is None or draft.end_time is None:
            raise ValueError("draft is incomplete")
        now = datetime.now(timezone.utc)
        booking = ExistingBooking(
            id=uuid.uuid4().hex,
            resource_id=draft.resource_id,
            start_time=draft.start_time,
            end_time=draft.end_time,
            requested_by=draft.requested_by or "",
            status=BookingStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        async with self.store.lock:
            self.store.bookings[booking.id] = booking
        return booking

    async def update(self, booking: ExistingBooking) -> ExistingBooking:
        async with self.store.lock:
            if booking.id not in self.store.bookings:
                raise BookingNotFoundError(booking.id)
            updated = replace(booking, updated_at=datetime.now(timezone.utc))
            self.store.bookings[booking.id] = updated
        return updated

    async def set_status(self, booking_id: str, status: BookingStatus) -> ExistingBooking | None:
        async with self.store.lock:
            current = self.store.bookings.get(booking_id)
            if current is None:
                return None
            updated = replace(current, status=status, updated_at=datetime.now(timezone.utc))
            self.store.bookings[booking_id] = updated
        return updated


class InMemoryResourceRepository(ResourceRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list_all(self) -> List[ResourceInfo]:
        return sorted(self.store.resources.values(), key=lambda r: r.name)

    async def get(self, resource_id: str) -> ResourceInfo | None:
        return self.store.resources.get(resource_id)

    async def get_for_update(self, resource_id: str) -> ResourceInfo | None:
        # No row locks in memory; the store lock only guards individual writes.
        return await self.get(resource_id)

    async def create(self, name: str) -> ResourceInfo:
        now = datetime.now(timezone.utc)
        resource = ResourceInfo(id=uuid.uuid4().hex, name=name, created_at=now, updated_at=now)
        async with self.store.lock:
            self.store.resources[resource.id] = resource
        return resource
