from __future__ import annotations

from typing import Protocol

from ..models import BookingStatus
from .entities import BookingDraft, ExistingBooking, ResourceInfo


class BookingRepository(Protocol):
    async def list_all(self) -> list[ExistingBooking]: ...

    async def list_for_resource(self, resource_id: str) -> list[ExistingBooking]: ...

    async def get(self, booking_id: str) -> ExistingBooking | None: ...

    async def create(self, draft: BookingDraft) -> ExistingBooking: ...

    async def update(self, booking: ExistingBooking) -> ExistingBooking: ...

    async def set_status(self, booking_id: str, status: BookingStatus) -> ExistingBooking | None: ...


class ResourceRepository(Protocol):
    async def list_all(self) -> list[ResourceInfo]: ...

    async def get(self, resource_id: str) -> ResourceInfo | None: ...

    async def get_for_update(self, resource_id: str) -> ResourceInfo | None: ...

    async def create(self, name: str) -> ResourceInfo: ...
