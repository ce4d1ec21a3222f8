from __future__ import annotations

import logging
from typing import Any, List

import httpx
from pydantic import TypeAdapter, ValidationError

from ..domain.entities import BookingDraft, ExistingBooking, ResourceInfo
from ..domain.errors import BookingNotFoundError, UpstreamPayloadError, UpstreamUnavailableError
from ..domain.repositories import BookingRepository, ResourceRepository
from ..models import BookingStatus
from ..schemas import (
    UpstreamBooking,
    UpstreamBookingWrite,
    UpstreamEnvelope,
    UpstreamResource,
    UpstreamResourcePage,
)

logger = logging.getLogger(__name__)

_bookings_adapter = TypeAdapter(List[UpstreamBooking])


class BookingApiClient:
    """Speaks the booking API's {success, message, data} envelope over an httpx client."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def call(self, method: str, url: str, *, json: dict[str, Any] | None = None, allow_missing: bool = False) -> Any:
        try:
            response = await self.client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            logger.error("Booking API %s %s failed: %s", method, url, exc)
            raise UpstreamUnavailableError(f"{method} {url} failed") from exc

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            logger.error("Booking API %s %s returned %s: %s", method, url, response.status_code, response.text)
            raise UpstreamUnavailableError(f"{method} {url} returned {response.status_code}")

        try:
            envelope = UpstreamEnvelope.model_validate(response.json())
        except ValueError as exc:  # JSONDecodeError and ValidationError are both ValueErrors
            logger.error("Booking API %s %s sent an unreadable body", method, url)
            raise UpstreamPayloadError(f"{method} {url} returned an unreadable body") from exc
        if not envelope.success:
            logger.warning("Booking API %s %s reported failure: %s", method, url, envelope.message)
            raise UpstreamUnavailableError(envelope.message or f"{method} {url} was not successful")
        return envelope.data


def parse_bookings(data: Any) -> list[ExistingBooking]:
    """Accept either a flat list or a {resource name: [bookings]} mapping."""
    if data is None:
        return []
    if isinstance(data, list):
        rows = data
    elif isinstance(data, dict):
        rows = []
        for group in data.values():
            if group is None:
                continue
            if not isinstance(group, list):
                raise UpstreamPayloadError("unexpected bookings payload")
            rows.extend(group)
    else:
        raise UpstreamPayloadError("unexpected bookings payload")
    try:
        return [item.to_entity() for item in _bookings_adapter.validate_python(rows)]
    except ValidationError as exc:
        raise UpstreamPayloadError("malformed booking payload") from exc


def parse_booking(data: Any) -> ExistingBooking:
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    try:
        return UpstreamBooking.model_validate(data).to_entity()
    except ValidationError as exc:
        raise UpstreamPayloadError("malformed booking payload") from exc


def parse_resources(data: Any) -> list[ResourceInfo]:
    try:
        if isinstance(data, list):
            items = TypeAdapter(List[UpstreamResource]).validate_python(data)
        else:
            items = UpstreamResourcePage.model_validate(data or {}).data
    except ValidationError as exc:
        raise UpstreamPayloadError("malformed resource payload") from exc
    return [item.to_entity() for item in items]


def parse_resource(data: Any) -> ResourceInfo:
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    try:
        return UpstreamResource.model_validate(data).to_entity()
    except ValidationError as exc:
        raise UpstreamPayloadError("malformed resource payload") from exc


class HttpBookingRepository(BookingRepository):
    def __init__(self, api: BookingApiClient) -> None:
        self.api = api

    async def list_all(self) -> list[ExistingBooking]:
        return parse_bookings(await self.api.call("GET", "/booking"))

    async def list_for_resource(self, resource_id: str) -> list[ExistingBooking]:
        return [b for b in await self.list_all() if b.resource_id == resource_id]

    async def get(self, booking_id: str) -> ExistingBooking | None:
        for booking in await self.list_all():
            if booking.id == booking_id:
                return booking
        return None

    async def create(self, draft: BookingDraft) -> ExistingBooking:
        body = UpstreamBookingWrite(
            resource_id=draft.resource_id,
            start_time=draft.start_time,
            end_time=draft.end_time,
            requested_by=draft.requested_by,
        ).to_body()
        return parse_booking(await self.api.call("POST", "/booking/create", json=body))

    async def update(self, booking: ExistingBooking) -> ExistingBooking:
        body = UpstreamBookingWrite(
            resource_id=booking.resource_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            requested_by=booking.requested_by,
        ).to_body()
        data = await self.api.call("PUT", f"/booking/{booking.id}", json=body, allow_missing=True)
        if data is None:
            raise BookingNotFoundError(booking.id)
        return parse_booking(data)

    async def set_status(self, booking_id: str, status: BookingStatus) -> ExistingBooking | None:
        body = UpstreamBookingWrite(status=status).to_body()
        data = await self.api.call("PUT", f"/booking/{booking_id}", json=body, allow_missing=True)
        if data is None:
            return None
        return parse_booking(data)


class HttpResourceRepository(ResourceRepository):
    def __init__(self, api: BookingApiClient) -> None:
        self.api = api

    async def list_all(self) -> list[ResourceInfo]:
        return parse_resources(await self.api.call("GET", "/resource"))

    async def get(self, resource_id: str) -> ResourceInfo | None:
        for resource in await self.list_all():
            if resource.id == resource_id:
                return resource
        return None

    async def get_for_update(self, resource_id: str) -> ResourceInfo | None:
        # The booking API re-runs the conflict check itself; no lock to take here.
        return await self.get(resource_id)

    async def create(self, name: str) -> ResourceInfo:
        return parse_resource(await self.api.call("POST", "/resource/create", json={"name": name}))
