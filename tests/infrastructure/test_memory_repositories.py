from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from booking_dashboard.domain.entities import BookingDraft
from booking_dashboard.domain.errors import BookingNotFoundError
from booking_dashboard.infrastructure.memory import InMemoryBookingRepository, InMemoryStore
from booking_dashboard.models import BookingStatus

START = datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)


def _draft(resource_id: str = "room-1") -> BookingDraft:
    return BookingDraft(
        resource_id=resource_id,
        start_time=START,
        end_time=START + timedelta(hours=1),
        requested_by="alice",
    )


@pytest.mark.asyncio
async def test_create_get_and_list_for_resource() -> None:
    repo = InMemoryBookingRepository(InMemoryStore())
    first = await repo.create(_draft())
    await repo.create(_draft("van-1"))

    assert await repo.get(first.id) == first
    assert [b.id for b in await repo.list_for_resource("room-1")] == [first.id]
    assert len(await repo.list_all()) == 2


@pytest.mark.asyncio
async def test_create_refuses_incomplete_draft() -> None:
    repo = InMemoryBookingRepository(InMemoryStore())
    with pytest.raises(ValueError):
        await repo.create(BookingDraft(resource_id="room-1"))


@pytest.mark.asyncio
async def test_update_and_set_status() -> None:
    store = InMemoryStore()
    repo = InMemoryBookingRepository(store)
    booking = await repo.create(_draft())

    moved = await repo.update(replace(booking, end_time=START + timedelta(hours=2)))
    assert store.bookings[booking.id].end_time == START + timedelta(hours=2)
    assert moved.status == BookingStatus.ACTIVE

    cancelled = await repo.set_status(booking.id, BookingStatus.CANCELLED)
    assert cancelled is not None and cancelled.is_cancelled
    assert await repo.set_status("missing", BookingStatus.CANCELLED) is None


@pytest.mark.asyncio
async def test_update_missing_raises() -> None:
    store = InMemoryStore()
    repo = InMemoryBookingRepository(store)
    booking = await repo.create(_draft())
    store.reset()
    with pytest.raises(BookingNotFoundError):
        await repo.update(booking)
