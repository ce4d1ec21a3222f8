from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator
from zoneinfo import ZoneInfo

import pytest
from booking_dashboard.deps import Repositories, get_dashboard_zone, get_now, get_repositories
from booking_dashboard.domain.entities import ExistingBooking, ResourceInfo
from booking_dashboard.domain.errors import UpstreamUnavailableError
from booking_dashboard.infrastructure.memory import (
    InMemoryBookingRepository,
    InMemoryResourceRepository,
    InMemoryStore,
)
from booking_dashboard.main import app
from booking_dashboard.models import BookingStatus
from booking_dashboard.routers import bookings as router
from fastapi.testclient import TestClient

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.resources["room-1"] = ResourceInfo(id="room-1", name="Room 1")
    s.bookings["b1"] = ExistingBooking(
        id="b1",
        resource_id="room-1",
        start_time=NOW + timedelta(hours=2),
        end_time=NOW + timedelta(hours=3),
        requested_by="alice",
    )
    return s


@pytest.fixture
def audit_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(router, "emit_audit_log", fake_emit)
    return calls


@pytest.fixture
def client(store: InMemoryStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_repositories] = lambda: Repositories(
        InMemoryBookingRepository(store), InMemoryResourceRepository(store)
    )
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[get_dashboard_zone] = lambda: ZoneInfo("UTC")
    yield TestClient(app)
    app.dependency_overrides.clear()


def _body(start: datetime, end: datetime, **extra: Any) -> dict[str, Any]:
    body = {
        "resource_id": "room-1",
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "requested_by": "bob",
    }
    body.update(extra)
    return body


def test_create_booking_returns_201_and_audits(
    client: TestClient, store: InMemoryStore, audit_calls: list[dict[str, Any]]
) -> None:
    resp = client.post("/bookings", json=_body(NOW + timedelta(hours=5), NOW + timedelta(hours=6)))
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "active"
    assert data["timeline_status"] == "upcoming"
    assert data["id"] in store.bookings
    assert len(audit_calls) == 1
    assert audit_calls[0]["action"] == "booking.created"
    assert audit_calls[0]["booking_id"] == data["id"]


def test_create_booking_returns_all_violations(client: TestClient, audit_calls: list[dict[str, Any]]) -> None:
    resp = client.post("/bookings", json=_body(NOW + timedelta(hours=3, minutes=5), NOW + timedelta(hours=3, minutes=10)))
    assert resp.status_code == 422
    errors = resp.json()["detail"]["errors"]
    assert errors[0] == "Duration must be between 30 minutes and 8 hours"
    assert errors[1].startswith("Conflicts with an existing booking")
    assert audit_calls == []


def test_create_booking_reports_missing_fields(client: TestClient) -> None:
    resp = client.post("/bookings", json={"resource_id": "room-1"})
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"] == [
        "Start time is required",
        "End time is required",
        "Requested by is required",
    ]


def test_create_booking_treats_blank_form_fields_as_missing(client: TestClient, store: InMemoryStore) -> None:
    blank = {"resource_id": "", "start_time": "", "end_time": "  ", "requested_by": ""}
    resp = client.post("/bookings", json=blank)
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"] == [
        "Resource is required",
        "Start time is required",
        "End time is required",
        "Requested by is required",
    ]
    assert list(store.bookings) == ["b1"]

    dry_run = client.post("/bookings/validate", json=blank)
    assert dry_run.status_code == 200
    assert dry_run.json()["valid"] is False


def test_create_booking_upstream_failure_is_502(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_create(*args: object, **kwargs: object) -> ExistingBooking:
        raise UpstreamUnavailableError("down")

    monkeypatch.setattr(router.booking_usecase, "create_booking", failing_create)
    resp = client.post("/bookings", json=_body(NOW + timedelta(hours=5), NOW + timedelta(hours=6)))
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Failed to create booking. Please try again."


def test_create_booking_audit_failure_is_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(router, "emit_audit_log", fake_emit)
    resp = client.post("/bookings", json=_body(NOW + timedelta(hours=5), NOW + timedelta(hours=6)))
    assert resp.status_code == 500


def test_validate_is_a_dry_run(client: TestClient, store: InMemoryStore) -> None:
    ok = client.post("/bookings/validate", json=_body(NOW + timedelta(hours=5), NOW + timedelta(hours=6)))
    assert ok.json() == {"valid": True, "errors": []}

    bad = client.post("/bookings/validate", json=_body(NOW + timedelta(hours=2), NOW + timedelta(hours=1)))
    assert bad.json() == {"valid": False, "errors": ["End time must be after start time"]}
    assert list(store.bookings) == ["b1"]


def test_list_filters_and_single_lookup(client: TestClient) -> None:
    assert [b["id"] for b in client.get("/bookings", params={"status": "upcoming"}).json()] == ["b1"]
    assert client.get("/bookings", params={"status": "past"}).json() == []
    assert client.get("/bookings/b1").json()["requested_by"] == "alice"
    assert client.get("/bookings/nope").status_code == 404


def test_upcoming_ongoing_lists(client: TestClient, store: InMemoryStore) -> None:
    store.bookings["now"] = ExistingBooking(
        id="now",
        resource_id="room-1",
        start_time=NOW - timedelta(minutes=15),
        end_time=NOW + timedelta(minutes=45),
        requested_by="carol",
    )
    data = client.get("/bookings/upcoming-ongoing").json()
    assert [b["id"] for b in data["upcoming_bookings"]] == ["b1"]
    assert [b["id"] for b in data["ongoing_bookings"]] == ["now"]
    assert data["ongoing_bookings"][0]["timeline_status"] == "ongoing"


def test_calendar_week(client: TestClient) -> None:
    data = client.get("/bookings/calendar", params={"week_of": "2025-03-12"}).json()
    assert data["week_start"] == "2025-03-10"
    assert data["week_end"] == "2025-03-16"
    assert len(data["days"]) == 7
    assert [b["id"] for b in data["days"][0]["bookings"]] == ["b1"]


def test_patch_reschedules_and_audits(client: TestClient, audit_calls: list[dict[str, Any]]) -> None:
    new_end = NOW + timedelta(hours=4)
    resp = client.patch("/bookings/b1", json={"end_time": new_end.isoformat()})
    assert resp.status_code == 200
    assert resp.json()["end_time"].startswith("2025-03-10T16:00:00")
    assert audit_calls[0]["action"] == "booking.updated"
    assert audit_calls[0]["extra"]["end_time_from"].startswith("2025-03-10T15:00:00")


def test_patch_cancelled_booking_is_409(client: TestClient, store: InMemoryStore) -> None:
    store.bookings["b1"] = replace(store.bookings["b1"], status=BookingStatus.CANCELLED)
    resp = client.patch("/bookings/b1", json={"requested_by": "dave"})
    assert resp.status_code == 409


def test_cancel_is_idempotent_and_audits_once(client: TestClient, audit_calls: list[dict[str, Any]]) -> None:
    first = client.post("/bookings/b1/cancel")
    second = client.post("/bookings/b1/cancel")
    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["status"] == "cancelled"
    assert second.json()["timeline_status"] == "cancelled"
    assert [c["action"] for c in audit_calls] == ["booking.cancelled"]
    assert audit_calls[0]["status_from"] == BookingStatus.ACTIVE


def test_cancel_missing_is_404(client: TestClient) -> None:
    assert client.post("/bookings/nope/cancel").status_code == 404
