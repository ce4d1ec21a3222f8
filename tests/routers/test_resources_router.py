from datetime import datetime, timedelta, timezone
from typing import Any, Iterator
from zoneinfo import ZoneInfo

import pytest
from booking_dashboard.deps import Repositories, get_dashboard_zone, get_now, get_repositories
from booking_dashboard.domain.entities import ExistingBooking, ResourceInfo
from booking_dashboard.infrastructure.memory import (
    InMemoryBookingRepository,
    InMemoryResourceRepository,
    InMemoryStore,
)
from booking_dashboard.main import app
from booking_dashboard.routers import resources as router
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

NOW = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.resources["room-1"] = ResourceInfo(id="room-1", name="Board Room")
    s.resources["van-1"] = ResourceInfo(id="van-1", name="Cargo Van")
    s.bookings["b1"] = ExistingBooking(
        id="b1",
        resource_id="room-1",
        start_time=NOW - timedelta(hours=1),
        end_time=NOW + timedelta(hours=1),
        requested_by="alice",
    )
    return s


@pytest.fixture
def client(store: InMemoryStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_repositories] = lambda: Repositories(
        InMemoryBookingRepository(store), InMemoryResourceRepository(store)
    )
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[get_dashboard_zone] = lambda: ZoneInfo("UTC")
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_list_resources(client: TestClient) -> None:
    assert [r["name"] for r in client.get("/resources").json()] == ["Board Room", "Cargo Van"]


def test_create_resource_trims_and_audits(
    client: TestClient, store: InMemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(router, "emit_audit_log", fake_emit)
    resp = client.post("/resources", json={"name": "  Projector  "})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Projector"
    assert len(store.resources) == 3
    assert calls[0]["action"] == "resource.created"


def test_create_resource_rejects_bad_name(client: TestClient) -> None:
    resp = client.post("/resources", json={"name": "ab"})
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"] == ["Resource name must be at least 3 characters long"]

    missing = client.post("/resources", json={})
    assert missing.json()["detail"]["errors"] == ["Resource name is required"]


@pytest.mark.asyncio
async def test_create_resource_returns_409_on_duplicate(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_create_resource(*args: object, **kwargs: object) -> ResourceInfo:
        raise IntegrityError(None, None, None)  # type: ignore[arg-type]

    monkeypatch.setattr(router.resource_usecase, "create_resource", fake_create_resource)
    repos = Repositories(InMemoryBookingRepository(InMemoryStore()), InMemoryResourceRepository(InMemoryStore()))
    with pytest.raises(HTTPException) as excinfo:
        await router.create_resource(payload=router.ResourceCreate(name="Board Room"), repos=repos)
    assert excinfo.value.status_code == 409


def test_utilization_with_filters(client: TestClient) -> None:
    rows = client.get("/resources/utilization").json()
    by_id = {r["id"]: r for r in rows}
    assert by_id["room-1"]["total_hours"] == 2.0
    assert by_id["room-1"]["utilization"] == 5
    assert by_id["room-1"]["is_active"] is True

    active = client.get("/resources/utilization", params={"status": "active"}).json()
    assert [r["id"] for r in active] == ["room-1"]

    searched = client.get("/resources/utilization", params={"search": "van", "utilization": "low"}).json()
    assert [r["id"] for r in searched] == ["van-1"]

    assert client.get("/resources/utilization", params={"status": "bogus"}).status_code == 422


def test_availability_for_today_starts_at_now(client: TestClient) -> None:
    resp = client.get("/resources/room-1/availability", params={"date": "2025-03-10", "min_duration": 60})
    assert resp.status_code == 200
    data = resp.json()
    assert data["day"] == "2025-03-10"
    assert data["total_slots"] == 1
    slot = data["available_slots"][0]
    assert slot["start"].startswith("2025-03-10T09:15:00")
    assert slot["duration"] == 14 * 60 + 45


def test_availability_unknown_resource_is_404(client: TestClient) -> None:
    assert client.get("/resources/nope/availability").status_code == 404
