import logging

import pytest
from booking_dashboard.main import request_id_middleware
from booking_dashboard.utils.request_id import (
    REQUEST_ID_HEADER,
    RequestIdLogFilter,
    generate_request_id,
    get_request_id,
    set_request_id,
)
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient


def _echo_app() -> FastAPI:
    app = FastAPI()

    @app.get("/check")
    async def check() -> dict[str, str]:
        return {"rid": get_request_id() or ""}

    app.middleware("http")(request_id_middleware)
    return app


def test_request_id_context_round_trip() -> None:
    set_request_id("req-abc")
    assert get_request_id() == "req-abc"
    set_request_id(None)
    assert get_request_id() is None
    assert generate_request_id() != generate_request_id()


@pytest.mark.asyncio
@pytest.mark.parametrize("incoming", [None, "req-custom-123"])
async def test_middleware_sets_and_echoes_request_id(incoming: str | None) -> None:
    headers = {REQUEST_ID_HEADER: incoming} if incoming else {}
    transport = ASGITransport(app=_echo_app())
    async with AsyncClient(transport=transport, base_url="http://test", headers=headers) as client:
        resp = await client.get("/check")

    assert resp.status_code == 200
    echoed = resp.headers[REQUEST_ID_HEADER]
    assert resp.json()["rid"] == echoed
    if incoming:
        assert echoed == incoming
    assert get_request_id() is None


def test_log_filter_stamps_request_id() -> None:
    record = logging.LogRecord("booking", logging.INFO, __file__, 1, "hello", None, None)
    log_filter = RequestIdLogFilter()

    set_request_id("req-log")
    assert log_filter.filter(record) is True
    assert record.request_id == "req-log"

    set_request_id(None)
    log_filter.filter(record)
    assert record.request_id == "-"
