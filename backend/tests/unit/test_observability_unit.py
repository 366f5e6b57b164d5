from __future__ import annotations

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from starlette.types import Scope

from broodlytics import __version__
from broodlytics.core.errors import InsufficientData, InvalidInput, ReferenceLookupMiss, UnreachableTarget
from broodlytics.observability.instrument import _result_size, log_job
from broodlytics.observability.logging import _round_floats, service_context
from broodlytics.observability.metrics import _percentile
from broodlytics.observability.middleware import (
    growth_engine_error_handler,
    register_request_middleware,
    status_for,
    unhandled_exception_handler,
)
from broodlytics.schemas.growth import GrowthReport


def _request(request_id: str | None = "abc-123") -> Request:
    scope: Scope = {"type": "http", "method": "POST", "path": "/", "headers": []}
    request = Request(scope)
    if request_id:
        request.state.request_id = request_id
    return request


def test_request_context_adds_request_id_header():
    app = FastAPI()
    register_request_middleware(app)

    @app.get("/ok")
    def ok_route():
        return {"ok": True}

    resp = TestClient(app).get("/ok", headers={"x-request-id": "given-id"})
    assert resp.status_code == 200
    assert resp.headers.get("X-Request-Id") == "given-id"


def test_unhandled_exception_returns_request_id():
    response = unhandled_exception_handler(_request(), RuntimeError("boom"))
    assert response.status_code == 500
    assert b"abc-123" in response.body


@pytest.mark.parametrize(
    "exc,status",
    [
        (InvalidInput("bad"), 400),
        (ReferenceLookupMiss("missing"), 404),
        (UnreachableTarget("flat"), 422),
        (InsufficientData("empty"), 422),
    ],
)
def test_engine_errors_map_to_status(exc, status):
    assert status_for(exc) == status


def test_engine_error_handler_builds_fail_envelope():
    response = growth_engine_error_handler(_request(), InvalidInput("target weight must be positive", details={"target_weight": -1}))
    assert response.status_code == 400
    assert b'"ok":false' in response.body
    assert b"INVALID_INPUT" in response.body
    assert b"abc-123" in response.body


def test_log_job_passes_results_and_errors_through():
    @log_job("test.ok")
    def double(x):
        return [x, x]

    @log_job("test.fail")
    def explode():
        raise InvalidInput("nope")

    assert double(3) == [3, 3]
    assert double.__name__ == "double"
    with pytest.raises(InvalidInput):
        explode()


def test_result_size():
    assert _result_size([1, 2, 3]) == 3
    assert _result_size(None) is None
    assert _result_size(GrowthReport(days=(), trend=None, forecast=())) == 0
    assert _result_size(object()) is None


def test_percentile_interpolates():
    assert _percentile([], 50) == 0.0
    assert _percentile([10.0], 95) == 10.0
    assert _percentile([10.0, 20.0, 30.0, 40.0], 50) == pytest.approx(25.0)


def test_service_context_stamps_events_without_overriding():
    add = service_context("test")
    event = add(None, "info", {"event": "forecast.step"})
    assert event == {"event": "forecast.step", "service": "broodlytics", "env": "test", "version": __version__}
    assert add(None, "info", {"event": "x", "env": "prod"})["env"] == "prod"


def test_float_fields_are_rounded_for_logs():
    event = _round_floats(None, "debug", {"event": "anomaly.corrected", "weight": 262.123456, "day": 4, "gain": 1 / 3})
    assert event == {"event": "anomaly.corrected", "weight": 262.123, "day": 4, "gain": 0.333}
