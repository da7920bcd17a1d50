import json

from fastapi.middleware.cors import CORSMiddleware
from fastapi.testclient import TestClient

from skincheck.main import CORS_ORIGINS, app
from skincheck.services.assessor_roster import ASSESSOR_KEY, AssessorRoster
from skincheck.services.evaluation_feed import EvaluationFeed


def _get_cors_middleware():
    for middleware in app.user_middleware:
        if middleware.cls is CORSMiddleware:
            return middleware
    raise AssertionError("CORSMiddleware not configured")


def test_lifespan_wires_state_from_settings(monkeypatch):
    monkeypatch.setenv("LATEST_EVALUATION_LIMIT", "7")

    with TestClient(app):
        assert app.state.lifespan_started is True
        assert isinstance(app.state.feed, EvaluationFeed)
        assert app.state.feed.latest_limit == 7
        assert isinstance(app.state.roster, AssessorRoster)
    assert app.state.lifespan_shutdown is True


def test_router_mounts_api_prefix():
    paths = {route.path for route in app.router.routes}
    assert "/api/healthz" in paths
    assert "/api/evaluations" in paths
    assert "/api/summaries/dashboard" in paths
    assert "/ws/evaluations" in paths


def test_healthcheck_is_open():
    with TestClient(app) as client:
        response = client.get("/api/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_cors_defaults():
    middleware = _get_cors_middleware()
    assert middleware.kwargs["allow_origins"] == CORS_ORIGINS
    assert middleware.kwargs["allow_methods"] == ["*"]
    assert middleware.kwargs["allow_headers"] == ["*"]


def test_routes_resolve_state_built_by_lifespan(tmp_path):
    (tmp_path / "assessors.json").write_text(
        json.dumps({ASSESSOR_KEY: ["鈴木"]}), encoding="utf-8"
    )

    with TestClient(app) as client:
        response = client.get("/api/assessors", headers={"X-Access-Key": "ward-secret"})

    assert response.status_code == 200
    assert response.json() == {"assessors": ["鈴木"]}
