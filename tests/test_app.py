"""
Tests for the application shell: system endpoints, error envelopes,
request tracing and demo seeding.
"""

from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.exceptions import StoreError
from app.main import GENERIC_ERROR_MESSAGE, create_app
from app.storage.memory import MemoryStore


def test_health_reports_store(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"]["store"]["backend"] == "memory"


def test_health_unhealthy_store_returns_503(client, store, monkeypatch):
    async def broken_query(kind, filters=None, newest_first_by=None):
        raise StoreError("query")

    monkeypatch.setattr(store, "_query", broken_query)

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_version_root_and_info(client):
    assert client.get("/version").json()["version"] == "1.0.0"
    assert client.get("/").json()["api_prefix"] == "/api"
    assert client.get("/api/info").json()["storage_backend"] == "memory"


def test_metrics_endpoint(client):
    client.get("/api/stats")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_request_id_header(client):
    response = client.get("/api/stats")

    assert response.headers["X-Request-ID"]
    assert response.headers["X-Response-Time"].endswith("s")


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] is True
    assert body["error_code"] == "RESOURCE_NOT_FOUND"
    assert "timestamp" in body


def test_malformed_json_is_a_validation_error(client):
    response = client.post(
        "/api/users/login",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_store_failure_hides_details(monkeypatch):
    store = MemoryStore()

    async def failing_list():
        raise StoreError("list_activities")

    monkeypatch.setattr(store, "list_activities", failing_list)

    with TestClient(create_app(store=store)) as client:
        response = client.get("/api/activities")

    assert response.status_code == 500
    assert response.json()["message"] == GENERIC_ERROR_MESSAGE
    assert response.json()["error_code"] == "INTERNAL_ERROR"


def test_unexpected_exception_hides_details(monkeypatch):
    store = MemoryStore()

    async def exploding_list():
        raise RuntimeError("connection string with password=hunter2")

    monkeypatch.setattr(store, "list_activities", exploding_list)

    with TestClient(create_app(store=store), raise_server_exceptions=False) as client:
        response = client.get("/api/activities")

    assert response.status_code == 500
    assert response.json()["message"] == GENERIC_ERROR_MESSAGE
    assert "hunter2" not in response.text


def test_demo_data_is_seeded_into_empty_store():
    config = Settings(STORAGE_BACKEND="memory", SEED_DEMO_DATA=True)

    with TestClient(create_app(config=config)) as client:
        stats = client.get("/api/stats").json()
        assert stats["responseTeams"] == 3
        assert stats["criticalCases"] == 1
        assert stats["pendingCases"] == 0
        assert stats["resolvedCases"] == 0

        login = client.post("/api/users/login", json={"username": "admin", "password": "admin123"})
        assert login.status_code == 200
        assert login.json()["userType"] == "admin"

        assert len(client.get("/api/medical-services").json()) == 3
        assert len(client.get("/api/system-status").json()) == 4
        assert len(client.get("/api/activities").json()) == 3
