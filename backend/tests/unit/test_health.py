from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from activity_log.main import app


def test_health_returns_status_and_services(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded")
    assert "version" in data
    assert "services" in data
    assert "cosmos_db" in data["services"]
    assert "identity_provider" in data["services"]


def test_health_not_configured_is_healthy(client):
    response = client.get("/api/health")
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["cosmos_db"] == "not_configured"
    assert data["services"]["identity_provider"] == "not_configured"


def test_health_reports_failing_component_as_degraded(client):
    store = MagicMock()
    store.initialized = True
    store.check_connection = AsyncMock(return_value=False)
    app.state.document_store = store

    data = client.get("/api/health").json()

    assert data["status"] == "degraded"
    assert data["services"]["cosmos_db"] == "error"


def test_readiness_probe(client):
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["ready"] is True


def test_health_protected_requires_auth(client):
    response = client.get("/api/health/protected")
    assert response.status_code == 401


def test_health_protected_with_auth(authenticated_client):
    response = authenticated_client.get("/api/health/protected")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["user"]["email"] == "maria@example.com"
