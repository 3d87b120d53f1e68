"""
Health endpoint tests.
"""

import pytest
from fastapi.testclient import TestClient

from dentalsync.app import app


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


def test_health_endpoint(client):
    """Test that the /health endpoint returns 200 OK."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert "data" in data
    assert data["data"]["status"] == "healthy"
    assert "timestamp" in data["data"]
    assert "version" in data["data"]
    assert "service" in data["data"]


def test_health_ready_endpoint(client, monkeypatch):
    """Readiness reports the database check result."""

    async def fake_ping(settings):
        return True

    monkeypatch.setattr("dentalsync.api.routers.health.ping", fake_ping)
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["data"]["ready"] is True
    assert data["data"]["checks"]["database"] == "ok"


def test_health_ready_reports_database_failure(client, monkeypatch):
    async def failing_ping(settings):
        raise ConnectionError("no servers available")

    monkeypatch.setattr("dentalsync.api.routers.health.ping", failing_ping)
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["data"]["ready"] is False
    assert data["data"]["checks"]["database"].startswith("error:")


def test_root_endpoint(client):
    """Test that the root endpoint returns API information."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert "version" in data
    assert "status" in data
    assert data["status"] == "running"
