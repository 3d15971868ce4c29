"""Tests for health endpoints"""
from fastapi.testclient import TestClient


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness(client: TestClient):
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["checks"]["database"] is True
    assert data["checks"]["media_tokens"] is True


def test_liveness(client: TestClient):
    assert client.get("/health/live").json()["status"] == "alive"


def test_stats_requires_admin(client: TestClient, admin_headers, course):
    assert client.get("/health/stats").status_code == 401

    data = client.get("/health/stats", headers=admin_headers).json()
    assert data["courses"] == {"total": 1, "active": 1}
    assert data["revocation_backend"] == "memory"


def test_unknown_route_uses_error_shape(client: TestClient):
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json()["success"] is False
