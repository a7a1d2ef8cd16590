"""
tests/test_health.py -- Integration tests for GET /api/health.

Covers:
  - 200 response in the standard envelope with status, version and components
  - components.database reports 'ok' against the test stores
  - No authentication required
  - status is "degraded" when a store ping fails
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError


def test_health_returns_200_with_components(client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_no_auth_required(client):
    """Health endpoint is accessible without any authentication headers."""
    resp = client.get("/api/health", headers={})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"


def test_health_reports_degraded_when_database_fails(client, monkeypatch):
    """A failing ping flips status to 'degraded' and marks the database component."""

    def broken_ping():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(client.app.state.task_store, "ping", broken_ping)
    data = client.get("/api/health").json()["data"]
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"
