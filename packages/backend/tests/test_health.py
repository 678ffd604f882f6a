"""Health endpoint tests."""

import pytest

from devfolio import __version__


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint reports server, database and version."""
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert data["version"] == __version__


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    resp = await client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.json() == {"statusCode": 404, "message": "Not Found", "success": False}
