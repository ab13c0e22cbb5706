"""
Tests for the FastAPI application and health endpoint.
"""

import pytest
from httpx import AsyncClient, ASGITransport


@pytest.mark.anyio
async def test_health_endpoint():
    """Health endpoint reports service name and version; there is no database to check."""
    from ads_sync.main import app, APP_VERSION
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "Amazon Ads Sync"
        assert data["version"] == APP_VERSION


@pytest.mark.anyio
async def test_sync_route_is_mounted():
    from ads_sync.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/ads/sync")
        # POST-only route
        assert response.status_code == 405
