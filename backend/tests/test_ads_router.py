"""
Tests for the POST /api/ads/sync entry point.
"""

import pytest
from unittest.mock import patch, AsyncMock
from httpx import AsyncClient, ASGITransport

from ads_sync.routers.ads import get_http_client

CREDENTIALS = {
    "adsClientId": "amzn1.application-oa2-client.test",
    "adsClientSecret": "secret",
    "adsRefreshToken": "Atzr|refresh",
}


@pytest.fixture
def app(fake_api, fast_settings):
    from ads_sync.main import app

    async def _fake_http():
        async with fake_api.client() as http:
            yield http

    app.dependency_overrides[get_http_client] = _fake_http
    yield app
    app.dependency_overrides.clear()


async def _post(app, body):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/api/ads/sync", json=body)


@pytest.mark.anyio
async def test_missing_credentials(app):
    response = await _post(app, {"syncType": "daily", "adsProfileId": "1"})
    assert response.status_code == 400
    assert "credentials" in response.json()["detail"]


@pytest.mark.anyio
async def test_unknown_sync_type(app):
    response = await _post(app, {**CREDENTIALS, "syncType": "hourly"})
    assert response.status_code == 400
    assert "hourly" in response.json()["detail"]


@pytest.mark.anyio
@pytest.mark.parametrize("sync_type", ["daily", "campaigns"])
async def test_profile_required(app, sync_type):
    response = await _post(app, {**CREDENTIALS, "syncType": sync_type})
    assert response.status_code == 400
    assert "Profile ID" in response.json()["detail"]


@pytest.mark.anyio
async def test_token_failure_is_401(app, fake_api):
    fake_api.token_status = 400
    fake_api.token_body = {"error": "invalid_grant", "error_description": "The request has an invalid grant parameter"}
    response = await _post(app, {**CREDENTIALS, "adsProfileId": "1", "syncType": "daily"})
    assert response.status_code == 401
    assert "invalid grant parameter" in response.json()["detail"]


@pytest.mark.anyio
async def test_connection_test_reports_failure_in_band(app, fake_api):
    fake_api.token_status = 400
    fake_api.token_body = {"error": "invalid_grant"}
    response = await _post(app, {**CREDENTIALS, "syncType": "test"})
    assert response.status_code == 200
    assert response.json()["success"] is False
    assert "error" in response.json()


@pytest.mark.anyio
async def test_profiles(app, fake_api):
    fake_api.profiles = [{"profileId": 42, "countryCode": "US", "accountInfo": {"type": "seller", "name": "Main"}}]
    response = await _post(app, {**CREDENTIALS, "syncType": "profiles"})
    assert response.status_code == 200
    assert response.json()["profiles"][0]["profileId"] == "42"


@pytest.mark.anyio
async def test_daily_sync(app, fake_api):
    fake_api.payloads["rpt-sp_campaigns"] = [
        {"date": "2024-01-01", "campaignName": "Brand", "cost": 10, "sales7d": 40, "clicks": 5, "impressions": 100},
    ]
    # Numeric profile ids are accepted
    response = await _post(app, {**CREDENTIALS, "adsProfileId": 123456, "syncType": "daily",
                                 "startDate": "2024-01-01", "endDate": "2024-01-31"})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "complete"
    assert data["summary"]["totalSpend"] == 10
    assert fake_api.calls("POST", "/reporting/reports")[0].headers["amazon-advertising-api-scope"] == "123456"


@pytest.mark.anyio
async def test_campaigns(app, fake_api):
    fake_api.campaigns["/sp/campaigns/list"] = [{"campaignId": "1", "name": "Brand", "state": "PAUSED"}]
    response = await _post(app, {**CREDENTIALS, "adsProfileId": "1", "syncType": "campaigns"})
    assert response.status_code == 200
    assert response.json()["summary"]["sp"] == 1


@pytest.mark.anyio
async def test_invalid_date_is_400(app):
    response = await _post(app, {**CREDENTIALS, "adsProfileId": "1", "syncType": "daily", "startDate": "yesterday"})
    assert response.status_code == 400
    assert "startDate" in response.json()["detail"]


@pytest.mark.anyio
async def test_unexpected_error_is_sanitized(app):
    with patch(
        "ads_sync.routers.ads.AdsSyncService.sync_daily",
        new_callable=AsyncMock,
        side_effect=RuntimeError("refresh token Atzr|leak"),
    ):
        response = await _post(app, {**CREDENTIALS, "adsProfileId": "1", "syncType": "daily"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Amazon Ads sync failed."
    assert "leak" not in response.text


@pytest.mark.anyio
async def test_configuration_value_error_is_not_a_client_error(app):
    with patch(
        "ads_sync.routers.ads.AdsSyncService.sync_daily",
        new_callable=AsyncMock,
        side_effect=ValueError("Unsupported Amazon Ads region: mars"),
    ):
        response = await _post(app, {**CREDENTIALS, "adsProfileId": "1", "syncType": "daily"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Amazon Ads sync failed."
