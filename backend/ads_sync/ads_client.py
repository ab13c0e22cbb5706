"""
Amazon Ads API Client
Thin authenticated wrapper over the Amazon Advertising REST API (v3 reporting,
v2 profiles, campaign list endpoints) plus unauthenticated report downloads.
"""

import logging
from typing import Any, Optional

import httpx

from ads_sync.config import get_settings

logger = logging.getLogger(__name__)

# ── Region URL Mapping ────────────────────────────────────────────────
REGION_URLS = {
    "na": "https://advertising-api.amazon.com",
    "eu": "https://advertising-api-eu.amazon.com",
    "fe": "https://advertising-api-fe.amazon.com",
}

REPORT_CONTENT_TYPE = "application/vnd.createasyncreportrequest.v3+json"

# Campaign list endpoints per ad type: (path, media type)
CAMPAIGN_LIST_ENDPOINTS = {
    "sp": ("/sp/campaigns/list", "application/vnd.spCampaign.v3+json"),
    "sb": ("/sb/v4/campaigns/list", "application/vnd.sbcampaignresource.v4+json"),
    "sd": ("/sd/campaigns/list", "application/json"),
}


class ApiError(Exception):
    """Non-success HTTP response from the Amazon Ads API or a report download."""

    def __init__(self, status: int, body_excerpt: str, method: str = "", endpoint: str = ""):
        self.status = status
        self.body_excerpt = body_excerpt
        self.method = method
        self.endpoint = endpoint
        super().__init__(f"Ads API {status}: {body_excerpt}")


def _excerpt(text: str, limit: int) -> str:
    """Truncate to ``limit`` bytes of UTF-8 without splitting a character."""
    raw = text.encode("utf-8")
    if len(raw) <= limit:
        return text
    return raw[:limit].decode("utf-8", errors="ignore")


class AmazonAdsClient:
    """
    Wrapper around the Amazon Ads REST API.
    Each instance carries one bearer token and (optionally) one profile scope.
    Pass a shared ``httpx.AsyncClient`` to reuse connections across calls.
    """

    def __init__(
        self,
        client_id: str,
        access_token: str,
        region: str = "na",
        profile_id: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.access_token = access_token
        self.region = region.lower()
        self.profile_id = profile_id
        self.http = http

    @property
    def base_url(self) -> str:
        url = REGION_URLS.get(self.region)
        if not url:
            raise ValueError(f"Unsupported region: {self.region}. Use na, eu, or fe.")
        return url

    @property
    def headers(self) -> dict[str, str]:
        h = {
            "Authorization": f"Bearer {self.access_token}",
            "Amazon-Advertising-API-ClientId": self.client_id,
            "Content-Type": "application/json",
        }
        # Profile scope is required for everything except /v2/profiles
        if self.profile_id:
            h["Amazon-Advertising-API-Scope"] = str(self.profile_id)
        return h

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self.http is not None:
            return await self.http.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=get_settings().http_timeout_seconds) as http:
            return await http.request(method, url, **kwargs)

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """
        Execute an authenticated call. Returns parsed JSON when the response
        declares a JSON content type, otherwise the raw text.
        Raises ApiError on any non-2xx status.
        """
        merged = self.headers
        if headers:
            merged.update(headers)

        resp = await self._send(method, f"{self.base_url}{endpoint}", headers=merged, json=json)

        if not resp.is_success:
            excerpt = _excerpt(resp.text, get_settings().api_error_excerpt_bytes)
            logger.error(f"[AdsAPI] {method} {endpoint} → {resp.status_code}: {excerpt[:300]}")
            raise ApiError(resp.status_code, excerpt, method=method, endpoint=endpoint)

        content_type = resp.headers.get("content-type", "")
        if "json" in content_type:
            return resp.json()
        return resp.text

    # ── Reporting ─────────────────────────────────────────────────────

    async def create_report(self, body: dict) -> dict:
        """POST /reporting/reports, returns {"reportId", "status", ...}."""
        return await self.request(
            "POST", "/reporting/reports", json=body,
            headers={"Content-Type": REPORT_CONTENT_TYPE},
        )

    async def get_report(self, report_id: str) -> dict:
        """GET /reporting/reports/{id}, returns {"status", "url"?, "statusDetails"?}."""
        return await self.request("GET", f"/reporting/reports/{report_id}")

    async def download(self, url: str) -> httpx.Response:
        """
        Fetch a completed report from its pre-signed URL. The URL carries
        its own signature, so no Amazon headers are sent.
        """
        resp = await self._send("GET", url)
        if not resp.is_success:
            excerpt = _excerpt(resp.text, get_settings().api_error_excerpt_bytes)
            raise ApiError(resp.status_code, f"Download failed: {excerpt[:200]}", method="GET", endpoint=url)
        return resp

    # ── Profiles & campaigns ──────────────────────────────────────────

    async def list_profiles(self) -> list[dict]:
        result = await self.request("GET", "/v2/profiles")
        return result if isinstance(result, list) else []

    async def list_campaigns(self, ad_type: str, max_results: int = 100) -> list[dict]:
        """List enabled and paused campaigns for one ad type (sp, sb or sd)."""
        endpoint, media_type = CAMPAIGN_LIST_ENDPOINTS[ad_type]
        result = await self.request(
            "POST", endpoint,
            json={"stateFilter": {"include": ["ENABLED", "PAUSED"]}, "maxResults": max_results},
            headers={"Content-Type": media_type, "Accept": media_type},
        )
        if isinstance(result, dict):
            return result.get("campaigns") or []
        return result if isinstance(result, list) else []
