"""
Shared fixtures: an in-memory Amazon Ads API served through httpx.MockTransport.
"""

import gzip
import json
import os
from unittest.mock import patch

import httpx
import pytest

from ads_sync.services.report_catalog import REPORT_SPECS

TOKEN_URL = "https://api.amazon.com/auth/o2/token"
DOWNLOAD_HOST = "reports.example.com"

_KEY_BY_LABEL = {spec.label: spec.key for spec in REPORT_SPECS}


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeAdsApi:
    """
    Routes LwA, reporting, profile and campaign-list calls.
    Report ids are "rpt-<report key>" so tests can address them directly.
    """

    def __init__(self):
        self.token_status = 200
        self.token_body = {"access_token": "Atza|test-token", "expires_in": 3600}
        # report key -> [(status, text), ...] consumed by successive create calls, then success
        self.create_errors: dict[str, list[tuple[int, str]]] = {}
        # report id -> successive status payloads (dict) or HTTP error codes (int); the last repeats
        self.statuses: dict[str, list] = {}
        # report id -> rows served from the download URL
        self.payloads: dict[str, list] = {}
        self.profiles: list[dict] = []
        # campaign list path -> campaigns, or (status, text)
        self.campaigns: dict[str, object] = {}
        self.requests: list[httpx.Request] = []
        self.created: list[dict] = []

    def calls(self, method: str, path_prefix: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.startswith(path_prefix) and r.url.host != DOWNLOAD_HOST
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if str(request.url).startswith(TOKEN_URL):
            return httpx.Response(self.token_status, json=self.token_body)

        if request.url.host == DOWNLOAD_HOST:
            report_id = path.strip("/").split(".")[0]
            body = gzip.compress(json.dumps(self.payloads.get(report_id, [])).encode())
            return httpx.Response(200, content=body, headers={"content-type": "application/octet-stream"})

        if request.method == "POST" and path == "/reporting/reports":
            body = json.loads(request.content)
            self.created.append(body)
            key = _KEY_BY_LABEL[body["name"].split(" 20")[0]]
            queue = self.create_errors.get(key)
            if queue:
                status, text = queue.pop(0)
                return httpx.Response(status, text=text)
            return httpx.Response(200, json={"reportId": f"rpt-{key}", "status": "PENDING"})

        if request.method == "GET" and path.startswith("/reporting/reports/"):
            report_id = path.rsplit("/", 1)[-1]
            seq = self.statuses.get(report_id) or [{"status": "COMPLETED"}]
            item = seq.pop(0) if len(seq) > 1 else seq[0]
            if isinstance(item, int):
                return httpx.Response(item, text="upstream hiccup")
            status = dict(item, reportId=report_id)
            if status["status"] == "COMPLETED" and "url" not in status:
                status["url"] = f"https://{DOWNLOAD_HOST}/{report_id}.json.gz?X-Amz-Signature=abc"
            return httpx.Response(200, json=status)

        if path == "/v2/profiles":
            return httpx.Response(200, json=self.profiles)

        if path in self.campaigns:
            result = self.campaigns[path]
            if isinstance(result, tuple):
                return httpx.Response(result[0], text=result[1])
            return httpx.Response(200, json={"campaigns": result})

        return httpx.Response(404, text=f"NOT_FOUND: {path}")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api():
    return FakeAdsApi()


@pytest.fixture
def fast_settings():
    """No sleeps between submissions or polls, and a short poll ceiling."""
    from ads_sync.config import get_settings
    get_settings.cache_clear()
    with patch.dict(os.environ, {
        "REPORT_SUBMIT_DELAY_SECONDS": "0",
        "REPORT_POLL_INTERVAL_SECONDS": "0",
        "REPORT_MAX_POLLS": "3",
    }, clear=False):
        get_settings.cache_clear()
        yield get_settings()
    get_settings.cache_clear()
