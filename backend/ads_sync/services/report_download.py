"""
Report Download — Fetches completed report payloads and decodes them.

Reports are requested as GZIP_JSON, but the body may arrive gzipped,
already inflated by the transport, as a single JSON array or as
newline-delimited JSON.
"""

import asyncio
import gzip
import json
import logging
import zlib
from typing import Optional, Sequence

from ads_sync.ads_client import AmazonAdsClient
from ads_sync.models import JobStatus, ReportJob
from ads_sync.utils import Deadline

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


class DecodeError(Exception):
    """Payload is not a (possibly gzipped) JSON array of rows."""


def _gzip_hinted(content_type: str, content_encoding: str, url: str) -> bool:
    path = (url or "").split("?", 1)[0]
    return (
        "gzip" in (content_type or "").lower()
        or "gzip" in (content_encoding or "").lower()
        or ".gz" in path
    )


def parse_json_rows(text: str):
    """Whole-document JSON first, then newline-delimited JSON (bad lines dropped)."""
    try:
        return json.loads(text)
    except ValueError:
        logger.warning("[AdsSync] Whole-document JSON parse failed, trying line-delimited")

    rows = []
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            rows.append(json.loads(line))
        except ValueError:
            continue
    return rows


def decode_report_payload(
    content: bytes,
    content_type: str = "",
    content_encoding: str = "",
    url: str = "",
) -> list:
    """
    Decode a downloaded report body into a list of rows.
    Raises DecodeError when the result is not a JSON array.
    """
    if content[:2] == GZIP_MAGIC:
        try:
            content = gzip.decompress(content)
        except (OSError, EOFError, zlib.error) as e:
            raise DecodeError(f"corrupt gzip stream: {e}") from e
    elif _gzip_hinted(content_type, content_encoding, url):
        # httpx inflates Content-Encoding: gzip bodies itself
        logger.debug("[AdsSync] gzip hinted but body is already inflated")

    text = content.decode("utf-8-sig", errors="replace")
    rows = parse_json_rows(text)
    if not isinstance(rows, list):
        raise DecodeError(f"expected array, got {type(rows).__name__}")
    return rows


class ReportDownloader:
    """Downloads every completed job; one failure never blocks the others."""

    def __init__(self, client: AmazonAdsClient):
        self.client = client

    async def fetch(self, job: ReportJob, deadline: Optional[Deadline] = None) -> Optional[list]:
        """
        Download and decode one job. Download failures, including running out
        of invocation time, move the job to ERROR and return None;
        undecodable payloads count as zero rows.
        """
        deadline = deadline or Deadline(None)
        if not job.download_url:
            job.status = JobStatus.ERROR
            job.error = "Report completed without a download URL"
            logger.error(f"[AdsSync] {job.label}: {job.error}")
            return None

        if deadline.expired:
            job.status = JobStatus.ERROR
            job.error = "Download skipped: sync deadline reached"
            logger.error(f"[AdsSync] {job.label}: {job.error}")
            return None

        try:
            remaining = deadline.remaining()
            if remaining is None:
                resp = await self.client.download(job.download_url)
            else:
                resp = await asyncio.wait_for(self.client.download(job.download_url), timeout=remaining)
        except asyncio.TimeoutError:
            job.status = JobStatus.ERROR
            job.error = "Download timed out: sync deadline reached"
            logger.error(f"[AdsSync] {job.label}: {job.error}")
            return None
        except Exception as e:
            job.status = JobStatus.ERROR
            job.error = str(e)
            logger.error(f"[AdsSync] Error downloading {job.label} report: {e}")
            return None

        try:
            rows = decode_report_payload(
                resp.content,
                content_type=resp.headers.get("content-type", ""),
                content_encoding=resp.headers.get("content-encoding", ""),
                url=job.download_url,
            )
        except DecodeError as e:
            logger.warning(f"[AdsSync] {job.label}: discarding report, {e}")
            return []

        logger.info(f"[AdsSync] {job.label}: {len(rows)} rows downloaded")
        return rows

    async def fetch_all(
        self, jobs: Sequence[ReportJob], deadline: Optional[Deadline] = None,
    ) -> tuple[dict[str, list], list[ReportJob]]:
        """Returns ({report key: raw rows}, jobs that failed to download)."""
        reports: dict[str, list] = {}
        failed: list[ReportJob] = []
        for job in jobs:
            rows = await self.fetch(job, deadline)
            if rows is None:
                failed.append(job)
            else:
                reports[job.key] = rows
        return reports, failed
