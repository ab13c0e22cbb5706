"""
Report Jobs — Submits one async report per catalog entry and classifies
submission failures.

Amazon Ads signals most conditions only as free text in the error body, so
every known signature lives in SUBMISSION_SIGNATURES; orchestration code only
ever sees the resulting SubmissionFailure category.
"""

import asyncio
import enum
import logging
import re
from typing import Iterable, Optional, Sequence

from ads_sync.ads_client import AmazonAdsClient, ApiError
from ads_sync.config import get_settings
from ads_sync.models import JobStatus, ReportJob, TERMINAL_STATUSES
from ads_sync.services.report_catalog import ReportSpec
from ads_sync.utils import Deadline

logger = logging.getLogger(__name__)


class SubmissionFailure(str, enum.Enum):
    # Upstream column set changed; renegotiate and resubmit
    SCHEMA_DRIFT = "schema_drift"
    # Identical report already exists upstream; reuse its id
    DUPLICATE = "duplicate"
    # Account has no such ad product; skip silently
    ABSENT = "absent"
    OTHER = "other"


# (category, HTTP statuses, substrings that must ALL appear). Checked in order.
SUBMISSION_SIGNATURES: tuple[tuple[SubmissionFailure, frozenset, tuple[str, ...]], ...] = (
    (SubmissionFailure.SCHEMA_DRIFT, frozenset(), ("invalid values", "Allowed values")),
    (SubmissionFailure.DUPLICATE, frozenset({425}), ()),
    (SubmissionFailure.DUPLICATE, frozenset(), ("duplicate of",)),
    (SubmissionFailure.ABSENT, frozenset({401, 404}), ()),
    (SubmissionFailure.ABSENT, frozenset(), ("AccountNotFound",)),
    (SubmissionFailure.ABSENT, frozenset(), ("UNAUTHORIZED",)),
    (SubmissionFailure.ABSENT, frozenset(), ("NOT_FOUND",)),
)

# Minimum columns for a usable report: date plus at least two metrics
MIN_NEGOTIATED_COLUMNS = 3

CORE_COLUMNS = ("date", "impressions", "clicks", "cost", "campaignName", "campaignId")

_METRIC_COLUMN_PATTERN = re.compile(r"sales|purchases|units|dpv|detailPageView", re.IGNORECASE)
_DUPLICATE_ID_PATTERN = re.compile(r"duplicate of\s*:?\s*([A-Za-z0-9-]+)", re.IGNORECASE)


def classify_submission_error(exc: Exception) -> SubmissionFailure:
    """Map a report-creation failure onto a SubmissionFailure category."""
    status = exc.status if isinstance(exc, ApiError) else None
    text = str(exc)
    for category, statuses, needles in SUBMISSION_SIGNATURES:
        if statuses and status not in statuses:
            continue
        if needles and not all(n in text for n in needles):
            continue
        return category
    return SubmissionFailure.OTHER


def parse_allowed_columns(text: str) -> list[str]:
    """Extract the column list from "... Allowed values: (a, b, c)"."""
    for pattern in (r"Allowed values:\s*\((.*?)\)", r"Allowed values:\s*\[(.*?)\]"):
        match = re.search(pattern, text, re.DOTALL)
        if match:
            return [c.strip().strip("'\"") for c in match.group(1).split(",") if c.strip()]
    # Truncated bodies lose the closing bracket
    match = re.search(r"Allowed values:\s*([^\r\n]+)", text)
    if match:
        raw = match.group(1).replace("(", "").replace(")", "").replace("[", "").replace("]", "")
        raw = raw.split('"')[0]
        return [c.strip().strip("'") for c in raw.split(",") if c.strip()]
    return []


def fallback_columns(allowed: Sequence[str]) -> list[str]:
    """Core columns plus every allowed sales/purchase/unit/DPV metric."""
    columns = list(CORE_COLUMNS)
    for col in allowed:
        if col not in columns and _METRIC_COLUMN_PATTERN.search(col):
            columns.append(col)
    return columns


def negotiate_columns(requested: Sequence[str], allowed: Sequence[str]) -> list[str]:
    """
    Requested columns the upstream still accepts, in requested order. When
    fewer than three survive the request is useless, so fall back to the
    core set.
    """
    allowed_set = set(allowed)
    kept = [c for c in requested if c in allowed_set]
    if len(kept) >= MIN_NEGOTIATED_COLUMNS:
        return kept
    return fallback_columns(allowed)


def extract_duplicate_report_id(text: str) -> Optional[str]:
    match = _DUPLICATE_ID_PATTERN.search(text)
    return match.group(1) if match else None


def build_report_body(spec: ReportSpec, start_date: str, end_date: str, columns=None) -> dict:
    return {
        "name": f"{spec.label} {start_date} to {end_date}",
        "startDate": start_date,
        "endDate": end_date,
        "configuration": spec.configuration(columns),
    }


class ReportJobOrchestrator:
    """Creates upstream report jobs for a list of specs, one at a time."""

    def __init__(self, client: AmazonAdsClient, submit_delay: Optional[float] = None):
        self.client = client
        self.submit_delay = (
            get_settings().report_submit_delay_seconds if submit_delay is None else submit_delay
        )

    async def submit_all(
        self,
        specs: Sequence[ReportSpec],
        start_date: str,
        end_date: str,
        existing: Iterable[ReportJob] = (),
        deadline: Optional[Deadline] = None,
    ) -> list[ReportJob]:
        """
        Submit every spec not already represented in ``existing``.
        Returns the existing jobs followed by the new ones; specs skipped as
        absent produce no job at all.
        """
        jobs = list(existing)
        represented = {j.key for j in jobs if j.report_id or j.status in TERMINAL_STATUSES}
        deadline = deadline or Deadline(None)
        submitted = 0

        for spec in specs:
            if spec.key in represented:
                continue
            if deadline.expired:
                logger.warning(f"[AdsSync] Deadline reached before submitting {spec.label}; stopping submissions")
                break
            if submitted:
                await asyncio.sleep(deadline.clip(self.submit_delay))
            submitted += 1

            job = await self.submit(spec, start_date, end_date)
            if job is not None:
                jobs.append(job)
        return jobs

    async def submit(self, spec: ReportSpec, start_date: str, end_date: str) -> Optional[ReportJob]:
        """
        Submit one spec, renegotiating columns on schema drift.
        Returns None when the account simply lacks this ad product.
        """
        columns = list(spec.columns)
        tried_fallback = False

        logger.info(f"[AdsSync] Creating {spec.label} report...")
        while True:
            try:
                created = await self.client.create_report(
                    build_report_body(spec, start_date, end_date, columns)
                )
            except Exception as e:
                category = classify_submission_error(e)

                if category is SubmissionFailure.ABSENT:
                    logger.info(f"[AdsSync] {spec.label} not available for this account, skipping")
                    return None

                if category is SubmissionFailure.DUPLICATE:
                    report_id = extract_duplicate_report_id(str(e))
                    if report_id:
                        logger.info(f"[AdsSync] {spec.label} duplicates existing report {report_id}, reusing it")
                        return self._job(spec, report_id=report_id)

                if category is SubmissionFailure.SCHEMA_DRIFT and not tried_fallback:
                    allowed = parse_allowed_columns(str(e))
                    if allowed:
                        negotiated = negotiate_columns(columns, allowed)
                        fallback = fallback_columns(allowed)
                        if negotiated == columns or negotiated == fallback:
                            tried_fallback = True
                            negotiated = fallback
                        logger.warning(
                            f"[AdsSync] {spec.label} columns rejected, retrying with "
                            f"{len(negotiated)} columns: {negotiated}"
                        )
                        columns = negotiated
                        continue

                logger.error(f"[AdsSync] Failed to create {spec.label} report: {e}")
                return self._job(spec, status=JobStatus.ERROR, error=str(e))

            report_id = created.get("reportId") if isinstance(created, dict) else None
            if not report_id:
                logger.error(f"[AdsSync] {spec.label} create response had no reportId: {str(created)[:200]}")
                return self._job(spec, status=JobStatus.ERROR, error="Report creation returned no reportId")

            logger.info(f"[AdsSync] {spec.label} report created: {report_id} ({created.get('status')})")
            return self._job(spec, report_id=str(report_id))

    @staticmethod
    def _job(spec: ReportSpec, report_id=None, status=JobStatus.PROCESSING, error=None) -> ReportJob:
        return ReportJob(
            report_id=report_id,
            key=spec.key,
            label=spec.label,
            ad_type=spec.ad_type,
            status=status,
            error=error,
        )
