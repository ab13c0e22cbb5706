"""
Ads Sync Service — Drives the Amazon Ads v3 reporting pipeline for one profile:
create reports -> poll -> download -> normalize -> aggregate.

Stateless: when reports are still generating at the end of the
time budget, the full job list goes back to the caller, who posts it again
as ``pendingReports`` to resume. Nothing is stored server-side.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

import httpx

from ads_sync.ads_client import AmazonAdsClient
from ads_sync.config import get_settings
from ads_sync.models import JobStatus, ReportJob
from ads_sync.services.aggregator import Aggregator
from ads_sync.services.normalizer import normalize_rows
from ads_sync.services.report_catalog import REPORT_SPECS, get_spec
from ads_sync.services.report_download import ReportDownloader
from ads_sync.services.report_jobs import ReportJobOrchestrator
from ads_sync.services.report_poller import PollResult, ReportPoller
from ads_sync.services.token_service import fetch_access_token
from ads_sync.utils import Deadline

logger = logging.getLogger(__name__)


# ── Date-range helpers ────────────────────────────────────────────────

class InvalidDateRange(ValueError):
    """A caller-supplied startDate or endDate is not a YYYY-MM-DD date."""


def _parse_date(value: str, field_name: str) -> date:
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidDateRange(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)")


def resolve_date_range(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    days_back: Optional[int] = None,
    today: Optional[date] = None,
) -> tuple[str, str]:
    """
    Return (start, end) ISO dates for a sync.
    Defaults to the last ``default_days_back`` days, never more than
    ``max_days_back``; the end is clamped to yesterday because today's
    data is incomplete.
    """
    settings = get_settings()
    today = today or date.today()
    yesterday = today - timedelta(days=1)

    days = days_back if days_back and days_back > 0 else settings.default_days_back
    days = min(days, settings.max_days_back)

    end_d = _parse_date(end_date, "endDate") if end_date else today
    start_d = _parse_date(start_date, "startDate") if start_date else today - timedelta(days=days)

    end_d = min(end_d, yesterday)
    start_d = min(start_d, end_d)
    return start_d.isoformat(), end_d.isoformat()


# ── Campaign snapshot mapping ─────────────────────────────────────────

def _campaign_snapshot_row(c: dict, ad_type: str) -> dict:
    budget = c.get("budget")
    row = {
        "id": c.get("campaignId"),
        "name": c.get("name"),
        "state": c.get("state"),
        "budget": budget.get("budget") if isinstance(budget, dict) else budget,
        "budgetType": budget.get("budgetType") if isinstance(budget, dict) else c.get("budgetType"),
        "startDate": c.get("startDate"),
    }
    if ad_type == "sp":
        row["targetingType"] = c.get("targetingType")
    elif ad_type == "sd":
        row["tactic"] = c.get("tactic")
    return row


def _profile_name(p: dict) -> str:
    info = p.get("accountInfo") or {}
    return info.get("name") or info.get("brandName") or f"Profile {p.get('profileId')}"


class AdsSyncService:
    """One instance per inbound request; shares a single httpx client across calls."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        profile_id: Optional[str] = None,
        region: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.profile_id = profile_id
        self.region = region or get_settings().ads_region
        self.http = http

    async def connect(self, scoped: bool = True) -> AmazonAdsClient:
        """Exchange the refresh token and build an API client. Raises AuthError."""
        token = await fetch_access_token(
            self.client_id, self.client_secret, self.refresh_token, http=self.http
        )
        return AmazonAdsClient(
            client_id=self.client_id,
            access_token=token,
            region=self.region,
            profile_id=self.profile_id if scoped else None,
            http=self.http,
        )

    # ── Profiles ──────────────────────────────────────────────────────

    async def test_connection(self) -> dict:
        client = await self.connect(scoped=False)
        profiles = await client.list_profiles()

        us_sellers = [
            p for p in profiles
            if p.get("countryCode") == "US" and (p.get("accountInfo") or {}).get("type") == "seller"
        ]
        recommended = us_sellers[0] if us_sellers else (profiles[0] if profiles else None)

        return {
            "success": True,
            "profiles": [
                {
                    "profileId": str(p.get("profileId")),
                    "countryCode": p.get("countryCode"),
                    "accountType": (p.get("accountInfo") or {}).get("type"),
                    "name": _profile_name(p),
                    "marketplaceId": (p.get("accountInfo") or {}).get("marketplaceStringId"),
                }
                for p in profiles
            ],
            "recommended": str(recommended["profileId"]) if recommended else None,
        }

    async def list_profiles(self) -> dict:
        client = await self.connect(scoped=False)
        profiles = await client.list_profiles()
        return {
            "success": True,
            "profiles": [
                {
                    "profileId": str(p.get("profileId")),
                    "countryCode": p.get("countryCode"),
                    "type": (p.get("accountInfo") or {}).get("type"),
                    "name": _profile_name(p),
                    "marketplace": (p.get("accountInfo") or {}).get("marketplaceStringId"),
                }
                for p in profiles
            ],
        }

    # ── Campaign snapshot ─────────────────────────────────────────────

    async def campaign_snapshot(self) -> dict:
        """Current SP/SB/SD campaign lists. An ad type the account lacks yields []."""
        client = await self.connect()
        campaigns = {}
        for ad_type in ("sp", "sb", "sd"):
            try:
                raw = await client.list_campaigns(ad_type)
                campaigns[ad_type] = [_campaign_snapshot_row(c, ad_type) for c in raw]
            except Exception as e:
                logger.info(f"[AdsSync] {ad_type.upper()} campaigns list not available: {e}")
                campaigns[ad_type] = []

        return {
            "success": True,
            "syncType": "campaigns",
            "summary": {
                "total": sum(len(v) for v in campaigns.values()),
                **{ad_type: len(v) for ad_type, v in campaigns.items()},
            },
            "campaigns": campaigns,
        }

    # ── Daily report sync ─────────────────────────────────────────────

    async def sync_daily(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        days_back: Optional[int] = None,
        pending_reports: Optional[Sequence[ReportJob]] = None,
        deadline: Optional[Deadline] = None,
    ) -> dict:
        """
        Run (or resume) the report pipeline.

        Returns one of:
          {"status": "pending", "pendingReports": [...]}  replay to resume
          {"status": "complete", "summary": ..., ...}    rollups ready
          {"success": False, "status": "failed", ...}    nothing could be submitted
        Raises AuthError if the token exchange fails.
        """
        settings = get_settings()
        deadline = deadline or Deadline(settings.sync_deadline_seconds)
        start_str, end_str = resolve_date_range(start_date, end_date, days_back)
        logger.info(f"[AdsSync] Daily sync: {start_str} to {end_str}")

        client = await self.connect()

        if pending_reports:
            jobs = list(pending_reports)
            logger.info(f"[AdsSync] Resuming {len(jobs)} reports from a previous invocation")
        else:
            jobs = await ReportJobOrchestrator(client).submit_all(
                REPORT_SPECS, start_str, end_str, deadline=deadline
            )
            if not jobs:
                logger.info("[AdsSync] No ad products available for this profile")
                result = await self._complete(client, PollResult(jobs=[]), deadline)
                result["message"] = "No advertising products are available for this profile."
                return result
            if not any(j.report_id for j in jobs):
                return {
                    "success": False,
                    "status": "failed",
                    "error": "No reports could be created. Check that your Ads Profile ID is correct and campaigns exist.",
                    "details": [j.to_wire() for j in jobs],
                }

        poll = await ReportPoller(client).poll(jobs, deadline)

        if poll.pending:
            return {
                "success": True,
                "status": "pending",
                "message": f"{len(poll.completed)} reports ready, {len(poll.pending)} still generating",
                "pendingReports": [j.to_wire() for j in poll.jobs],
            }

        return await self._complete(client, poll, deadline)

    async def _complete(self, client: AmazonAdsClient, poll: PollResult, deadline: Deadline) -> dict:
        """
        Download every completed report, normalize, aggregate. Downloads share
        the invocation deadline; any left when it expires become errors.
        """
        downloadable = []
        errors = list(poll.errors)
        for job in poll.completed:
            try:
                get_spec(job.key)
            except KeyError:
                job.status = JobStatus.ERROR
                job.error = f"Unknown report type: {job.key}"
                errors.append(job)
                continue
            downloadable.append(job)

        raw_reports, failed = await ReportDownloader(client).fetch_all(downloadable, deadline)
        errors.extend(failed)

        aggregator = Aggregator()
        reports: dict[str, list[dict]] = {}
        for spec in REPORT_SPECS:
            if spec.key not in raw_reports:
                continue
            rows = normalize_rows(spec.key, raw_reports[spec.key])
            reports[spec.key] = rows
            aggregator.add_report(spec, rows)

        summary = aggregator.summary(
            reports_completed=len(downloadable) - len(failed),
            reports_failed=len(errors),
        )
        campaigns = aggregator.campaigns()
        logger.info(
            f"[AdsSync] Complete: {summary['daysWithData']} days, {summary['totalRows']} rows, "
            f"{len(campaigns)} campaigns, ${summary['totalSpend']:.2f} total spend"
        )

        result = {
            "success": True,
            "syncType": "daily",
            "status": "complete",
            "summary": summary,
            "dailyData": aggregator.daily(),
            "skuDailyData": aggregator.sku_daily(),
            "skuSummary": aggregator.sku_summary(),
            "campaigns": campaigns,
            "reports": reports,
        }
        if errors:
            result["errors"] = [
                {"key": j.key, "label": j.label, "adType": j.ad_type, "error": j.error}
                for j in errors
            ]
        return result
