"""
Report Poller — Cooperative polling of outstanding report jobs.

One iteration = sleep, then one status request per still-pending job, in
order. Stops when nothing is pending, the iteration ceiling is hit, or the
invocation deadline expires; the last two are the same "not finished yet"
outcome for the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ads_sync.ads_client import AmazonAdsClient
from ads_sync.config import get_settings
from ads_sync.models import JobStatus, ReportJob
from ads_sync.utils import Deadline

logger = logging.getLogger(__name__)

FAILED_UPSTREAM_STATUSES = ("FAILURE", "FAILED", "CANCELLED")


@dataclass
class PollResult:
    # Every job in input order, with updated status
    jobs: list[ReportJob]
    pending: list[ReportJob] = field(default_factory=list)
    completed: list[ReportJob] = field(default_factory=list)
    errors: list[ReportJob] = field(default_factory=list)
    polls: int = 0

    @property
    def finished(self) -> bool:
        return not self.pending


def partition(jobs: Sequence[ReportJob]) -> PollResult:
    """Split jobs into pending / completed / error without contacting upstream."""
    result = PollResult(jobs=list(jobs))
    for job in result.jobs:
        if job.status is JobStatus.COMPLETED:
            result.completed.append(job)
        elif job.status is JobStatus.ERROR:
            result.errors.append(job)
        elif job.report_id:
            result.pending.append(job)
        else:
            # Nothing to poll without an upstream id
            job.status = JobStatus.ERROR
            job.error = job.error or "Report was never submitted"
            result.errors.append(job)
    return result


class ReportPoller:
    def __init__(
        self,
        client: AmazonAdsClient,
        interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ):
        settings = get_settings()
        self.client = client
        self.interval = settings.report_poll_interval_seconds if interval is None else interval
        self.max_polls = settings.report_max_polls if max_polls is None else max_polls

    async def poll(self, jobs: Sequence[ReportJob], deadline: Optional[Deadline] = None) -> PollResult:
        """
        Poll until every job is terminal or the budget runs out.
        The caller's ReportJob objects are copied, never mutated.
        """
        deadline = deadline or Deadline(None)
        result = partition([job.model_copy() for job in jobs])

        while result.pending and result.polls < self.max_polls and not deadline.expired:
            await asyncio.sleep(deadline.clip(self.interval))
            result.polls += 1

            for job in list(result.pending):
                if deadline.expired:
                    break
                await self._check(job, result, deadline)

        if result.pending:
            logger.info(
                f"[AdsSync] {len(result.pending)} reports still pending after "
                f"{result.polls} polls{' (deadline reached)' if deadline.expired else ''}"
            )
        return result

    async def _check(self, job: ReportJob, result: PollResult, deadline: Deadline) -> None:
        try:
            remaining = deadline.remaining()
            if remaining is None:
                status = await self.client.get_report(job.report_id)
            else:
                status = await asyncio.wait_for(self.client.get_report(job.report_id), timeout=remaining)
        except Exception as e:
            # Transient: retried next iteration, bounded only by the ceiling
            logger.warning(f"[AdsSync] Poll error for {job.label}: {e!r}")
            return

        if not isinstance(status, dict):
            logger.warning(f"[AdsSync] Unexpected status payload for {job.label}: {str(status)[:200]}")
            return

        upstream = str(status.get("status") or "").upper()
        if upstream == "COMPLETED":
            job.status = JobStatus.COMPLETED
            job.download_url = status.get("url")
            result.pending.remove(job)
            result.completed.append(job)
            logger.info(f"[AdsSync] {job.label} report COMPLETED (poll {result.polls})")
        elif upstream in FAILED_UPSTREAM_STATUSES:
            job.status = JobStatus.ERROR
            job.error = status.get("statusDetails") or "Report generation failed"
            result.pending.remove(job)
            result.errors.append(job)
            logger.error(f"[AdsSync] {job.label} report FAILED: {job.error}")
