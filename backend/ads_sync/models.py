"""
Ads Sync — Request and job models.
Everything that crosses the HTTP boundary is camelCase on the wire so the
dashboard can persist a pending job list and post it back unchanged.
"""

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, enum.Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.ERROR)


class ReportJob(BaseModel):
    """One report type's upstream job within a sync invocation."""

    model_config = ConfigDict(populate_by_name=True)

    report_id: Optional[str] = Field(default=None, alias="reportId")
    key: str
    label: str = ""
    ad_type: Optional[str] = Field(default=None, alias="adType")
    status: JobStatus = JobStatus.PROCESSING
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    error: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v):
        """Fold upstream/legacy spellings (PENDING, FAILURE, DOWNLOAD_ERROR) onto the three job states."""
        if isinstance(v, JobStatus) or v is None:
            return v or JobStatus.PROCESSING
        text = str(v).upper()
        if text == "COMPLETED":
            return JobStatus.COMPLETED
        if "ERROR" in text or "FAIL" in text or text == "CANCELLED":
            return JobStatus.ERROR
        return JobStatus.PROCESSING

    @property
    def is_pending(self) -> bool:
        return bool(self.report_id) and self.status not in TERMINAL_STATUSES

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class SyncType(str, enum.Enum):
    TEST = "test"
    PROFILES = "profiles"
    CAMPAIGNS = "campaigns"
    DAILY = "daily"


class AdsSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ads_client_id: Optional[str] = Field(default=None, alias="adsClientId")
    ads_client_secret: Optional[str] = Field(default=None, alias="adsClientSecret")
    ads_refresh_token: Optional[str] = Field(default=None, alias="adsRefreshToken")
    ads_profile_id: Optional[str] = Field(default=None, alias="adsProfileId")
    sync_type: str = Field(default="daily", alias="syncType")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    days_back: Optional[int] = Field(default=None, alias="daysBack")
    pending_reports: Optional[list[ReportJob]] = Field(default=None, alias="pendingReports")

    @field_validator("ads_profile_id", mode="before")
    @classmethod
    def _profile_id_as_str(cls, v):
        """Profile ids arrive as JSON numbers from some clients."""
        return str(v) if isinstance(v, int) else v

    @property
    def has_credentials(self) -> bool:
        return bool(self.ads_client_id and self.ads_client_secret and self.ads_refresh_token)
