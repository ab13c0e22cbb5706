import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator, ConfigDict
from functools import lru_cache

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment: "development" or "production"
    environment: str = "development"

    # Amazon Ads API region: na, eu or fe
    ads_region: str = "na"
    lwa_token_url: str = "https://api.amazon.com/auth/o2/token"
    http_timeout_seconds: float = 30.0
    # Upstream error bodies are truncated to this many bytes
    api_error_excerpt_bytes: int = 2000

    # Report pipeline timing
    report_submit_delay_seconds: float = 0.3
    report_poll_interval_seconds: float = 2.0
    report_max_polls: int = 40
    # Stay under the 120s function execution ceiling
    sync_deadline_seconds: float = 110.0

    default_days_back: int = 30
    max_days_back: int = 60

    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @model_validator(mode="after")
    def _validate_report_timing(self) -> "Settings":
        """Reject poll settings that would never poll, warn when polling outlives the deadline."""
        if self.report_max_polls < 1:
            raise ValueError("REPORT_MAX_POLLS must be at least 1.")
        if self.report_poll_interval_seconds < 0 or self.report_submit_delay_seconds < 0:
            raise ValueError("Report delays must not be negative.")
        if self.sync_deadline_seconds <= 0:
            raise ValueError("SYNC_DEADLINE_SECONDS must be positive.")
        poll_budget = self.report_max_polls * self.report_poll_interval_seconds
        if poll_budget > self.sync_deadline_seconds:
            logger.warning(
                f"Poll budget ({poll_budget:.0f}s) exceeds the sync deadline "
                f"({self.sync_deadline_seconds:.0f}s); the deadline will end polling first."
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
