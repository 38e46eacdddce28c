"""
Portal configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files;
no hardcoded URLs or credentials.

CHANGELOG:
- 2026-10-12: Add DAY_SAMPLES_PER_HOUR (STORY-113)
- 2026-10-10: Add UNDERPERFORMANCE_THRESHOLD (STORY-109)
- 2026-10-07: Add REDIS_URL and STORE_BACKEND=redis (STORY-106)
- 2026-10-05: Initial creation (STORY-101)

TODO:
- None
"""

from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class PortalSettings(BaseSettings):
    """Plant portal configuration.

    Attributes:
        store_backend: Document store backing: memory, local (SQLite), or redis.
        local_store_path: SQLite file used by the local backing.
        redis_url: Redis connection URL, required for the redis backing.
        measurements_base_url: Plant measurement API base URL (must be HTTPS).
        measurements_timeout_s: HTTP timeout for measurement fetches.
        reconcile_concurrency: Max store operations in flight per reconcile phase.
        underperformance_threshold: Fraction of the daily benchmark below
            which a plant is flagged as underperforming.
        day_samples_per_hour: Readings per hour in a day series. Day bucket
            values are summed power samples; dividing the day total by this
            gives energy in kWh.
        admin_tokens: Comma-separated ``token:username`` pairs for admin auth.
        log_level: Root log level.
        api_host: Interface the API server binds to.
        api_port: Port the API server listens on.
    """

    store_backend: Literal["memory", "local", "redis"] = "local"
    local_store_path: str = "/data/portal.db"
    redis_url: str = ""
    measurements_base_url: str
    measurements_timeout_s: float = 10.0
    reconcile_concurrency: int = 4
    underperformance_threshold: float = 0.8
    day_samples_per_hour: int = 4
    admin_tokens: str
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @model_validator(mode="after")
    def _redis_url_required_for_redis_backend(self) -> "PortalSettings":
        """Require REDIS_URL when the redis backing is selected."""
        if self.store_backend == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is required when STORE_BACKEND=redis")
        return self

    @field_validator("measurements_base_url")
    @classmethod
    def measurements_base_url_must_be_https(cls, v: str) -> str:
        """Validate that the measurement API is reached over HTTPS."""
        if not v.lower().startswith("https://"):
            raise ValueError(
                f"MEASUREMENTS_BASE_URL must use HTTPS (got: '{v[:20]}...')"
            )
        return v.rstrip("/")

    @field_validator("measurements_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("MEASUREMENTS_TIMEOUT_S must be > 0")
        return v

    @field_validator("reconcile_concurrency")
    @classmethod
    def concurrency_must_be_valid(cls, v: int) -> int:
        """Validate reconcile concurrency is between 1 and 64."""
        if v < 1 or v > 64:
            raise ValueError("RECONCILE_CONCURRENCY must be >= 1 and <= 64")
        return v

    @field_validator("underperformance_threshold")
    @classmethod
    def threshold_must_be_fraction(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("UNDERPERFORMANCE_THRESHOLD must be > 0 and <= 1")
        return v

    @field_validator("day_samples_per_hour")
    @classmethod
    def samples_per_hour_must_be_valid(cls, v: int) -> int:
        if v < 1 or v > 60:
            raise ValueError("DAY_SAMPLES_PER_HOUR must be >= 1 and <= 60")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL must be a standard level name (got: '{v}')")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
