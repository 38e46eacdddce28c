"""
Unit tests for portal configuration (PortalSettings).

Tests verify:
- Config loads from environment variables with correct defaults.
- Config validation rejects missing required variables.
- MEASUREMENTS_BASE_URL is validated as HTTPS.
- REDIS_URL is required for the redis store backing.
- Numeric constraints are enforced (timeout, concurrency, threshold,
  samples per hour).

CHANGELOG:
- 2026-10-12: Cover DAY_SAMPLES_PER_HOUR (STORY-113)
- 2026-10-10: Add threshold validation tests (STORY-109)
- 2026-10-05: Initial creation (STORY-101)

TODO:
- None
"""

import pytest
from pydantic import ValidationError

from portal.src.config import PortalSettings


class TestPortalSettingsLoadsFromEnv:
    """Config loads values from environment variables."""

    def test_defaults_applied_when_optional_vars_missing(
        self, env_vars_required_only: dict[str, str]
    ) -> None:
        """Optional variables use default values when not set."""
        settings = PortalSettings()

        assert settings.measurements_base_url == "https://plants.example.com/prod"
        assert settings.admin_tokens == env_vars_required_only["ADMIN_TOKENS"]
        assert settings.store_backend == "local"
        assert settings.local_store_path == "/data/portal.db"
        assert settings.redis_url == ""
        assert settings.measurements_timeout_s == 10.0
        assert settings.reconcile_concurrency == 4
        assert settings.underperformance_threshold == 0.8
        assert settings.day_samples_per_hour == 4
        assert settings.log_level == "INFO"
        assert settings.api_port == 8000

    def test_loads_overrides(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("STORE_BACKEND", "redis")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
        monkeypatch.setenv("RECONCILE_CONCURRENCY", "8")
        monkeypatch.setenv("UNDERPERFORMANCE_THRESHOLD", "0.65")
        monkeypatch.setenv("DAY_SAMPLES_PER_HOUR", "12")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = PortalSettings()

        assert settings.store_backend == "redis"
        assert settings.redis_url == "redis://cache:6379/0"
        assert settings.reconcile_concurrency == 8
        assert settings.underperformance_threshold == 0.65
        assert settings.day_samples_per_hour == 12
        assert settings.log_level == "DEBUG"

    def test_trailing_slash_stripped_from_base_url(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("MEASUREMENTS_BASE_URL", "https://plants.example.com/")

        assert PortalSettings().measurements_base_url == "https://plants.example.com"


class TestPortalSettingsValidation:
    """Invalid configuration is rejected at load time."""

    def test_missing_required_vars(self) -> None:
        with pytest.raises(ValidationError):
            PortalSettings()

    def test_http_base_url_rejected(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("MEASUREMENTS_BASE_URL", "http://plants.example.com")

        with pytest.raises(ValidationError, match="HTTPS"):
            PortalSettings()

    def test_redis_backend_requires_url(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("STORE_BACKEND", "redis")

        with pytest.raises(ValidationError, match="REDIS_URL"):
            PortalSettings()

    def test_unknown_backend_rejected(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("STORE_BACKEND", "postgres")

        with pytest.raises(ValidationError):
            PortalSettings()

    @pytest.mark.parametrize(
        ("var", "value"),
        [
            ("MEASUREMENTS_TIMEOUT_S", "0"),
            ("RECONCILE_CONCURRENCY", "0"),
            ("RECONCILE_CONCURRENCY", "65"),
            ("UNDERPERFORMANCE_THRESHOLD", "0"),
            ("UNDERPERFORMANCE_THRESHOLD", "1.5"),
            ("DAY_SAMPLES_PER_HOUR", "0"),
            ("DAY_SAMPLES_PER_HOUR", "61"),
            ("LOG_LEVEL", "verbose"),
        ],
    )
    def test_out_of_range_values_rejected(
        self,
        env_vars_required_only: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        var: str,
        value: str,
    ) -> None:
        monkeypatch.setenv(var, value)

        with pytest.raises(ValidationError, match=var):
            PortalSettings()
