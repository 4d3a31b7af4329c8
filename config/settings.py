"""Centralised configuration handling for SubTrack analytics."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_BACKGROUND_INTERVAL_SECONDS = 30 * 60


class AnalyticsSettings(BaseSettings):
    """Tunable thresholds for the analytics engine, sourced from env vars."""

    cache_ttl_seconds: float = Field(default=DEFAULT_CACHE_TTL_SECONDS, gt=0)
    background_interval_seconds: float = Field(default=DEFAULT_BACKGROUND_INTERVAL_SECONDS, gt=0)

    anomaly_min_records: int = Field(default=10, ge=1)
    anomaly_sigma: float = 2.0
    anomaly_high_sigma: float = 3.0

    forecast_min_months: int = Field(default=6, ge=2)
    forecast_horizon_months: int = Field(default=3, ge=1)

    unused_days: int = Field(default=30, ge=1)
    annual_discount_rate: float = Field(default=0.15, ge=0, le=1)
    annual_savings_floor: float = 10.0
    price_increase_threshold_pct: float = 5.0
    price_increase_high_pct: float = 20.0
    trend_change_threshold_pct: float = 20.0

    budget_warning_pct: float = 75.0
    budget_over_pct: float = 90.0
    budget_danger_pct: float = 100.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="SUBTRACK_", extra="ignore")

    @model_validator(mode="after")
    def _check_thresholds(self) -> "AnalyticsSettings":
        if not self.budget_warning_pct < self.budget_over_pct < self.budget_danger_pct:
            raise ValueError("budget thresholds must be strictly increasing: warning < over < danger")
        if self.anomaly_high_sigma < self.anomaly_sigma:
            raise ValueError("anomaly_high_sigma must not be lower than anomaly_sigma")
        return self


@lru_cache
def get_settings() -> AnalyticsSettings:
    """Load and cache application settings."""

    return AnalyticsSettings()
