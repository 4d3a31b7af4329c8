"""Application configuration utilities."""

from .log_setup import configure_logging
from .settings import (
    DEFAULT_BACKGROUND_INTERVAL_SECONDS,
    DEFAULT_CACHE_TTL_SECONDS,
    AnalyticsSettings,
    get_settings,
)

__all__ = [
    "DEFAULT_BACKGROUND_INTERVAL_SECONDS",
    "DEFAULT_CACHE_TTL_SECONDS",
    "AnalyticsSettings",
    "configure_logging",
    "get_settings",
]
