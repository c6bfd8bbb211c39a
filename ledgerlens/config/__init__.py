"""Configuration package."""

from ledgerlens.config.settings import (
    AnalyticsSettings,
    AppSettings,
    GeminiSettings,
    IntentSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AnalyticsSettings",
    "AppSettings",
    "GeminiSettings",
    "IntentSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
