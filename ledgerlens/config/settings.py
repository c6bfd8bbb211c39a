"""
Configuration Management for LedgerLens

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable thresholds live here, not in the callers.
Intent cut-offs, anomaly severity tiers, forecast guards and the NLU
collaborator are all read from one place and validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini configuration for the external NLU collaborator."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Optional: without a key the resolver runs on rules only
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash-lite",
        description="Gemini model to use for intent classification"
    )
    max_tokens: int = Field(
        default=512,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=30.0,
        description="Upper bound for a single classification attempt"
    )
    total_timeout_seconds: float = Field(
        default=25.0,
        gt=0.0,
        le=30.0,
        description="Upper bound for a classification, retries and backoff included"
    )
    max_attempts: int = Field(
        default=2,
        ge=1,
        le=3,
        description="Attempts per classification (1 = no retry)"
    )
    retry_wait_min: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum backoff between attempts, in seconds"
    )
    retry_wait_max: float = Field(
        default=4.0,
        ge=0.0,
        description="Maximum backoff between attempts, in seconds"
    )

    @property
    def is_configured(self) -> bool:
        """True when an API key is present."""
        return bool(self.api_key and self.api_key.strip())


class IntentSettings(BaseSettings):
    """Score cut-offs for the rule-based intent resolver."""

    model_config = SettingsConfigDict(
        env_prefix="INTENT_",
        extra="ignore"
    )

    high_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Rule score at or above which no clarification is needed"
    )
    low_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Rule score below which the external NLU is consulted"
    )
    nlu_min_confidence: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="NLU answers must be strictly above this to be used"
    )
    nlu_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=30.0,
        description="Upper bound the resolver waits for any NLU client"
    )

    @model_validator(mode='after')
    def validate_ordering(self) -> 'IntentSettings':
        if self.low_confidence > self.high_confidence:
            raise ValueError("low_confidence cannot exceed high_confidence")
        return self


class AnalyticsSettings(BaseSettings):
    """Thresholds for settlement, anomaly detection and forecasting."""

    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_",
        extra="ignore"
    )

    # Currency
    minor_unit: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Smallest currency step amounts are rounded to"
    )

    # Anomaly detection
    anomaly_threshold_multiplier: float = Field(
        default=2.0,
        gt=0.0,
        description="Flag transactions above this multiple of the baseline"
    )
    anomaly_medium_ratio: float = Field(
        default=2.0,
        gt=0.0,
        description="Deviation ratio above which severity is medium"
    )
    anomaly_high_ratio: float = Field(
        default=3.0,
        gt=0.0,
        description="Deviation ratio above which severity is high"
    )

    # Forecasting
    forecast_min_history_days: int = Field(
        default=3,
        ge=2,
        description="Distinct days of history required for a forecast"
    )
    forecast_horizon_days: int = Field(
        default=7,
        ge=0,
        le=365,
        description="Default projection horizon"
    )
    trend_epsilon: float = Field(
        default=0.01,
        ge=0.0,
        description="Slopes within +/- epsilon are reported as flat"
    )

    # Settlement reminders
    reminder_high_count: int = Field(default=20, ge=1)
    reminder_high_amount: Decimal = Field(default=Decimal("50000"), gt=0)
    reminder_medium_count: int = Field(default=10, ge=1)
    reminder_medium_days: int = Field(default=14, ge=1)

    # Planning
    unpaid_list_limit: int = Field(
        default=10,
        ge=1,
        description="Unsettled transactions listed in an unpaid-bills answer"
    )
    savings_cut_percent: Decimal = Field(
        default=Decimal("20"),
        gt=0,
        le=100,
        description="Cut applied to the largest categories in savings suggestions"
    )
    budget_achievable_percent: float = Field(
        default=30.0,
        gt=0.0,
        le=100.0,
        description="Largest spending reduction a budget goal may need to count as achievable"
    )
    recurring_min_occurrences: int = Field(default=3, ge=2)
    recurring_min_interval_days: int = Field(default=20, ge=1)
    recurring_max_interval_days: int = Field(default=40, ge=1)

    @model_validator(mode='after')
    def validate_tiers(self) -> 'AnalyticsSettings':
        if self.anomaly_medium_ratio > self.anomaly_high_ratio:
            raise ValueError("anomaly_medium_ratio cannot exceed anomaly_high_ratio")
        if self.recurring_min_interval_days > self.recurring_max_interval_days:
            raise ValueError(
                "recurring_min_interval_days cannot exceed recurring_max_interval_days"
            )
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )
    max_list_results: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Cap for transaction list answers"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="Transactions dated further ahead than this are flagged"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def intent(self) -> IntentSettings:
        return IntentSettings()

    @property
    def analytics(self) -> AnalyticsSettings:
        return AnalyticsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}. The NLU entry reports
    whether Gemini is usable; the engine works without it.
    """
    results = {}

    settings = get_settings()

    try:
        results["gemini"] = settings.gemini.is_configured
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.intent
        results["intent"] = True
    except Exception as e:
        results["intent"] = False
        results["intent_error"] = str(e)

    try:
        _ = settings.analytics
        results["analytics"] = True
    except Exception as e:
        results["analytics"] = False
        results["analytics_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
