"""
Tests for configuration
"""

from decimal import Decimal

import pytest

from ledgerlens.config import (
    AnalyticsSettings,
    AppSettings,
    GeminiSettings,
    IntentSettings,
    get_settings,
    validate_all_settings,
)


class TestSettingsGroups:
    """Tests for the individual settings groups."""

    def test_defaults(self):
        """Test the documented defaults."""
        intent = IntentSettings()
        assert (intent.high_confidence, intent.low_confidence, intent.nlu_min_confidence) == (
            0.7, 0.5, 0.6,
        )
        analytics = AnalyticsSettings()
        assert analytics.minor_unit == Decimal("0.01")
        assert analytics.forecast_min_history_days == 3
        assert analytics.reminder_high_amount == Decimal("50000")

    def test_env_prefix(self, monkeypatch):
        """Test that each group reads its own prefix."""
        monkeypatch.setenv("ANALYTICS_FORECAST_HORIZON_DAYS", "14")
        monkeypatch.setenv("INTENT_NLU_MIN_CONFIDENCE", "0.8")
        assert AnalyticsSettings().forecast_horizon_days == 14
        assert IntentSettings().nlu_min_confidence == 0.8

    def test_intent_cutoffs_must_be_ordered(self):
        """Test that the low cut-off cannot exceed the high one."""
        with pytest.raises(ValueError):
            IntentSettings(low_confidence=0.8, high_confidence=0.7)

    def test_anomaly_tiers_must_be_ordered(self):
        """Test that the medium tier cannot exceed the high tier."""
        with pytest.raises(ValueError):
            AnalyticsSettings(anomaly_medium_ratio=5.0, anomaly_high_ratio=3.0)

    def test_nlu_time_limits(self):
        """Test the NLU time limits and their 30 second ceiling."""
        assert IntentSettings().nlu_timeout_seconds == 30.0
        assert GeminiSettings().total_timeout_seconds == 25.0
        with pytest.raises(ValueError):
            GeminiSettings(total_timeout_seconds=31)

    def test_recurring_interval_must_be_ordered(self):
        """Test that the recurring interval bounds cannot cross."""
        assert AnalyticsSettings().recurring_min_occurrences == 3
        with pytest.raises(ValueError):
            AnalyticsSettings(recurring_min_interval_days=45, recurring_max_interval_days=40)

    def test_log_level_is_normalized(self):
        """Test log level validation."""
        assert AppSettings(log_level=" debug ").log_level == "DEBUG"
        with pytest.raises(ValueError):
            AppSettings(log_level="chatty")


class TestValidateAllSettings:
    """Tests for validate_all_settings."""

    def test_reports_each_group(self, monkeypatch):
        """Test that the engine is valid without an NLU key."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        get_settings.cache_clear()

        results = validate_all_settings()
        assert results["gemini"] is False
        assert results["intent"] is True
        assert results["analytics"] is True
        assert results["app"] is True

    def test_reports_invalid_group(self, monkeypatch):
        """Test that a broken group is reported, not raised."""
        monkeypatch.setenv("ANALYTICS_ANOMALY_MEDIUM_RATIO", "9")
        get_settings.cache_clear()

        results = validate_all_settings()
        assert results["analytics"] is False
        assert "analytics_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
