"""
Tests for the trend forecaster
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ledgerlens.analytics import build_daily_series, forecast
from ledgerlens.analytics.forecast import trend_of
from ledgerlens.models.ledger import DailyPoint, Direction, Transaction, TrendDirection


START = date(2024, 3, 1)


def points(incomes, expenses):
    return [
        DailyPoint(
            date=START + timedelta(days=i),
            income=Decimal(str(income)),
            expense=Decimal(str(expense)),
        )
        for i, (income, expense) in enumerate(zip(incomes, expenses))
    ]


class TestBuildDailySeries:
    """Tests for build_daily_series."""

    def test_groups_by_day_and_direction(self):
        """Test that credits and debits are summed per day."""
        transactions = [
            Transaction(date=START + timedelta(days=1), amount=Decimal("5"), payer="A"),
            Transaction(date=START, amount=Decimal("10"), payer="A"),
            Transaction(
                date=START,
                amount=Decimal("40"),
                payer="A",
                direction=Direction.CREDIT,
            ),
            Transaction(date=START, amount=Decimal("2.50"), payer="A"),
        ]
        series = build_daily_series(transactions)

        assert [p.date for p in series] == [START, START + timedelta(days=1)]
        assert series[0].income == Decimal("40")
        assert series[0].expense == Decimal("12.50")
        assert series[0].count == 3
        assert series[1].net == Decimal("-5")


class TestForecast:
    """Tests for forecast."""

    def test_short_history_gives_no_forecast(self):
        """Test that fewer than three days is not enough."""
        assert forecast(points([100, 200], [10, 20])) is None
        assert forecast([]) is None

    def test_negative_horizon_is_rejected(self):
        """Test that a negative horizon raises."""
        with pytest.raises(ValueError):
            forecast(points([1, 2, 3], [1, 2, 3]), horizon_days=-1)

    def test_linear_growth(self):
        """Test projection of a steady climb from the last level."""
        result = forecast(points([100, 200, 300], [50, 50, 50]), horizon_days=3)

        assert result.history_days == 3
        assert result.projected_dates == [
            date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6),
        ]
        assert result.projected_income == [Decimal("400"), Decimal("500"), Decimal("600")]
        assert result.projected_expense == [Decimal("50"), Decimal("50"), Decimal("50")]
        assert result.income_slope == pytest.approx(100.0)
        assert result.trend_direction.income == TrendDirection.UP
        assert result.trend_direction.expense == TrendDirection.FLAT

    def test_projection_is_clamped_at_zero(self):
        """Test that a falling series never projects below zero."""
        result = forecast(points([0, 0, 0], [300, 200, 100]), horizon_days=3)
        assert result.trend_direction.expense == TrendDirection.DOWN
        assert result.projected_expense == [Decimal("0"), Decimal("0"), Decimal("0")]
        assert all(value >= 0 for value in result.projected_income)

    def test_zero_horizon(self):
        """Test that a zero horizon fits the trend but projects nothing."""
        result = forecast(points([100, 200, 300], [50, 50, 50]), horizon_days=0)
        assert result.projected_dates == []
        assert result.projected_income == []
        assert result.projected_total_income == Decimal("0")
        assert result.trend_direction.income == TrendDirection.UP

    def test_series_lists_are_aligned(self):
        """Test that every projected list has horizon_days entries."""
        result = forecast(points([5, 7, 6, 9], [3, 4, 2, 5]))
        assert result.horizon_days == 7
        assert len(result.projected_dates) == 7
        assert len(result.projected_income) == 7
        assert len(result.projected_expense) == 7

    def test_same_day_points_are_merged(self):
        """Test that duplicate dates count as one day of history."""
        series = points([100, 200], [0, 0]) + [
            DailyPoint(date=START, income=Decimal("50")),
        ]
        assert forecast(series) is None

    def test_gaps_use_real_day_offsets(self):
        """Test that the slope is per calendar day, not per point."""
        series = [
            DailyPoint(date=START, income=Decimal("0")),
            DailyPoint(date=START + timedelta(days=5), income=Decimal("50")),
            DailyPoint(date=START + timedelta(days=10), income=Decimal("100")),
        ]
        result = forecast(series, horizon_days=1)
        assert result.income_slope == pytest.approx(10.0)
        assert result.projected_income == [Decimal("110")]

    def test_min_history_is_configurable(self):
        """Test that a longer required history suppresses the forecast."""
        assert forecast(points([1, 2, 3], [1, 2, 3]), min_history_days=4) is None


class TestTrendOf:
    """Tests for trend_of."""

    def test_dead_band(self):
        """Test that tiny slopes are flat."""
        assert trend_of(0.005) == TrendDirection.FLAT
        assert trend_of(-0.005) == TrendDirection.FLAT
        assert trend_of(0.5) == TrendDirection.UP
        assert trend_of(-0.5) == TrendDirection.DOWN
        assert trend_of(0.5, epsilon=1.0) == TrendDirection.FLAT


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
