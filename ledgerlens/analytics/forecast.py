"""
Trend Forecaster

Projects daily income and expense a few days ahead.

DESIGN DECISION: A straight line, fitted by least squares over the day
offset, projected from the last observed level. No seasonality, no
noise. A short history gives no forecast at all rather than a
misleading one.
"""

from collections.abc import Iterable
from datetime import timedelta
from decimal import Decimal
from statistics import linear_regression
from typing import Optional

from ledgerlens.models.ledger import (
    DEFAULT_MINOR_UNIT,
    DailyPoint,
    Direction,
    ForecastSeries,
    SeriesTrend,
    Transaction,
    TrendDirection,
)


def build_daily_series(transactions: Iterable[Transaction]) -> list[DailyPoint]:
    """Credits summed into income and debits into expense, one point per day, sorted by date."""
    days: dict = {}
    for txn in transactions:
        income, expense, count = days.get(txn.date, (Decimal("0"), Decimal("0"), 0))
        if txn.direction == Direction.CREDIT:
            income += txn.amount
        else:
            expense += txn.amount
        days[txn.date] = (income, expense, count + 1)

    return [
        DailyPoint(date=day, income=income, expense=expense, count=count)
        for day, (income, expense, count) in sorted(days.items())
    ]


def _merge_days(points: Iterable[DailyPoint]) -> list[DailyPoint]:
    merged: dict = {}
    for point in points:
        if point.date in merged:
            prior = merged[point.date]
            point = DailyPoint(
                date=point.date,
                income=prior.income + point.income,
                expense=prior.expense + point.expense,
                count=prior.count + point.count,
            )
        merged[point.date] = point
    return [merged[day] for day in sorted(merged)]


def trend_of(slope: float, epsilon: float = 0.01) -> TrendDirection:
    if slope > epsilon:
        return TrendDirection.UP
    if slope < -epsilon:
        return TrendDirection.DOWN
    return TrendDirection.FLAT


def _project(
    last_level: Decimal,
    slope: float,
    horizon_days: int,
    minor_unit: Decimal,
) -> list[Decimal]:
    projected = []
    for step in range(1, horizon_days + 1):
        value = max(float(last_level) + slope * step, 0.0)
        projected.append(Decimal(str(value)).quantize(minor_unit))
    return projected


def forecast(
    daily_series: Iterable[DailyPoint],
    horizon_days: int = 7,
    min_history_days: int = 3,
    trend_epsilon: float = 0.01,
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> Optional[ForecastSeries]:
    """
    Project income and expense horizon_days past the last observed day.

    Args:
        daily_series: Daily points, in any order; same-day points are merged
        horizon_days: Days to project; 0 gives empty projections
        min_history_days: Distinct days required before projecting
        trend_epsilon: Slopes within +/- epsilon count as flat
        minor_unit: Rounding step for projected amounts

    Returns:
        ForecastSeries, or None when the history is too short.

    Raises:
        ValueError: horizon_days is negative
    """
    if horizon_days < 0:
        raise ValueError(f"horizon_days cannot be negative, got {horizon_days}")

    points = _merge_days(daily_series)
    if len(points) < max(min_history_days, 2):
        return None

    start = points[0].date
    offsets = [(p.date - start).days for p in points]
    income_slope = linear_regression(offsets, [float(p.income) for p in points]).slope
    expense_slope = linear_regression(offsets, [float(p.expense) for p in points]).slope

    last = points[-1]
    return ForecastSeries(
        horizon_days=horizon_days,
        history_days=len(points),
        projected_dates=[last.date + timedelta(days=i) for i in range(1, horizon_days + 1)],
        projected_income=_project(last.income, income_slope, horizon_days, minor_unit),
        projected_expense=_project(last.expense, expense_slope, horizon_days, minor_unit),
        trend_direction=SeriesTrend(
            income=trend_of(income_slope, trend_epsilon),
            expense=trend_of(expense_slope, trend_epsilon),
        ),
        income_slope=income_slope,
        expense_slope=expense_slope,
    )
