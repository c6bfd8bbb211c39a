"""
Deterministic analytics package.

Pure functions over transaction snapshots: settlements, anomalies,
forecasts, planning (what-if, savings, unpaid bills, recurring payments)
and plain aggregations. Nothing here does I/O or keeps state.
"""

from ledgerlens.analytics.aggregation import (
    TransactionFilter,
    category_breakdown,
    compare_periods,
    filter_transactions,
    matching_transactions,
    monthly_breakdown,
    parse_transaction_filter,
    summarize_totals,
)
from ledgerlens.analytics.anomaly import SeverityTiers, detect_anomalies
from ledgerlens.analytics.forecast import build_daily_series, forecast
from ledgerlens.analytics.planning import (
    Scenario,
    budget_goal,
    detect_recurring,
    months_of_data,
    parse_scenario,
    savings_plan,
    simulate_spending,
    unpaid_bills,
)
from ledgerlens.analytics.settlement import (
    ReminderPolicy,
    build_settlement_plan,
    carry_residual,
    compute_balances,
    mark_settled,
    settle,
    settlement_history,
    settlement_reminder,
    simplify_debts,
)

__all__ = [
    "TransactionFilter",
    "category_breakdown",
    "compare_periods",
    "filter_transactions",
    "matching_transactions",
    "monthly_breakdown",
    "parse_transaction_filter",
    "summarize_totals",
    "SeverityTiers",
    "detect_anomalies",
    "build_daily_series",
    "forecast",
    "Scenario",
    "budget_goal",
    "detect_recurring",
    "months_of_data",
    "parse_scenario",
    "savings_plan",
    "simulate_spending",
    "unpaid_bills",
    "ReminderPolicy",
    "build_settlement_plan",
    "carry_residual",
    "compute_balances",
    "mark_settled",
    "settle",
    "settlement_history",
    "settlement_reminder",
    "simplify_debts",
]
