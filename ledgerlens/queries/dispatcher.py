"""
Analytics Dispatcher

DESIGN DECISION: Computation is DETERMINISTIC.
The classifiers decide WHAT to compute; this dispatcher computes it on
the actual snapshot. Whatever formats the answer afterwards (a language
model, a chart) only ever sees what this returns.

GUARANTEES:
- Only returns figures derived from the snapshot
- Never invents or estimates beyond the stated forecast model
- data_found=False when there was nothing to compute on
- Never raises: a failing computation comes back with success=False
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ledgerlens.analytics.aggregation import (
    category_breakdown,
    compare_periods,
    matching_transactions,
    monthly_breakdown,
    parse_transaction_filter,
    summarize_totals,
)
from ledgerlens.analytics.anomaly import SeverityTiers, detect_anomalies
from ledgerlens.analytics.forecast import build_daily_series, forecast
from ledgerlens.analytics.planning import (
    budget_goal,
    detect_recurring,
    is_budget_goal,
    parse_amount,
    parse_scenario,
    savings_plan,
    simulate_spending,
    unpaid_bills,
)
from ledgerlens.analytics.settlement import (
    ReminderPolicy,
    build_settlement_plan,
    settlement_history,
    settlement_reminder,
)
from ledgerlens.config import Settings, get_settings
from ledgerlens.models.analysis import AnalysisResult
from ledgerlens.models.intent import AnalyticCategory, IntentCategory
from ledgerlens.models.ledger import Direction, LedgerSnapshot


Handler = Callable[[LedgerSnapshot, str, datetime], AnalysisResult]


class AnalyticsDispatcher:
    """
    Maps each AnalyticCategory, and each intent that owns a computation
    (settlement, simulation, savings, unpaid bills, recurring payments),
    to the computation that answers it.

    Usage:
        dispatcher = AnalyticsDispatcher()
        result = dispatcher.dispatch(AnalyticCategory.EXPENSE_BREAKDOWN, snapshot)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        known_descriptions: Iterable[str] = (),
    ):
        """
        Args:
            settings: Thresholds; defaults to the environment
            known_descriptions: Transaction descriptions the user already
                                accepted as expected spikes
        """
        settings = settings or get_settings()
        self._analytics = settings.analytics
        self._app = settings.app
        self._known_descriptions = tuple(known_descriptions)

        self._tiers = SeverityTiers(
            medium=self._analytics.anomaly_medium_ratio,
            high=self._analytics.anomaly_high_ratio,
        )
        self._reminder_policy = ReminderPolicy(
            high_count=self._analytics.reminder_high_count,
            high_amount=self._analytics.reminder_high_amount,
            medium_count=self._analytics.reminder_medium_count,
            medium_days=self._analytics.reminder_medium_days,
        )

        self._handlers: dict[AnalyticCategory, Handler] = {
            AnalyticCategory.GREETING: self._greeting,
            AnalyticCategory.TRANSACTION_LIST: self._transaction_list,
            AnalyticCategory.TREND_ANALYSIS: self._trend,
            AnalyticCategory.MONTHLY_ANALYSIS: self._monthly,
            AnalyticCategory.COMPARISON: self._comparison,
            AnalyticCategory.EXPENSE_BREAKDOWN: self._expense_breakdown,
            AnalyticCategory.PROFIT_ANALYSIS: self._profit,
            AnalyticCategory.ANOMALY_DETECTION: self._anomalies,
            AnalyticCategory.SALES_INCOME: self._sales_income,
            AnalyticCategory.PREDICTION: self._prediction,
            AnalyticCategory.SUMMARY: self._summary,
        }

        # Intents that own a computation of their own
        self._intent_handlers: dict[IntentCategory, Handler] = {
            IntentCategory.SETTLEMENT: self._settlement,
            IntentCategory.SIMULATION: self._simulation,
            IntentCategory.SAVINGS: self._savings,
            IntentCategory.UNPAID_BILLS: self._unpaid_bills,
            IntentCategory.RECURRING: self._recurring,
        }

    def dispatch(
        self,
        category: AnalyticCategory,
        snapshot: LedgerSnapshot,
        query: str = "",
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """
        Run the computation for a category.

        The result is meant for the presentation layer. Errors are
        reported in the result, never raised.
        """
        now = now or datetime.now(timezone.utc)
        try:
            handler = self._handlers.get(category, self._summary)
            return handler(snapshot, query, now)
        except Exception as e:
            return AnalysisResult(
                category=category,
                analysis=category.value.lower(),
                success=False,
                error_message=str(e),
                data_found=False,
                skipped_count=snapshot.skipped_count,
                description=f"Analysis failed: {str(e)}",
            )

    def dispatch_intent(
        self,
        intent: IntentCategory,
        snapshot: LedgerSnapshot,
        query: str = "",
        now: Optional[datetime] = None,
    ) -> Optional[AnalysisResult]:
        """
        Run the computation owned by a conversational intent.

        Returns None for intents answered through the analytic
        categories instead. Errors are reported in the result.
        """
        handler = self._intent_handlers.get(intent)
        if handler is None:
            return None
        now = now or datetime.now(timezone.utc)
        try:
            return handler(snapshot, query, now)
        except Exception as e:
            return self._failed(intent.value, snapshot, e)

    def _failed(self, analysis: str, snapshot: LedgerSnapshot, error: Exception) -> AnalysisResult:
        return AnalysisResult(
            analysis=analysis,
            success=False,
            error_message=str(error),
            data_found=False,
            skipped_count=snapshot.skipped_count,
            description=f"Analysis failed: {str(error)}",
        )

    def settlement_plan(
        self,
        snapshot: LedgerSnapshot,
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """Who owes whom, with the steps behind it and a reminder."""
        now = now or datetime.now(timezone.utc)
        try:
            plan = build_settlement_plan(
                snapshot.transactions,
                snapshot.participants,
                self._analytics.minor_unit,
            )
            reminder = settlement_reminder(
                snapshot.transactions, now, self._reminder_policy
            )

            if plan.unsettled_count == 0:
                description = "No pending transactions to settle"
            elif plan.is_settled:
                description = f"{plan.unsettled_count} unsettled transactions, already balanced"
            else:
                description = (
                    f"{len(plan.settlements)} payment(s) settle "
                    f"{plan.unsettled_count} unsettled transactions"
                )

            return AnalysisResult(
                analysis="settlement",
                data_found=plan.unsettled_count > 0,
                data={
                    "plan": plan,
                    "reminder": reminder,
                    "history": settlement_history(snapshot.transactions),
                },
                skipped_count=snapshot.skipped_count + plan.skipped_count,
                description=description,
            )
        except Exception as e:
            return self._failed("settlement", snapshot, e)

    def _result(
        self,
        category: AnalyticCategory,
        snapshot: LedgerSnapshot,
        data: dict,
        data_found: bool,
        description: str,
    ) -> AnalysisResult:
        return AnalysisResult(
            category=category,
            analysis=category.value.lower(),
            data_found=data_found,
            data=data,
            skipped_count=snapshot.skipped_count,
            description=description,
        )

    def _greeting(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        return self._result(
            AnalyticCategory.GREETING, snapshot, {}, False, "Greeting, nothing to compute"
        )

    def _transaction_list(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        criteria = parse_transaction_filter(
            query,
            categories={t.category for t in snapshot.transactions},
            max_results=self._app.max_list_results,
        )
        matched = matching_transactions(snapshot.transactions, criteria)

        desc_parts = ["Listing transactions"]
        if criteria.category:
            desc_parts.append(f"category: {criteria.category}")
        if criteria.direction:
            desc_parts.append(f"type: {criteria.direction.value}")
        desc_parts.append(f"showing {min(len(matched), criteria.limit)} of {len(matched)}")

        return self._result(
            AnalyticCategory.TRANSACTION_LIST,
            snapshot,
            {
                "filter": criteria,
                "transactions": matched[:criteria.limit],
                "matched_count": len(matched),
                "matched_total": sum((t.amount for t in matched), Decimal("0")),
                "daily": build_daily_series(matched),
            },
            bool(matched),
            " | ".join(desc_parts),
        )

    def _trend(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        series = build_daily_series(snapshot.transactions)
        return self._result(
            AnalyticCategory.TREND_ANALYSIS,
            snapshot,
            {"daily": series},
            bool(series),
            f"Daily income and expense over {len(series)} day(s)",
        )

    def _monthly(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        months = monthly_breakdown(snapshot.transactions)
        return self._result(
            AnalyticCategory.MONTHLY_ANALYSIS,
            snapshot,
            {"months": months},
            bool(months),
            f"Income and expense over {len(months)} month(s)",
        )

    def _comparison(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        comparison = compare_periods(snapshot.transactions, today=now.date())
        return self._result(
            AnalyticCategory.COMPARISON,
            snapshot,
            {"comparison": comparison},
            comparison.current.count + comparison.previous.count > 0,
            f"Comparing {comparison.current.label} with {comparison.previous.label}",
        )

    def _expense_breakdown(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        breakdown = category_breakdown(snapshot.transactions)
        return self._result(
            AnalyticCategory.EXPENSE_BREAKDOWN,
            snapshot,
            {"categories": breakdown},
            bool(breakdown),
            f"Expenses across {len(breakdown)} categor{'y' if len(breakdown) == 1 else 'ies'}",
        )

    def _profit(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        totals = summarize_totals(snapshot.transactions)
        return self._result(
            AnalyticCategory.PROFIT_ANALYSIS,
            snapshot,
            {"totals": totals, "months": monthly_breakdown(snapshot.transactions)},
            totals.transaction_count > 0,
            "Income minus expense",
        )

    def _anomalies(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        debits = snapshot.debits
        anomalies = detect_anomalies(
            debits,
            threshold_multiplier=self._analytics.anomaly_threshold_multiplier,
            tiers=self._tiers,
            known_descriptions=self._known_descriptions,
        )
        return self._result(
            AnalyticCategory.ANOMALY_DETECTION,
            snapshot,
            {"anomalies": anomalies},
            len(debits) >= 2,
            f"{len(anomalies)} unusual expense(s) among {len(debits)}",
        )

    def _sales_income(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        credits = snapshot.credits
        return self._result(
            AnalyticCategory.SALES_INCOME,
            snapshot,
            {
                "totals": summarize_totals(credits),
                "daily": build_daily_series(credits),
            },
            bool(credits),
            f"Income from {len(credits)} transaction(s)",
        )

    def _prediction(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        projection = forecast(
            build_daily_series(snapshot.transactions),
            horizon_days=self._analytics.forecast_horizon_days,
            min_history_days=self._analytics.forecast_min_history_days,
            trend_epsilon=self._analytics.trend_epsilon,
            minor_unit=self._analytics.minor_unit,
        )
        if projection is None:
            return self._result(
                AnalyticCategory.PREDICTION,
                snapshot,
                {"forecast": None},
                False,
                "Forecast unavailable: not enough history",
            )
        return self._result(
            AnalyticCategory.PREDICTION,
            snapshot,
            {"forecast": projection},
            True,
            f"{projection.horizon_days}-day projection from {projection.history_days} day(s) of history",
        )

    def _summary(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        totals = summarize_totals(snapshot.transactions)
        return self._result(
            AnalyticCategory.SUMMARY,
            snapshot,
            {
                "totals": totals,
                "top_categories": category_breakdown(snapshot.transactions)[:5],
                "pending_settlements": len(snapshot.unsettled),
                "reminder": settlement_reminder(
                    snapshot.transactions, now, self._reminder_policy
                ),
            },
            totals.transaction_count > 0,
            f"Overview of {totals.transaction_count} transaction(s)",
        )

    def _planned(
        self,
        analysis: str,
        snapshot: LedgerSnapshot,
        data: dict,
        data_found: bool,
        description: str,
    ) -> AnalysisResult:
        return AnalysisResult(
            analysis=analysis,
            data_found=data_found,
            data=data,
            skipped_count=snapshot.skipped_count,
            description=description,
        )

    def _settlement(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        return self.settlement_plan(snapshot, now)

    def _simulation(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        has_spending = bool(snapshot.debits)

        if is_budget_goal(query):
            goal = budget_goal(
                snapshot.transactions,
                parse_amount(query),
                achievable_percent=self._analytics.budget_achievable_percent,
                minor_unit=self._analytics.minor_unit,
            )
            if goal.on_track:
                description = f"Spending of {goal.current_monthly:,.2f}/month is within the target"
            else:
                description = (
                    f"Spending must drop by {goal.gap:,.2f}/month "
                    f"to reach {goal.target_monthly:,.2f}"
                )
            return self._planned("budget_goal", snapshot, {"goal": goal}, has_spending, description)

        scenario = parse_scenario(query, dict.fromkeys(t.category for t in snapshot.debits))
        simulation = simulate_spending(
            snapshot.transactions,
            scenario,
            snapshot.participants,
            self._analytics.minor_unit,
        )
        return self._planned(
            "simulation",
            snapshot,
            {"simulation": simulation},
            has_spending,
            f"{simulation.label}: {simulation.current_monthly:,.2f} -> "
            f"{simulation.projected_monthly:,.2f} per month",
        )

    def _savings(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        plan = savings_plan(
            snapshot.transactions,
            target=parse_amount(query),
            cut_percent=self._analytics.savings_cut_percent,
            minor_unit=self._analytics.minor_unit,
        )
        if plan.is_saving:
            description = f"Saving {plan.monthly_savings:,.2f} per month"
        else:
            description = f"Spending exceeds income by {-plan.monthly_savings:,.2f} per month"
        return self._planned(
            "savings", snapshot, {"plan": plan}, bool(snapshot.transactions), description
        )

    def _unpaid_bills(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        bills = unpaid_bills(snapshot.transactions, self._analytics.unpaid_list_limit)
        if bills.unsettled_count:
            description = (
                f"{bills.unsettled_count} unsettled transaction(s) "
                f"totaling {bills.unsettled_total:,.2f}"
            )
        else:
            description = "All transactions are settled"
        return self._planned(
            "unpaid_bills", snapshot, {"bills": bills}, bills.unsettled_count > 0, description
        )

    def _recurring(self, snapshot: LedgerSnapshot, query: str, now: datetime) -> AnalysisResult:
        payments = detect_recurring(
            snapshot.transactions,
            min_occurrences=self._analytics.recurring_min_occurrences,
            min_interval_days=self._analytics.recurring_min_interval_days,
            max_interval_days=self._analytics.recurring_max_interval_days,
            minor_unit=self._analytics.minor_unit,
        )
        return self._planned(
            "recurring",
            snapshot,
            {"payments": payments},
            bool(payments),
            f"{len(payments)} recurring payment(s) found",
        )
