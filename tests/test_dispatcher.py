"""
Tests for the analytics dispatcher

The dispatcher must never raise and must only report figures derived
from the snapshot.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledgerlens.models.intent import AnalyticCategory, IntentCategory
from ledgerlens.models.ledger import Direction, LedgerSnapshot, Transaction
from ledgerlens.queries import AnalyticsDispatcher


NOW = datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)


def txn(amount, day, category="Other", direction=Direction.DEBIT, payer="A", **kwargs):
    return Transaction(
        date=date(2024, 3, day),
        amount=Decimal(str(amount)),
        payer=payer,
        category=category,
        direction=direction,
        **kwargs,
    )


@pytest.fixture
def dispatcher():
    return AnalyticsDispatcher(known_descriptions=["Annual insurance"])


@pytest.fixture
def snapshot():
    return LedgerSnapshot(
        transactions=[
            txn(300, 1, "Rent"),
            txn(40, 2, "Food", payer="B"),
            txn(60, 3, "Food", payer="C"),
            txn(1000, 10, "Sales", Direction.CREDIT),
            txn(250, 12, "Sales", Direction.CREDIT),
        ],
        participants=["A", "B", "C"],
        skipped_count=2,
    )


class TestDispatch:
    """Tests for AnalyticsDispatcher.dispatch."""

    def test_every_category_is_handled(self, dispatcher, snapshot):
        """Test that every category returns a successful result."""
        for category in AnalyticCategory:
            result = dispatcher.dispatch(category, snapshot, now=NOW)
            assert result.success, category
            assert result.category == category
            assert result.analysis == category.value.lower()
            assert result.skipped_count == 2

    def test_expense_breakdown(self, dispatcher, snapshot):
        """Test the category breakdown payload."""
        result = dispatcher.dispatch(AnalyticCategory.EXPENSE_BREAKDOWN, snapshot, now=NOW)
        categories = result.data["categories"]
        assert [c.category for c in categories] == ["Rent", "Food"]
        assert categories[1].amount == Decimal("100")
        assert result.data_found is True

    def test_profit(self, dispatcher, snapshot):
        """Test income minus expense."""
        result = dispatcher.dispatch(AnalyticCategory.PROFIT_ANALYSIS, snapshot, now=NOW)
        assert result.data["totals"].net == Decimal("850")

    def test_transaction_list_uses_query(self, dispatcher, snapshot):
        """Test that the list query is parsed into a filter."""
        result = dispatcher.dispatch(
            AnalyticCategory.TRANSACTION_LIST,
            snapshot,
            query="show me 1 food transactions",
            now=NOW,
        )
        assert result.data["filter"].category.lower() == "food"
        assert result.data["matched_count"] == 2
        assert result.data["matched_total"] == Decimal("100")
        assert [t.amount for t in result.data["transactions"]] == [Decimal("60")]
        assert "showing 1 of 2" in result.description

    def test_comparison_uses_now(self, dispatcher, snapshot):
        """Test that the comparison window ends at the given time."""
        result = dispatcher.dispatch(AnalyticCategory.COMPARISON, snapshot, now=NOW)
        comparison = result.data["comparison"]
        assert comparison.current.end == date(2024, 3, 14)
        assert comparison.current.income == Decimal("1250")
        assert comparison.previous.expense == Decimal("400")

    def test_anomalies_over_debits(self, dispatcher):
        """Test that anomaly detection only looks at expenses."""
        snapshot = LedgerSnapshot(
            transactions=[
                txn(100, 1), txn(100, 2), txn(100, 3), txn(100, 4),
                txn(1000, 5, description="Annual insurance"),
                txn(90000, 6, direction=Direction.CREDIT),
            ],
            participants=["A"],
        )
        result = dispatcher.dispatch(AnalyticCategory.ANOMALY_DETECTION, snapshot, now=NOW)
        anomalies = result.data["anomalies"]
        assert [a.observed_amount for a in anomalies] == [Decimal("1000")]
        assert anomalies[0].is_known is True

    def test_prediction_unavailable(self, dispatcher):
        """Test that too little history yields no forecast, not a guess."""
        snapshot = LedgerSnapshot(transactions=[txn(10, 1), txn(20, 2)], participants=["A"])
        result = dispatcher.dispatch(AnalyticCategory.PREDICTION, snapshot, now=NOW)
        assert result.success is True
        assert result.data_found is False
        assert result.data["forecast"] is None
        assert "not enough history" in result.description

    def test_prediction(self, dispatcher, snapshot):
        """Test that enough history gives a projection."""
        result = dispatcher.dispatch(AnalyticCategory.PREDICTION, snapshot, now=NOW)
        assert result.data_found is True
        assert result.data["forecast"].history_days == 5

    def test_summary(self, dispatcher, snapshot):
        """Test the overview payload."""
        result = dispatcher.dispatch(AnalyticCategory.SUMMARY, snapshot, now=NOW)
        assert result.data["totals"].transaction_count == 5
        assert result.data["pending_settlements"] == 5
        assert result.data["reminder"] is not None
        assert len(result.data["top_categories"]) <= 5

    def test_empty_snapshot(self, dispatcher):
        """Test that nothing to compute on is reported, not invented."""
        empty = LedgerSnapshot()
        for category in AnalyticCategory:
            result = dispatcher.dispatch(category, empty, now=NOW)
            assert result.success
            assert result.data_found is False

    def test_failures_are_reported_not_raised(self, dispatcher, snapshot):
        """Test that a failing handler produces success=False."""
        def broken(snapshot, query, now):
            raise RuntimeError("disk on fire")

        dispatcher._handlers[AnalyticCategory.TREND_ANALYSIS] = broken
        result = dispatcher.dispatch(AnalyticCategory.TREND_ANALYSIS, snapshot, now=NOW)

        assert result.success is False
        assert result.data_found is False
        assert result.error_message == "disk on fire"
        assert result.analysis == "trend_analysis"


class TestSettlementPlan:
    """Tests for AnalyticsDispatcher.settlement_plan."""

    def test_three_way_split(self, dispatcher):
        """Test that the plan, reminder and history are returned."""
        snapshot = LedgerSnapshot(
            transactions=[
                txn(300, 1),
                txn(50, 2, settled=True, settled_at=NOW - timedelta(days=2)),
            ],
            participants=["A", "B", "C"],
        )
        result = dispatcher.settlement_plan(snapshot, now=NOW)

        assert result.analysis == "settlement"
        assert result.category is None
        assert result.data_found is True
        plan = result.data["plan"]
        assert [(s.from_participant, s.to_participant, s.amount) for s in plan.settlements] == [
            ("B", "A", Decimal("100")),
            ("C", "A", Decimal("100")),
        ]
        assert result.data["reminder"].days_since_last_settlement == 2
        assert len(result.data["history"]) == 1
        assert result.description == "2 payment(s) settle 1 unsettled transactions"

    def test_skips_are_added_up(self, dispatcher):
        """Test that snapshot and solver skips are both reported."""
        snapshot = LedgerSnapshot(
            transactions=[txn(300, 1), txn(20, 2, payer="Zed")],
            participants=["A", "B", "C"],
            skipped_count=1,
        )
        result = dispatcher.settlement_plan(snapshot, now=NOW)
        assert result.skipped_count == 2

    def test_nothing_to_settle(self, dispatcher):
        """Test an empty backlog."""
        result = dispatcher.settlement_plan(LedgerSnapshot(participants=["A", "B"]), now=NOW)
        assert result.data_found is False
        assert result.data["plan"].is_settled
        assert result.data["reminder"] is None
        assert result.description == "No pending transactions to settle"


class TestDispatchIntent:
    """Tests for AnalyticsDispatcher.dispatch_intent."""

    def test_category_simulation(self, dispatcher, snapshot):
        """Test a what-if on one category, split across the group."""
        result = dispatcher.dispatch_intent(
            IntentCategory.SIMULATION, snapshot, "what if I cut food by 50%", NOW
        )
        assert result.analysis == "simulation"
        assert result.category is None
        assert result.skipped_count == 2
        simulation = result.data["simulation"]
        assert simulation.category == "Food"
        assert simulation.current_monthly == Decimal("400")
        assert simulation.projected_monthly == Decimal("350")
        assert simulation.per_person_monthly == Decimal("16.67")
        assert result.description == "50% reduction in Food: 400.00 -> 350.00 per month"

    def test_budget_goal(self, dispatcher, snapshot):
        """Test that a target amount turns a simulation into a budget goal."""
        result = dispatcher.dispatch_intent(
            IntentCategory.SIMULATION, snapshot, "set a budget of 300", NOW
        )
        assert result.analysis == "budget_goal"
        goal = result.data["goal"]
        assert goal.gap == Decimal("100")
        assert goal.reduction_percent == 25.0
        assert goal.achievable is True

    def test_savings(self, dispatcher, snapshot):
        """Test the savings rate and time to a target from the query."""
        result = dispatcher.dispatch_intent(
            IntentCategory.SAVINGS, snapshot, "how can I save 1000", NOW
        )
        plan = result.data["plan"]
        assert plan.monthly_savings == Decimal("850")
        assert plan.months_to_target == 1.2
        assert result.description == "Saving 850.00 per month"

    def test_unpaid_bills(self, dispatcher, snapshot):
        """Test the unsettled listing."""
        result = dispatcher.dispatch_intent(IntentCategory.UNPAID_BILLS, snapshot, "", NOW)
        bills = result.data["bills"]
        assert bills.unsettled_count == 5
        assert bills.by_payer == {"A": Decimal("1550"), "B": Decimal("40"), "C": Decimal("60")}
        assert result.description == "5 unsettled transaction(s) totaling 1,650.00"

    def test_recurring_nothing_found(self, dispatcher, snapshot):
        """Test that a single month has no recurring payments."""
        result = dispatcher.dispatch_intent(IntentCategory.RECURRING, snapshot, "", NOW)
        assert result.success is True
        assert result.data_found is False
        assert result.data["payments"] == []

    def test_settlement(self, dispatcher, snapshot):
        """Test that settlement goes through the settlement plan."""
        result = dispatcher.dispatch_intent(IntentCategory.SETTLEMENT, snapshot, "", NOW)
        assert result.analysis == "settlement"

    def test_chart_intents_are_not_handled(self, dispatcher, snapshot):
        """Test that intents without a computation of their own return None."""
        for intent in (IntentCategory.SPENDING_ANALYSIS, IntentCategory.DECISION, IntentCategory.UNKNOWN):
            assert dispatcher.dispatch_intent(intent, snapshot, "", NOW) is None

    def test_failures_are_reported_not_raised(self, dispatcher, snapshot):
        """Test that a failing intent computation comes back unsuccessful."""

        def broken(snapshot, query, now):
            raise ArithmeticError("division by zero")

        dispatcher._intent_handlers[IntentCategory.SAVINGS] = broken
        result = dispatcher.dispatch_intent(IntentCategory.SAVINGS, snapshot, "", NOW)
        assert result.success is False
        assert result.analysis == "savings"
        assert result.error_message == "division by zero"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
