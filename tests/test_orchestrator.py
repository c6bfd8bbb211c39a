"""
Integration tests for the query flow

Raw records in, QueryOutcome out, with the audit trail recorded in
memory. The NLU is stubbed.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ledgerlens.audit import AuditLogger
from ledgerlens.config import IntentSettings
from ledgerlens.intents import IntentResolver
from ledgerlens.models.audit import AuditEventType
from ledgerlens.models.intent import AnalyticCategory, IntentCategory, IntentSource, NLUResponse
from ledgerlens.orchestrator import QueryFlow, create_app_components
from ledgerlens.queries import AnalyticsDispatcher
from ledgerlens.validation import TransactionValidator


NOW = datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)

RECORDS = [
    {"id": "t1", "date": "2024-03-01", "amount": "300", "payer": "A", "category": "Rent"},
    {"id": "t2", "date": "2024-03-02", "amount": "45", "payer": "B", "category": "Food"},
    {"id": "t3", "date": "2024-03-05", "amount": "900", "payer": "A",
     "category": "Sales", "direction": "credit"},
    {"id": "t4", "date": "2024-03-06", "amount": "-10", "payer": "C"},
    {"id": "t5", "date": "2024-03-07", "payer": "C"},
]


def run(coro):
    return asyncio.run(coro)


class StubNLU:
    def __init__(self, response=None):
        self.response = response

    async def classify(self, query, taxonomy, context=None):
        return self.response


def make_flow(nlu=None):
    audit = AuditLogger(record_events=True)
    flow = QueryFlow(
        resolver=IntentResolver(nlu_client=nlu, settings=IntentSettings(), audit_logger=audit),
        dispatcher=AnalyticsDispatcher(),
        validator=TransactionValidator(future_date_tolerance_days=1),
        audit_logger=audit,
    )
    return flow, audit


def event_types(audit):
    return [event.event_type for event in audit.events]


class TestBuildSnapshot:
    """Tests for QueryFlow.build_snapshot."""

    def test_bad_records_are_skipped_and_audited(self):
        """Test that malformed records are counted and logged."""
        flow, audit = make_flow()
        snapshot = flow.build_snapshot(RECORDS, participants=["A", "B", "C"])

        assert [t.id for t in snapshot.transactions] == ["t1", "t2", "t3"]
        assert snapshot.skipped_count == 2
        assert event_types(audit) == [AuditEventType.RECORDS_SKIPPED]
        assert audit.events[0].details["issue_types"] == ["invalid_value", "missing"]

    def test_clean_batch_logs_nothing(self):
        """Test that a clean batch produces no skip event."""
        flow, audit = make_flow()
        flow.build_snapshot(RECORDS[:3])
        assert audit.events == []


class TestAnswer:
    """Tests for QueryFlow.answer."""

    @pytest.fixture
    def flow_and_snapshot(self):
        flow, audit = make_flow()
        snapshot = flow.build_snapshot(RECORDS, participants=["A", "B", "C"])
        audit.clear()
        return flow, audit, snapshot

    def test_vague_query_asks_before_computing(self, flow_and_snapshot):
        """Test that 'spending' gets a question and no result."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("spending", snapshot, now=NOW))

        assert outcome.needs_clarification is True
        assert outcome.result is None
        assert outcome.intent.clarification.trigger == "spending"
        assert outcome.analytic_category == AnalyticCategory.EXPENSE_BREAKDOWN
        assert event_types(audit) == [
            AuditEventType.QUERY_RECEIVED,
            AuditEventType.CLARIFICATION_REQUESTED,
            AuditEventType.INTENT_RESOLVED,
            AuditEventType.ANALYTIC_CLASSIFIED,
        ]

    def test_settlement_query(self, flow_and_snapshot):
        """Test that 'who owes whom' is answered by the solver."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("who owes whom?", snapshot, now=NOW))

        assert outcome.intent.category == IntentCategory.SETTLEMENT
        result = outcome.result
        assert result.analysis == "settlement"
        assert result.skipped_count == 2

        plan = result.data["plan"]
        assert plan.unsettled_count == 3
        assert sum(plan.balances.values()) == Decimal("0")
        assert plan.total == sum(b for b in plan.balances.values() if b > 0)
        assert event_types(audit)[-1] == AuditEventType.ANALYSIS_COMPLETED

    def test_chart_query(self, flow_and_snapshot):
        """Test that a trend question runs the trend computation."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("show me my expense trend", snapshot, now=NOW))

        assert outcome.intent.category == IntentCategory.TIMELINE
        assert outcome.analytic_category == AnalyticCategory.TREND_ANALYSIS
        assert outcome.result.category == AnalyticCategory.TREND_ANALYSIS
        assert len(outcome.result.data["daily"]) == 3

    def test_simulation_query(self, flow_and_snapshot):
        """Test that a what-if is answered by the simulation, not the summary."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("what if I cut food by 50%", snapshot, now=NOW))

        assert outcome.intent.category == IntentCategory.SIMULATION
        assert outcome.result.analysis == "simulation"
        simulation = outcome.result.data["simulation"]
        assert simulation.category == "Food"
        assert simulation.current_monthly == Decimal("345")
        assert simulation.projected_monthly == Decimal("322.50")
        assert event_types(audit)[-1] == AuditEventType.ANALYSIS_COMPLETED

    def test_unpaid_bills_query(self, flow_and_snapshot):
        """Test that pending bills are listed."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("any pending bills?", snapshot, now=NOW))

        assert outcome.intent.category == IntentCategory.UNPAID_BILLS
        assert outcome.result.analysis == "unpaid_bills"
        assert outcome.result.data["bills"].unsettled_count == 3

    def test_forecast_question_stays_with_the_forecaster(self, flow_and_snapshot):
        """Test that a prediction question is not turned into a what-if."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("predict next week", snapshot, now=NOW))

        assert outcome.intent.category == IntentCategory.SIMULATION
        assert outcome.analytic_category == AnalyticCategory.PREDICTION
        assert outcome.result.category == AnalyticCategory.PREDICTION

    def test_one_correlation_id_per_query(self, flow_and_snapshot):
        """Test that every event of a query shares the correlation id."""
        flow, audit, snapshot = flow_and_snapshot
        outcome = run(flow.answer("what is my profit", snapshot, now=NOW))

        assert outcome.result.data["totals"].net == Decimal("555")
        assert {event.correlation_id for event in audit.events} == {outcome.correlation_id}

    def test_failed_analysis_is_audited(self, flow_and_snapshot):
        """Test that a failing computation is reported, not raised."""
        flow, audit, snapshot = flow_and_snapshot

        def broken(snapshot, query, now):
            raise ValueError("bad data")

        flow._dispatcher._handlers[AnalyticCategory.PROFIT_ANALYSIS] = broken
        outcome = run(flow.answer("what is my profit", snapshot, now=NOW))

        assert outcome.result.success is False
        assert event_types(audit)[-1] == AuditEventType.ANALYSIS_FAILED
        assert audit.events[-1].error_message == "bad data"

    def test_nlu_answer_routes_the_query(self):
        """Test that a confident NLU label is used for an unmatched query."""
        flow, audit = make_flow(StubNLU(NLUResponse(intent="settlement", confidence=0.9)))
        snapshot = flow.build_snapshot(RECORDS[:3], participants=["A", "B", "C"])
        outcome = run(flow.answer("xyzzy qwerty", snapshot, now=NOW))

        assert outcome.intent.source == IntentSource.EXTERNAL_NLU
        assert outcome.result.analysis == "settlement"
        assert AuditEventType.NLU_CONSULTED in event_types(audit)


class TestFactory:
    """Tests for create_app_components."""

    def test_rules_only_without_nlu(self):
        """Test that the factory builds a flow without an NLU."""
        flow = create_app_components(use_nlu=False)
        assert isinstance(flow, QueryFlow)
        assert flow._resolver.has_nlu is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
