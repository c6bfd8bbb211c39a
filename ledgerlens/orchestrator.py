"""
Main Orchestrator for LedgerLens

Ties the components together into the end-to-end query flow:
raw records → snapshot → (intent, analytic category) → computation.

DESIGN DECISION: The orchestrator enforces the boundaries:
- Malformed records never reach the analytics; they are counted
- Vague queries get a clarifying question, not a guessed answer
- Every figure comes from the deterministic analytics, never the model
- Every step is audited under one correlation id

This is the "glue" that keeps the answer well-defined even when the
external NLU is slow, wrong or missing.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from ledgerlens.audit import AuditLogger, configure_logging, create_correlation_id
from ledgerlens.config import get_settings
from ledgerlens.intents import GeminiNLUClient, IntentResolver, classify_analytic
from ledgerlens.models.analysis import AnalysisResult, QueryOutcome
from ledgerlens.models.intent import AnalyticCategory, Intent, IntentCategory
from ledgerlens.models.ledger import LedgerSnapshot, Participant
from ledgerlens.queries import AnalyticsDispatcher
from ledgerlens.validation import TransactionValidator


class QueryFlow:
    """
    Orchestrates answering one query.

    Flow:
    1. Intake → audit the query (and any skipped records)
    2. Resolve → conversational intent (rules, then optional NLU)
    3. Classify → analytic category (ordered cascade)
    4. Clarify → stop here if the query is too vague
    5. Compute → the intent's own computation (settlement, simulation,
       savings, unpaid bills, recurring) or the analytic category's
    """

    def __init__(
        self,
        resolver: Optional[IntentResolver] = None,
        dispatcher: Optional[AnalyticsDispatcher] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._resolver = resolver or IntentResolver(audit_logger=self._audit_logger)
        self._dispatcher = dispatcher or AnalyticsDispatcher()
        self._validator = validator or TransactionValidator()

    def build_snapshot(
        self,
        records: Iterable[Any],
        participants: Optional[Iterable[Union[str, Participant]]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerSnapshot:
        """Validate raw records into a snapshot, auditing anything dropped."""
        snapshot = self._validator.build_snapshot(records, participants)
        if snapshot.skipped_count:
            self._audit_logger.log_records_skipped(
                skipped_count=snapshot.skipped_count,
                issue_types=[
                    issue.issue_type for issue in snapshot.issues
                    if issue.severity == "error"
                ],
                correlation_id=correlation_id,
            )
        return snapshot

    def _compute(
        self,
        intent: Intent,
        query: str,
        analytic_category: AnalyticCategory,
        snapshot: LedgerSnapshot,
        now: Optional[datetime],
    ) -> AnalysisResult:
        # Forecast questions score as simulation too; the forecaster answers them
        if not (
            intent.category is IntentCategory.SIMULATION
            and analytic_category is AnalyticCategory.PREDICTION
        ):
            result = self._dispatcher.dispatch_intent(intent.category, snapshot, query, now)
            if result is not None:
                return result
        return self._dispatcher.dispatch(analytic_category, snapshot, query, now)

    async def answer(
        self,
        query: str,
        snapshot: LedgerSnapshot,
        context: Optional[dict[str, Any]] = None,
        correlation_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> QueryOutcome:
        """
        Answer a query over a snapshot.

        Returns:
            QueryOutcome. Its result is None when the query needs a
            clarifying question first.
        """
        correlation_id = correlation_id or create_correlation_id()
        query_id = uuid4()

        self._audit_logger.log_query_received(
            query_id=query_id,
            query=query,
            transaction_count=len(snapshot.transactions),
            correlation_id=correlation_id,
        )

        # Step 1: Conversational intent
        intent = await self._resolver.resolve(query, context, correlation_id)

        if intent.clarification is not None:
            self._audit_logger.log_clarification_requested(
                query_id=query_id,
                trigger=intent.clarification.trigger,
                option_count=len(intent.clarification.options),
                correlation_id=correlation_id,
            )

        self._audit_logger.log_intent_resolved(
            query_id=query_id,
            intent=intent.category.value,
            confidence=intent.confidence,
            source=intent.source.value,
            needs_clarification=intent.needs_clarification,
            correlation_id=correlation_id,
        )

        # Step 2: Analytic category, independent of the intent
        analytic_category = classify_analytic(query)
        self._audit_logger.log_analytic_classified(
            query_id=query_id,
            category=analytic_category.value,
            correlation_id=correlation_id,
        )

        # Step 3: Ask before computing
        if intent.clarification is not None:
            return QueryOutcome(
                correlation_id=correlation_id,
                query=query,
                intent=intent,
                analytic_category=analytic_category,
            )

        # Step 4: Compute
        result = self._compute(intent, query, analytic_category, snapshot, now)

        if result.success:
            self._audit_logger.log_analysis_completed(
                result_id=result.result_id,
                category=result.analysis,
                data_found=result.data_found,
                skipped_count=result.skipped_count,
                correlation_id=correlation_id,
            )
        else:
            self._audit_logger.log_analysis_failed(
                result_id=result.result_id,
                category=result.analysis,
                error_message=result.error_message or "unknown error",
                correlation_id=correlation_id,
            )

        return QueryOutcome(
            correlation_id=correlation_id,
            query=query,
            intent=intent,
            analytic_category=analytic_category,
            result=result,
        )


def create_app_components(use_nlu: bool = True) -> QueryFlow:
    """
    Factory function to create the query flow.

    Args:
        use_nlu: Whether to wire in the Gemini NLU fallback. It is only
                 used when an API key is configured.

    Returns:
        query_flow
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)
    audit_logger = AuditLogger()

    nlu_client = None
    if use_nlu and settings.gemini.is_configured:
        try:
            nlu_client = GeminiNLUClient(settings.gemini, audit_logger)
        except Exception as e:
            # NLU not usable - continue on rules alone
            audit_logger.log_external_service_error(
                service="gemini-nlu",
                error_message=f"NLU not configured: {e}",
            )
            nlu_client = None

    resolver = IntentResolver(
        nlu_client=nlu_client,
        settings=settings.intent,
        audit_logger=audit_logger,
    )

    return QueryFlow(
        resolver=resolver,
        dispatcher=AnalyticsDispatcher(settings),
        validator=TransactionValidator(settings.app.future_date_tolerance_days),
        audit_logger=audit_logger,
    )
