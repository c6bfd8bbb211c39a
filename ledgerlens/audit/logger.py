"""
Audit Logger

DESIGN DECISION: Every step of answering a query is logged.
This provides:
1. Complete traceability from raw query to computed answer
2. Visibility into when the external NLU helped and when it failed
3. A record of how many input records were dropped and why

The audit logger:
- Writes structured JSON through structlog; persistence is left to
  whatever collects the log stream
- Gracefully handles failures (logging never breaks a query)
- Supports correlation IDs to trace all events of one query
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledgerlens.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through a stdlib handler at the given level."""
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("ledgerlens").setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Every event goes to the structured log. Events are also kept in
    memory when record_events is set, which the orchestrator uses to hand
    the trail of one query back to its caller.
    """

    def __init__(self, record_events: bool = False):
        self._logger = structlog.get_logger("ledgerlens.audit")
        self._record_events = record_events
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        """Events recorded so far (empty unless record_events is set)."""
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the log write failed. Never raises.
        """
        if self._record_events:
            self._events.append(event)

        try:
            log_dict = event.to_log_dict()

            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # A broken log sink must not break the query
            return False

        return True

    def log_query_received(
        self,
        query_id: UUID,
        query: str,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log query intake."""
        event = AuditEventBuilder.query_received(
            query_id=query_id,
            query=query,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_records_skipped(
        self,
        skipped_count: int,
        issue_types: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log malformed records excluded from a snapshot."""
        event = AuditEventBuilder.records_skipped(
            skipped_count=skipped_count,
            issue_types=issue_types,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_clarification_requested(
        self,
        query_id: UUID,
        trigger: str,
        option_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.clarification_requested(
            query_id=query_id,
            trigger=trigger,
            option_count=option_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_intent_resolved(
        self,
        query_id: UUID,
        intent: str,
        confidence: float,
        source: str,
        needs_clarification: bool,
        correlation_id: UUID,
    ) -> None:
        """Log the resolver's verdict."""
        event = AuditEventBuilder.intent_resolved(
            query_id=query_id,
            intent=intent,
            confidence=confidence,
            source=source,
            needs_clarification=needs_clarification,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_nlu_consulted(
        self,
        rule_score: float,
        nlu_intent: Optional[str],
        nlu_confidence: Optional[float],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.nlu_consulted(
            rule_score=rule_score,
            nlu_intent=nlu_intent,
            nlu_confidence=nlu_confidence,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_nlu_rejected(
        self,
        nlu_intent: str,
        nlu_confidence: float,
        minimum: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.nlu_rejected(
            nlu_intent=nlu_intent,
            nlu_confidence=nlu_confidence,
            minimum=minimum,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_analytic_classified(
        self,
        query_id: UUID,
        category: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analytic_classified(
            query_id=query_id,
            category=category,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_analysis_completed(
        self,
        result_id: UUID,
        category: str,
        data_found: bool,
        skipped_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a finished computation."""
        event = AuditEventBuilder.analysis_completed(
            result_id=result_id,
            category=category,
            data_found=data_found,
            skipped_count=skipped_count,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_analysis_failed(
        self,
        result_id: UUID,
        category: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analysis_failed(
            result_id=result_id,
            category=category,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each query.
    Pass it through all subsequent operations.
    """
    return uuid4()
