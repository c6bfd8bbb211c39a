"""
Audit Models for LedgerLens

Every step of answering a query is logged for audit purposes:
1. Which intent and analytic category a query resolved to, and why
2. When the external NLU was consulted and whether it helped
3. How many records were skipped as malformed
4. What each analytic computation produced

DESIGN DECISION: Audit events are append-only structured records. They
carry identifiers and counts, never full transaction payloads.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of the query pipeline has its own event type.
    """
    # Query intake
    QUERY_RECEIVED = "query_received"
    RECORDS_SKIPPED = "records_skipped"

    # Intent resolution
    CLARIFICATION_REQUESTED = "clarification_requested"
    INTENT_RESOLVED = "intent_resolved"
    NLU_CONSULTED = "nlu_consulted"
    NLU_REJECTED = "nlu_rejected"

    # Analytic classification and computation
    ANALYTIC_CLASSIFIED = "analytic_classified"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant step creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'query', 'intent', 'analysis')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events for one query)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.query_received(query_id, query, correlation_id)
        event = AuditEventBuilder.intent_resolved(query_id, "settlement", 0.9, ...)
    """

    @staticmethod
    def query_received(
        query_id: UUID,
        query: str,
        transaction_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_RECEIVED,
            entity_type="query",
            entity_id=query_id,
            correlation_id=correlation_id,
            description=f"Query received ({len(query)} chars)",
            details={
                "query_length": len(query),
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def records_skipped(
        skipped_count: int,
        issue_types: list[str],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Skipped {skipped_count} malformed records",
            details={
                "skipped_count": skipped_count,
                "issue_types": sorted(set(issue_types)),
            },
        )

    @staticmethod
    def clarification_requested(
        query_id: UUID,
        trigger: str,
        option_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLARIFICATION_REQUESTED,
            entity_type="query",
            entity_id=query_id,
            correlation_id=correlation_id,
            description=f"Query too vague, asking about '{trigger}'",
            details={
                "trigger": trigger,
                "option_count": option_count,
            },
        )

    @staticmethod
    def intent_resolved(
        query_id: UUID,
        intent: str,
        confidence: float,
        source: str,
        needs_clarification: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_RESOLVED,
            entity_type="intent",
            entity_id=query_id,
            correlation_id=correlation_id,
            description=f"Intent {intent} ({confidence:.0%}) via {source}",
            details={
                "intent": intent,
                "confidence": confidence,
                "source": source,
                "needs_clarification": needs_clarification,
            },
        )

    @staticmethod
    def nlu_consulted(
        rule_score: float,
        nlu_intent: Optional[str],
        nlu_confidence: Optional[float],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NLU_CONSULTED,
            entity_type="intent",
            correlation_id=correlation_id,
            description="Low rule confidence, consulted external NLU",
            details={
                "rule_score": rule_score,
                "nlu_intent": nlu_intent,
                "nlu_confidence": nlu_confidence,
            },
        )

    @staticmethod
    def nlu_rejected(
        nlu_intent: str,
        nlu_confidence: float,
        minimum: float,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NLU_REJECTED,
            entity_type="intent",
            correlation_id=correlation_id,
            description=f"NLU answer below {minimum:.0%}, keeping rule result",
            details={
                "nlu_intent": nlu_intent,
                "nlu_confidence": nlu_confidence,
            },
        )

    @staticmethod
    def analytic_classified(
        query_id: UUID,
        category: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYTIC_CLASSIFIED,
            entity_type="query",
            entity_id=query_id,
            correlation_id=correlation_id,
            description=f"Query classified as {category}",
            details={
                "category": category,
            },
        )

    @staticmethod
    def analysis_completed(
        result_id: UUID,
        category: str,
        data_found: bool,
        skipped_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            entity_type="analysis",
            entity_id=result_id,
            correlation_id=correlation_id,
            description=f"Analysis {category} completed",
            details={
                "category": category,
                "data_found": data_found,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def analysis_failed(
        result_id: UUID,
        category: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="analysis",
            entity_id=result_id,
            correlation_id=correlation_id,
            description=f"Analysis {category} failed",
            error_message=error_message,
            details={
                "category": category,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.WARNING,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
