"""
Data Models Package

This package contains all Pydantic models used in LedgerLens.
All data flowing through the engine must conform to these schemas.
"""

from ledgerlens.models.ledger import (
    DEFAULT_MINOR_UNIT,
    Anomaly,
    AnomalySeverity,
    DailyPoint,
    Direction,
    ForecastSeries,
    LedgerSnapshot,
    Participant,
    ReminderUrgency,
    SeriesTrend,
    Settlement,
    SettlementHistoryEntry,
    SettlementPlan,
    SettlementReminder,
    Transaction,
    TrendDirection,
    ValidationIssue,
    participant_names,
    split_equally,
    to_minor_units,
)
from ledgerlens.models.intent import (
    AnalyticCategory,
    Clarification,
    ClarificationOption,
    Intent,
    IntentCategory,
    IntentPatterns,
    IntentSource,
    NLUResponse,
)
from ledgerlens.models.analysis import (
    AnalysisResult,
    BudgetGoal,
    CategoryProjection,
    CategoryTotal,
    LedgerTotals,
    MonthlyTotal,
    PeriodComparison,
    PeriodTotals,
    QueryOutcome,
    RecurringPayment,
    SavingsPlan,
    ScenarioSimulation,
    UnpaidBills,
)
from ledgerlens.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_MINOR_UNIT",
    "Anomaly",
    "AnomalySeverity",
    "DailyPoint",
    "Direction",
    "ForecastSeries",
    "LedgerSnapshot",
    "Participant",
    "ReminderUrgency",
    "SeriesTrend",
    "Settlement",
    "SettlementHistoryEntry",
    "SettlementPlan",
    "SettlementReminder",
    "Transaction",
    "TrendDirection",
    "ValidationIssue",
    "participant_names",
    "split_equally",
    "to_minor_units",
    # Classification models
    "AnalyticCategory",
    "Clarification",
    "ClarificationOption",
    "Intent",
    "IntentCategory",
    "IntentPatterns",
    "IntentSource",
    "NLUResponse",
    # Analysis models
    "AnalysisResult",
    "BudgetGoal",
    "CategoryProjection",
    "CategoryTotal",
    "LedgerTotals",
    "MonthlyTotal",
    "PeriodComparison",
    "PeriodTotals",
    "QueryOutcome",
    "RecurringPayment",
    "SavingsPlan",
    "ScenarioSimulation",
    "UnpaidBills",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
