"""
Query Classification Models

Two independent taxonomies are produced for every query:

- IntentCategory: the conversational purpose ("who owes whom?"). Drives
  routing: answer directly, or ask a clarifying question first.
- AnalyticCategory: the kind of computation/visualization the query calls
  for. Drives which analytics run.

DESIGN DECISION: Both taxonomies are enums, not strings. The declaration
order of IntentCategory is the tie-break order of the resolver, and the
order of AnalyticCategory mirrors the classifier cascade.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class IntentCategory(str, Enum):
    """
    Conversational intents, in tie-break order.

    UNKNOWN is never scored; it is what the resolver returns when
    nothing matched.
    """
    SPENDING_ANALYSIS = "spending_analysis"
    INCOME_ANALYSIS = "income_analysis"
    SETTLEMENT = "settlement"
    CATEGORY_BREAKDOWN = "category_breakdown"
    UNPAID_BILLS = "unpaid_bills"
    TIMELINE = "timeline"
    COMPARISON = "comparison"
    ANOMALY = "anomaly"
    SIMULATION = "simulation"
    DECISION = "decision"
    FILTER = "filter"
    SUMMARY = "summary"
    SAVINGS = "savings"
    RECURRING = "recurring"
    UNKNOWN = "unknown"

    @classmethod
    def scored(cls) -> list['IntentCategory']:
        """All intents that own pattern tables."""
        return [intent for intent in cls if intent is not cls.UNKNOWN]

    @classmethod
    def parse(cls, value: Optional[str]) -> 'IntentCategory':
        """
        Map a free-form label (e.g. from the NLU service) onto the enum.

        Labels such as "filter_food" collapse onto FILTER; anything
        unrecognized becomes UNKNOWN.
        """
        if not value:
            return cls.UNKNOWN
        label = value.strip().lower()
        try:
            return cls(label)
        except ValueError:
            pass
        if label.startswith("filter_"):
            return cls.FILTER
        return cls.UNKNOWN


class AnalyticCategory(str, Enum):
    """Analysis/visualization categories, in cascade order."""
    GREETING = "GREETING"
    TRANSACTION_LIST = "TRANSACTION_LIST"
    TREND_ANALYSIS = "TREND_ANALYSIS"
    MONTHLY_ANALYSIS = "MONTHLY_ANALYSIS"
    COMPARISON = "COMPARISON"
    EXPENSE_BREAKDOWN = "EXPENSE_BREAKDOWN"
    PROFIT_ANALYSIS = "PROFIT_ANALYSIS"
    ANOMALY_DETECTION = "ANOMALY_DETECTION"
    SALES_INCOME = "SALES_INCOME"
    PREDICTION = "PREDICTION"
    SUMMARY = "SUMMARY"


class IntentSource(str, Enum):
    """Which stage of the resolver produced the intent."""
    RULES = "rules"
    EXTERNAL_NLU = "external-nlu"


# =============================================================================
# PATTERN TABLE AND CLARIFICATION REGISTRY TYPES
# =============================================================================

class IntentPatterns(BaseModel):
    """Pattern sets owned by one intent."""
    model_config = ConfigDict(frozen=True)

    keywords: tuple[str, ...] = ()
    semantic: tuple[str, ...] = ()
    ambiguous: tuple[str, ...] = ()


class ClarificationOption(BaseModel):
    """One follow-up the user can pick instead of rephrasing."""
    model_config = ConfigDict(frozen=True)

    label: str
    target_intent: IntentCategory
    refined_query: str


class Clarification(BaseModel):
    """A clarifying question for a vague trigger word."""
    model_config = ConfigDict(frozen=True)

    trigger: str
    question: str
    options: tuple[ClarificationOption, ...] = Field(
        ...,
        min_length=2,
        max_length=4,
    )


# =============================================================================
# RESOLVER OUTPUT
# =============================================================================

class Intent(BaseModel):
    """
    The resolver's verdict on one query.

    Produced per query; never persisted.
    """

    category: IntentCategory
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
    )
    needs_clarification: bool
    matched_keyword: Optional[str] = None
    source: IntentSource = IntentSource.RULES

    # Present only when the ambiguity gate fired
    clarification: Optional[Clarification] = None

    # Present only when the external NLU answered
    entities: dict[str, Any] = Field(default_factory=dict)
    suggested_query: Optional[str] = None

    original_query: str = ""


class NLUResponse(BaseModel):
    """
    Classification contract returned by the external NLU collaborator.

    intent is kept as the raw label; the resolver maps it onto
    IntentCategory.
    """

    intent: str
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
    )
    entities: dict[str, Any] = Field(default_factory=dict)
    needs_clarification: bool = False
    suggested_query: Optional[str] = None
