"""
Query classification package.

Two independent classifiers: the intent resolver (conversational purpose)
and the analytic classifier (which computation to run).
"""

from ledgerlens.intents.analytic import ANALYTIC_RULES, classify_analytic
from ledgerlens.intents.nlu import (
    GeminiNLUClient,
    NLUClient,
    NLUError,
    NLUResponseError,
    NLUUnavailableError,
)
from ledgerlens.intents.patterns import (
    AMBIGUOUS_TRIGGERS,
    CLARIFICATIONS,
    INTENT_PATTERNS,
    get_clarification,
)
from ledgerlens.intents.resolver import (
    IntentResolver,
    IntentScore,
    check_ambiguity,
    score_intents,
)

__all__ = [
    "ANALYTIC_RULES",
    "classify_analytic",
    "GeminiNLUClient",
    "NLUClient",
    "NLUError",
    "NLUResponseError",
    "NLUUnavailableError",
    "AMBIGUOUS_TRIGGERS",
    "CLARIFICATIONS",
    "INTENT_PATTERNS",
    "get_clarification",
    "IntentResolver",
    "IntentScore",
    "check_ambiguity",
    "score_intents",
]
