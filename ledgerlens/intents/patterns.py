"""
Intent Pattern Tables and Clarification Registry

Static data versioned together with the IntentCategory taxonomy. The
resolver only reads these; nothing mutates them at runtime.

Weights:
- keywords: a direct hit on a phrase people use for this intent (0.9)
- semantic: a looser paraphrase of the same purpose (0.7)
- partial: a query token overlapping a keyword (0.5)
"""

from types import MappingProxyType
from typing import Optional

from ledgerlens.models.intent import (
    Clarification,
    ClarificationOption,
    IntentCategory,
    IntentPatterns,
)


KEYWORD_WEIGHT = 0.9
SEMANTIC_WEIGHT = 0.7
PARTIAL_WEIGHT = 0.5


_PATTERNS = {
    IntentCategory.SPENDING_ANALYSIS: IntentPatterns(
        keywords=("spent", "spending", "expenses", "paid", "cost", "money spent", "how much", "total"),
        semantic=("expense breakdown", "money going out", "cash flow", "expenditure", "outflow"),
        ambiguous=("spending", "expenses", "money"),
    ),
    IntentCategory.INCOME_ANALYSIS: IntentPatterns(
        keywords=("earned", "income", "revenue", "sales", "received", "credited"),
        semantic=("money coming in", "inflow", "earnings", "profit"),
        ambiguous=("income",),
    ),
    IntentCategory.SETTLEMENT: IntentPatterns(
        keywords=("owe", "owes", "debt", "settle", "settlement", "pay back", "balance", "split"),
        semantic=("who should pay whom", "clear up", "even out", "square up", "split the bill", "fair share"),
    ),
    IntentCategory.CATEGORY_BREAKDOWN: IntentPatterns(
        keywords=("category", "breakdown", "distribution", "by type", "categorize"),
        semantic=("where is money going", "spending categories", "expense types"),
        ambiguous=("breakdown",),
    ),
    IntentCategory.UNPAID_BILLS: IntentPatterns(
        keywords=("unpaid", "pending", "unsettled", "outstanding", "due", "overdue"),
        semantic=("bills to pay", "not yet paid", "remaining bills", "open transactions"),
    ),
    IntentCategory.TIMELINE: IntentPatterns(
        keywords=("timeline", "trend", "over time", "history", "graph", "chart", "daily", "weekly", "monthly"),
        semantic=("spending pattern", "how has it changed", "track over days", "daily spending"),
        ambiguous=("trend", "pattern"),
    ),
    IntentCategory.COMPARISON: IntentPatterns(
        keywords=("compare", "versus", "vs", "difference", "comparison", "vs last"),
        semantic=("this month vs last", "week over week", "period comparison", "changed since", "before and after"),
    ),
    IntentCategory.ANOMALY: IntentPatterns(
        keywords=("unusual", "anomaly", "weird", "strange", "spike", "abnormal", "suspicious"),
        semantic=("something wrong", "looks off", "unexpected", "out of ordinary", "red flag", "duplicate"),
    ),
    IntentCategory.SIMULATION: IntentPatterns(
        keywords=("what if", "simulate", "plan", "budget", "project", "forecast", "predict"),
        semantic=("hypothetical", "scenario", "if we", "planning ahead", "projection"),
        ambiguous=("plan", "budget"),
    ),
    IntentCategory.DECISION: IntentPatterns(
        keywords=("what should", "recommend", "suggest", "advice", "next step", "help me decide"),
        semantic=("what to do", "best action", "guide me", "your recommendation"),
    ),
    IntentCategory.FILTER: IntentPatterns(
        keywords=("show", "list", "filter", "only", "just", "find"),
        semantic=("zoom in", "focus on", "specific transactions", "narrow down", "search"),
    ),
    IntentCategory.SUMMARY: IntentPatterns(
        keywords=("summary", "overview", "report", "status", "dashboard"),
        semantic=("quick look", "snapshot", "at a glance", "overall"),
    ),
    IntentCategory.SAVINGS: IntentPatterns(
        keywords=("save", "saving", "savings", "cut back", "reduce"),
        semantic=("save money", "cut expenses", "budget tips", "spend less"),
    ),
    IntentCategory.RECURRING: IntentPatterns(
        keywords=("recurring", "subscription", "monthly", "regular", "fixed"),
        semantic=("subscriptions", "fixed costs", "monthly bills", "automatic payments"),
    ),
}

# Iteration order follows the IntentCategory declaration, which is the
# resolver's tie-break order.
INTENT_PATTERNS = MappingProxyType({
    intent: _PATTERNS[intent] for intent in IntentCategory.scored()
})


def _option(label: str, target: IntentCategory, refined_query: str) -> ClarificationOption:
    return ClarificationOption(label=label, target_intent=target, refined_query=refined_query)


_CLARIFICATIONS = (
    Clarification(
        trigger="spending",
        question="I can show you spending in different ways. What would you like to see?",
        options=(
            _option("By category", IntentCategory.CATEGORY_BREAKDOWN, "Show category breakdown"),
            _option("Over time", IntentCategory.TIMELINE, "Show spending timeline"),
            _option("All transactions", IntentCategory.FILTER, "Show all transactions"),
            _option("Top expenses", IntentCategory.SPENDING_ANALYSIS, "What are my biggest expenses?"),
        ),
    ),
    Clarification(
        trigger="expenses",
        question="What aspect of expenses would you like to explore?",
        options=(
            _option("By category", IntentCategory.CATEGORY_BREAKDOWN, "Break down by category"),
            _option("Recent trends", IntentCategory.TIMELINE, "Show spending trend"),
            _option("Unusual ones", IntentCategory.ANOMALY, "Any unusual expenses?"),
            _option("All expenses", IntentCategory.FILTER, "List all expenses"),
        ),
    ),
    Clarification(
        trigger="money",
        question="I can help with several money-related questions. Which one?",
        options=(
            _option("Spending breakdown", IntentCategory.CATEGORY_BREAKDOWN, "Show spending breakdown"),
            _option("Cash flow", IntentCategory.TIMELINE, "Show cash flow over time"),
            _option("Budget planning", IntentCategory.SIMULATION, "Help me plan a budget"),
            _option("Savings tips", IntentCategory.SAVINGS, "How can I save money?"),
        ),
    ),
    Clarification(
        trigger="breakdown",
        question="What kind of breakdown would you like?",
        options=(
            _option("By category", IntentCategory.CATEGORY_BREAKDOWN, "Show category breakdown"),
            _option("By date", IntentCategory.TIMELINE, "Show spending timeline"),
            _option("By merchant", IntentCategory.FILTER, "Group by merchant"),
        ),
    ),
    Clarification(
        trigger="trend",
        question="What trend are you interested in?",
        options=(
            _option("Overall spending", IntentCategory.TIMELINE, "Show spending over time"),
            _option("Compare periods", IntentCategory.COMPARISON, "Compare this month vs last"),
            _option("Anomalies", IntentCategory.ANOMALY, "Show unusual spending"),
        ),
    ),
    Clarification(
        trigger="plan",
        question="What would you like to plan?",
        options=(
            _option("Monthly budget", IntentCategory.SIMULATION, "Plan next month's budget"),
            _option("Savings goal", IntentCategory.SAVINGS, "Help me set a savings goal"),
            _option("What-if scenario", IntentCategory.SIMULATION, "What if I cut dining by 50%?"),
        ),
    ),
    Clarification(
        trigger="income",
        question="What would you like to know about income?",
        options=(
            _option("Total earnings", IntentCategory.INCOME_ANALYSIS, "How much did I earn?"),
            _option("Income vs expenses", IntentCategory.COMPARISON, "Compare income vs expenses"),
            _option("Profit margin", IntentCategory.INCOME_ANALYSIS, "What's my profit margin?"),
        ),
    ),
)

# Trigger word -> clarifying question, in registry order
CLARIFICATIONS = MappingProxyType({c.trigger: c for c in _CLARIFICATIONS})

# Single vague words declared by any intent, in declaration order
AMBIGUOUS_TRIGGERS: tuple[str, ...] = tuple(dict.fromkeys(
    word
    for patterns in INTENT_PATTERNS.values()
    for word in patterns.ambiguous
))


def get_clarification(trigger: str) -> Optional[Clarification]:
    """Registry lookup; None for words without a clarifying question."""
    return CLARIFICATIONS.get(trigger.strip().lower())
