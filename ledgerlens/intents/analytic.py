"""
Analytic Classifier

Decides which computation (and therefore which chart) answers a query.
Independent of the intent resolver: the two taxonomies answer different
questions and never consult each other.

DESIGN DECISION: The cascade is DATA, not an if/elif chain. ANALYTIC_RULES
is an ordered list of (predicate, category) pairs evaluated top to bottom;
the first predicate that matches wins, and SUMMARY is the default. Order
matters: "show me my expense trend" is a TREND_ANALYSIS because the trend
rule sits above the expense rule.
"""

import re
from typing import Callable

from ledgerlens.models.intent import AnalyticCategory


Predicate = Callable[[str], bool]

GREETING_PATTERN = re.compile(
    r"^(hello|hi|hey|greetings|good morning|good afternoon|good evening|namaste)\b"
)

MONTH_ABBREVIATIONS = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)


def contains_any(*phrases: str) -> Predicate:
    """Predicate matching a query that contains any of the phrases."""
    return lambda query: any(phrase in query for phrase in phrases)


def contains_all(*phrases: str) -> Predicate:
    """Predicate matching a query that contains every phrase."""
    return lambda query: all(phrase in query for phrase in phrases)


def either(*predicates: Predicate) -> Predicate:
    return lambda query: any(predicate(query) for predicate in predicates)


def is_greeting(query: str) -> bool:
    """A leading greeting word in a query of fewer than four tokens."""
    return bool(GREETING_PATTERN.match(query)) and len(query.split()) < 4


ANALYTIC_RULES: list[tuple[Predicate, AnalyticCategory]] = [
    (is_greeting, AnalyticCategory.GREETING),
    (
        either(
            contains_any("show me all", "list", "all transactions", "show transactions", "transaction list"),
            contains_all("show me", "transactions"),
        ),
        AnalyticCategory.TRANSACTION_LIST,
    ),
    (
        contains_any(
            "trend", "daily", "7 day", "pattern", "over time",
            "history", "timeline", "time line", "progress",
        ),
        AnalyticCategory.TREND_ANALYSIS,
    ),
    (
        contains_any("monthly", "month", "each month", "month by month", "month wise", *MONTH_ABBREVIATIONS),
        AnalyticCategory.MONTHLY_ANALYSIS,
    ),
    (
        contains_any("compare", "vs", "versus", "last week", "this week", "change"),
        AnalyticCategory.COMPARISON,
    ),
    (
        either(
            contains_any("expense", "spending", "breakdown", "category"),
            contains_all("where", "money"),
        ),
        AnalyticCategory.EXPENSE_BREAKDOWN,
    ),
    (
        contains_any("profit", "margin", "loss", "earning", "bottom line"),
        AnalyticCategory.PROFIT_ANALYSIS,
    ),
    (
        contains_any("unusual", "anomal", "strange", "weird", "spike", "alert"),
        AnalyticCategory.ANOMALY_DETECTION,
    ),
    (
        contains_any("sale", "income", "revenue", "earning", "collection"),
        AnalyticCategory.SALES_INCOME,
    ),
    (
        contains_any(
            "predict", "forecast", "future", "upcoming", "next week",
            "next month", "how much will", "expected",
        ),
        AnalyticCategory.PREDICTION,
    ),
]


def classify_analytic(query: str) -> AnalyticCategory:
    """Classify a query into an analytic category. Never fails; SUMMARY is the default."""
    normalized = query.strip().lower()
    for predicate, category in ANALYTIC_RULES:
        if predicate(normalized):
            return category
    return AnalyticCategory.SUMMARY
