"""
Plain Aggregations

Totals, breakdowns and listings over a ledger snapshot. These back the
chart categories that need no model of their own: profit, category
split, monthly performance, week-over-week comparison and the
transaction list.
"""

import re
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ledgerlens.models.analysis import (
    CategoryTotal,
    LedgerTotals,
    MonthlyTotal,
    PeriodComparison,
    PeriodTotals,
)
from ledgerlens.models.ledger import Direction, Transaction


ZERO = Decimal("0")

# Categories recognized in list queries even when the ledger has none yet
DEFAULT_LIST_CATEGORIES = ("inventory", "rent", "supplies", "transport", "salary")

CREDIT_WORDS = ("income", "sale", "credit", "deposit")
DEBIT_WORDS = ("expense", "spend", "debit", "cost")

LIMIT_PATTERN = re.compile(r"(\d+)")


def summarize_totals(transactions: Iterable[Transaction]) -> LedgerTotals:
    """Total income, total expense and count."""
    income = expense = ZERO
    count = 0
    for txn in transactions:
        count += 1
        if txn.direction == Direction.CREDIT:
            income += txn.amount
        else:
            expense += txn.amount
    return LedgerTotals(total_income=income, total_expense=expense, transaction_count=count)


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Debits per category, largest first. Percentages are of total expense."""
    totals: dict[str, tuple[Decimal, int]] = {}
    for txn in transactions:
        if txn.direction != Direction.DEBIT:
            continue
        amount, count = totals.get(txn.category, (ZERO, 0))
        totals[txn.category] = (amount + txn.amount, count + 1)

    grand_total = sum((amount for amount, _ in totals.values()), ZERO)
    breakdown = [
        CategoryTotal(
            category=category,
            amount=amount,
            count=count,
            percentage=round(float(amount / grand_total) * 100, 1) if grand_total else 0.0,
        )
        for category, (amount, count) in totals.items()
    ]
    breakdown.sort(key=lambda item: item.amount, reverse=True)
    return breakdown


def monthly_breakdown(transactions: Iterable[Transaction]) -> list[MonthlyTotal]:
    """Income and expense per calendar month, oldest first."""
    months: dict[str, tuple[Decimal, Decimal, int]] = {}
    for txn in transactions:
        key = txn.date.strftime("%Y-%m")
        income, expense, count = months.get(key, (ZERO, ZERO, 0))
        if txn.direction == Direction.CREDIT:
            income += txn.amount
        else:
            expense += txn.amount
        months[key] = (income, expense, count + 1)

    return [
        MonthlyTotal(month=key, income=income, expense=expense, count=count)
        for key, (income, expense, count) in sorted(months.items())
    ]


def _period(transactions: list[Transaction], label: str, start: date, end: date) -> PeriodTotals:
    inside = [t for t in transactions if start <= t.date <= end]
    totals = summarize_totals(inside)
    return PeriodTotals(
        label=label,
        start=start,
        end=end,
        income=totals.total_income,
        expense=totals.total_expense,
        count=totals.transaction_count,
    )


def percent_change(current: Decimal, previous: Decimal) -> Optional[float]:
    """Rounded percent change; None when there is nothing to compare against."""
    if previous <= 0:
        return None
    return round(float((current - previous) / previous) * 100, 1)


def compare_periods(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
    window_days: int = 7,
) -> PeriodComparison:
    """
    The last window_days (ending today) against the window before it.

    With the default window this is this week versus last week.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")

    today = today or date.today()
    transactions = list(transactions)

    current_start = today - timedelta(days=window_days - 1)
    previous_end = current_start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=window_days - 1)

    labels = ("this week", "last week") if window_days == 7 else (
        f"last {window_days} days", f"previous {window_days} days"
    )
    current = _period(transactions, labels[0], current_start, today)
    previous = _period(transactions, labels[1], previous_start, previous_end)

    return PeriodComparison(
        current=current,
        previous=previous,
        income_change_percent=percent_change(current.income, previous.income),
        expense_change_percent=percent_change(current.expense, previous.expense),
    )


class TransactionFilter(BaseModel):
    """What a list query asks to see."""

    category: Optional[str] = None
    direction: Optional[Direction] = None
    limit: int = Field(default=50, ge=1)


def parse_transaction_filter(
    query: str,
    categories: Iterable[str] = (),
    max_results: int = 50,
) -> TransactionFilter:
    """
    Read a category, a direction and a count out of a list query.

    "show 10 rent transactions" -> category rent, limit 10. Categories
    present in the ledger are recognized as well as a default set. A
    number outside 1..max_results is ignored.
    """
    lowered = query.lower()

    category = None
    candidates = list(dict.fromkeys([*categories, *DEFAULT_LIST_CATEGORIES]))
    for candidate in candidates:
        if candidate and candidate.lower() in lowered:
            category = candidate
            break

    direction = None
    if any(word in lowered for word in CREDIT_WORDS):
        direction = Direction.CREDIT
    elif any(word in lowered for word in DEBIT_WORDS):
        direction = Direction.DEBIT

    limit = max_results
    number = LIMIT_PATTERN.search(lowered)
    if number and 0 < int(number.group(1)) <= max_results:
        limit = int(number.group(1))

    return TransactionFilter(category=category, direction=direction, limit=limit)


def matching_transactions(
    transactions: Iterable[Transaction],
    criteria: TransactionFilter,
) -> list[Transaction]:
    """Every transaction matching the filter, newest first, without the limit."""
    matched = [
        t for t in transactions
        if (criteria.direction is None or t.direction == criteria.direction)
        and (criteria.category is None or t.category.lower() == criteria.category.lower())
    ]
    matched.sort(key=lambda t: t.date, reverse=True)
    return matched


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: TransactionFilter,
) -> list[Transaction]:
    """Matching transactions, newest first, capped at the filter's limit."""
    return matching_transactions(transactions, criteria)[:criteria.limit]
