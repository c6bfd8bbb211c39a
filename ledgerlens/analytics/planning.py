"""
Planning Computations

What-if simulations, budget goals, savings plans, the unpaid-bills list
and recurring-payment detection.

Spending means debits. Monthly figures are averages over the months the
transactions span (never less than one), rounded to the minor unit per
category; totals are the sums of the rounded category figures so a
breakdown always adds up to its total.
"""

import re
from collections.abc import Iterable
from datetime import timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from statistics import median
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ledgerlens.models.analysis import (
    BudgetGoal,
    CategoryProjection,
    RecurringPayment,
    SavingsPlan,
    ScenarioSimulation,
    UnpaidBills,
)
from ledgerlens.models.ledger import (
    DEFAULT_MINOR_UNIT,
    Direction,
    Participant,
    Transaction,
    participant_names,
)


ZERO = Decimal("0")
ONE = Decimal("1")
DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12

# Percentage used when a cut or increase names no number
DEFAULT_SCENARIO_PERCENT = Decimal("20")

CUT_WORDS = ("cut", "reduce", "less", "lower", "drop")
RAISE_WORDS = ("increase", "more", "raise")
GOAL_WORDS = ("budget", "goal", "target", "limit")

PERCENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:%|percent\b)")
NUMBER_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?(\s*(?:%|percent\b))?")


class Scenario(BaseModel):
    """A what-if: scale spending, or one category of it, by factor."""
    model_config = ConfigDict(frozen=True)

    factor: Decimal = Field(default=ONE, ge=0)
    category: Optional[str] = None
    label: str = "No change"


def _money(amount: Decimal, minor_unit: Decimal) -> Decimal:
    return amount.quantize(minor_unit, rounding=ROUND_HALF_EVEN)


def _debits(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.direction == Direction.DEBIT]


def months_of_data(transactions: Iterable[Transaction]) -> int:
    """Whole months between the first and last transaction, at least one."""
    dates = [t.date for t in transactions]
    if len(dates) < 2:
        return 1
    span = (max(dates) - min(dates)).days
    return max(1, (span + DAYS_PER_MONTH // 2) // DAYS_PER_MONTH)


def _monthly_by_category(debits: list[Transaction], months: int) -> dict[str, Decimal]:
    """Exact monthly average per category, largest first."""
    totals: dict[str, Decimal] = {}
    for txn in debits:
        totals[txn.category] = totals.get(txn.category, ZERO) + txn.amount
    ranked = sorted(totals.items(), key=lambda item: -item[1])
    return {category: total / months for category, total in ranked}


def _project(
    monthly: dict[str, Decimal],
    factor: Decimal,
    only: Optional[str],
    minor_unit: Decimal,
) -> list[CategoryProjection]:
    target = only.lower() if only else None
    projections = []
    for category, amount in monthly.items():
        applied = factor if target is None or category.lower() == target else ONE
        projections.append(CategoryProjection(
            category=category,
            current_monthly=_money(amount, minor_unit),
            adjusted_monthly=_money(amount * applied, minor_unit),
            factor=applied,
        ))
    return projections


def _percent_in(lowered: str) -> Decimal:
    match = PERCENT_PATTERN.search(lowered)
    if match:
        return Decimal(match.group(1))
    for number in NUMBER_PATTERN.finditer(lowered):
        value = Decimal(number.group(0).replace(",", ""))
        if value <= 100:
            return value
    return DEFAULT_SCENARIO_PERCENT


def parse_scenario(query: str, categories: Iterable[str] = ()) -> Scenario:
    """
    Read a what-if out of a query.

    "what if I cut dining by 50%" -> factor 0.5 on Dining, when the
    ledger has a Dining category. "double", "half", cut and increase
    words are understood; a cut or increase without a number means 20%.
    A cut can bring spending to zero but not below.
    """
    lowered = query.lower()
    category = next(
        (c for c in categories if c and re.search(rf"\b{re.escape(c.lower())}\b", lowered)),
        None,
    )

    if "double" in lowered:
        factor, label = Decimal("2"), "Doubled spending"
    elif "half" in lowered or "halve" in lowered:
        factor, label = Decimal("0.5"), "Halved spending"
    elif any(word in lowered for word in CUT_WORDS):
        percent = _percent_in(lowered)
        factor = max(ZERO, ONE - percent / 100)
        label = f"{percent.normalize():f}% reduction"
    elif any(word in lowered for word in RAISE_WORDS):
        percent = _percent_in(lowered)
        factor = ONE + percent / 100
        label = f"{percent.normalize():f}% increase"
    else:
        factor, label = ONE, "No change"

    if category is not None:
        label = f"{label} in {category}"
    return Scenario(factor=factor, category=category, label=label)


def parse_amount(query: str) -> Optional[Decimal]:
    """First plain amount in a query, ignoring percentages ("save 4,500")."""
    for number in NUMBER_PATTERN.finditer(query.lower()):
        if number.group(1):
            continue
        return Decimal(number.group(0).rstrip(",").replace(",", ""))
    return None


def is_budget_goal(query: str) -> bool:
    """True for queries that set a spending target rather than a what-if."""
    lowered = query.lower()
    return parse_amount(query) is not None and any(word in lowered for word in GOAL_WORDS)


def simulate_spending(
    transactions: Iterable[Transaction],
    scenario: Optional[Scenario] = None,
    participants: Iterable[Union[str, Participant]] = (),
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> ScenarioSimulation:
    """
    Apply a scenario to average monthly spending.

    Categories the scenario does not name keep factor 1. The per-person
    figure splits the monthly change equally and is only given for
    groups of two or more.
    """
    scenario = scenario or Scenario()
    transactions = list(transactions)
    months = months_of_data(transactions)

    projections = _project(
        _monthly_by_category(_debits(transactions), months),
        scenario.factor,
        scenario.category,
        minor_unit,
    )
    current = sum((p.current_monthly for p in projections), ZERO)
    projected = sum((p.adjusted_monthly for p in projections), ZERO)

    people = participant_names(participants)
    per_person = None
    if len(people) > 1:
        per_person = _money((current - projected) / len(people), minor_unit)

    return ScenarioSimulation(
        label=scenario.label,
        factor=scenario.factor,
        category=scenario.category,
        months_of_data=months,
        current_monthly=current,
        projected_monthly=projected,
        yearly_impact=(current - projected) * MONTHS_PER_YEAR,
        per_person_monthly=per_person,
        categories=projections,
    )


def budget_goal(
    transactions: Iterable[Transaction],
    target_monthly: Decimal,
    achievable_percent: float = 30.0,
    focus_count: int = 3,
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> BudgetGoal:
    """
    Compare average monthly spending with a target.

    When spending is over the target, the largest categories are shown
    with the uniform cut that would close the gap. A goal counts as
    achievable when it needs at most achievable_percent less spending.
    """
    if target_monthly < 0:
        raise ValueError(f"target_monthly cannot be negative, got {target_monthly}")

    transactions = list(transactions)
    monthly = _monthly_by_category(_debits(transactions), months_of_data(transactions))
    current = sum((_money(amount, minor_unit) for amount in monthly.values()), ZERO)
    gap = current - target_monthly

    reduction_percent = None
    if current > 0:
        reduction_percent = round(float(gap / current) * 100, 1)

    focus: list[CategoryProjection] = []
    if gap > 0:
        factor = target_monthly / current
        top = dict(list(monthly.items())[:focus_count])
        focus = _project(top, factor, None, minor_unit)

    return BudgetGoal(
        target_monthly=target_monthly,
        current_monthly=current,
        gap=gap,
        reduction_percent=reduction_percent,
        achievable=gap <= 0 or (
            reduction_percent is not None and reduction_percent <= achievable_percent
        ),
        focus_categories=focus,
    )


def savings_plan(
    transactions: Iterable[Transaction],
    target: Optional[Decimal] = None,
    cut_percent: Decimal = DEFAULT_SCENARIO_PERCENT,
    suggestion_count: int = 3,
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> SavingsPlan:
    """
    Monthly savings rate, time to a target, and what cutting the
    largest categories by cut_percent would free up.

    months_to_target is None without a target or without savings.
    """
    transactions = list(transactions)
    months = months_of_data(transactions)

    income = sum((t.amount for t in transactions if t.direction == Direction.CREDIT), ZERO)
    expense = sum((t.amount for t in _debits(transactions)), ZERO)
    monthly_income = _money(income / months, minor_unit)
    monthly_expense = _money(expense / months, minor_unit)
    monthly_savings = monthly_income - monthly_expense

    months_to_target = None
    if target is not None and target > 0 and monthly_savings > 0:
        months_to_target = round(float(target / monthly_savings), 1)

    monthly = _monthly_by_category(_debits(transactions), months)
    top = dict(list(monthly.items())[:suggestion_count])

    return SavingsPlan(
        monthly_income=monthly_income,
        monthly_expense=monthly_expense,
        target=target,
        months_to_target=months_to_target,
        cut_suggestions=_project(top, ONE - cut_percent / 100, None, minor_unit),
    )


def unpaid_bills(transactions: Iterable[Transaction], limit: int = 10) -> UnpaidBills:
    """Unsettled transactions, newest first, with totals per payer."""
    unsettled = [t for t in transactions if not t.settled]

    by_payer: dict[str, Decimal] = {}
    for txn in unsettled:
        by_payer[txn.payer] = by_payer.get(txn.payer, ZERO) + txn.amount

    newest_first = sorted(unsettled, key=lambda t: t.date, reverse=True)
    return UnpaidBills(
        unsettled_count=len(unsettled),
        unsettled_total=sum((t.amount for t in unsettled), ZERO),
        by_payer=by_payer,
        transactions=newest_first[:limit],
    )


def detect_recurring(
    transactions: Iterable[Transaction],
    min_occurrences: int = 3,
    min_interval_days: int = 20,
    max_interval_days: int = 40,
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> list[RecurringPayment]:
    """
    Expenses that repeat at a roughly monthly cadence.

    Debits are grouped by description (case-insensitive; blank
    descriptions are ignored). A group is recurring when it has at least
    min_occurrences entries and the median gap between them lies within
    the interval bounds. Confidence falls off linearly as the cadence
    moves away from 30 days. Largest average amount first.
    """
    if min_occurrences < 2:
        raise ValueError(f"min_occurrences must be at least 2, got {min_occurrences}")
    if not 1 <= min_interval_days <= max_interval_days:
        raise ValueError("interval bounds must satisfy 1 <= min <= max")

    groups: dict[str, list[Transaction]] = {}
    for txn in _debits(transactions):
        key = txn.description.strip().lower()
        if key:
            groups.setdefault(key, []).append(txn)

    found = []
    for group in groups.values():
        if len(group) < min_occurrences:
            continue

        ordered = sorted(group, key=lambda t: t.date)
        gaps = [(later.date - earlier.date).days for earlier, later in zip(ordered, ordered[1:])]
        cadence = float(median(gaps))
        if not min_interval_days <= cadence <= max_interval_days:
            continue

        last = ordered[-1]
        average = sum((t.amount for t in ordered), ZERO) / len(ordered)
        found.append(RecurringPayment(
            description=last.description,
            category=last.category,
            occurrences=len(ordered),
            average_amount=_money(average, minor_unit),
            cadence_days=cadence,
            last_date=last.date,
            next_expected=last.date + timedelta(days=round(cadence)),
            confidence=round(1 - min(abs(cadence - DAYS_PER_MONTH) / 20, 1.0), 2),
        ))

    found.sort(key=lambda payment: payment.average_amount, reverse=True)
    return found
