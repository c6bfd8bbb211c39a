"""
Settlement Solver

Answers "who owes whom?" over the unsettled part of a shared ledger.

Steps (each exposed through SettlementPlan so an answer can be justified):
1. What each person paid
2. What each person owes (explicit split, or an equal split in minor units)
3. Net balance = paid - owed; balances always sum to exactly zero
4. Greedy matching of the largest debtor with the largest creditor

DESIGN DECISION: Money is Decimal end to end and balances are rounded
with a residual carry: after rounding to the minor unit, whatever the
rounding broke is handed back one minor unit at a time to whoever lost
the most, so the rounded balances still sum to zero and the settlements
clear them exactly. No tolerance band, no "close enough".
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ledgerlens.models.ledger import (
    DEFAULT_MINOR_UNIT,
    Participant,
    ReminderUrgency,
    Settlement,
    SettlementHistoryEntry,
    SettlementPlan,
    SettlementReminder,
    Transaction,
    participant_names,
)


ZERO = Decimal("0")


class ReminderPolicy(BaseModel):
    """Thresholds that decide how urgent a settlement reminder is."""
    model_config = ConfigDict(frozen=True)

    high_count: int = Field(default=20, ge=1)
    high_amount: Decimal = Field(default=Decimal("50000"), gt=0)
    medium_count: int = Field(default=10, ge=1)
    medium_days: int = Field(default=14, ge=1)


def _tally(
    transactions: Iterable[Transaction],
    participants: list[str],
    minor_unit: Decimal,
) -> tuple[dict[str, Decimal], dict[str, Decimal], int, Decimal, int]:
    """
    Paid and owed totals over unsettled transactions.

    Returns: (paid, owed, unsettled_count, unsettled_total, skipped_count)
    """
    members = set(participants)
    paid = {name: ZERO for name in participants}
    owed = {name: ZERO for name in participants}
    count = 0
    total = ZERO
    skipped = 0

    for txn in transactions:
        if txn.settled:
            continue
        count += 1
        total += txn.amount

        if txn.payer not in members:
            skipped += 1
            continue
        if txn.split and (
            not set(txn.split) <= members or txn.split_total != txn.amount
        ):
            skipped += 1
            continue

        paid[txn.payer] += txn.amount
        for person, share in txn.owed_shares(participants, minor_unit).items():
            owed[person] += share

    return paid, owed, count, total, skipped


def carry_residual(
    balances: dict[str, Decimal],
    participants: list[str],
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> dict[str, Decimal]:
    """
    Round balances to the minor unit so they still sum to zero.

    Each balance is rounded half-even. If the rounded balances no longer
    sum to zero, one minor unit at a time is given back to (or taken
    from) the participants whose rounding moved them furthest in the
    other direction, earlier participants first on ties.
    """
    rounded = {
        name: balances[name].quantize(minor_unit, rounding=ROUND_HALF_EVEN)
        for name in participants
    }
    residual_units = int(sum(rounded.values(), ZERO) / minor_unit)
    if residual_units == 0:
        return rounded

    # Positive residual: too much credit, take units from whoever gained most
    step = -minor_unit if residual_units > 0 else minor_unit
    order = {name: index for index, name in enumerate(participants)}
    if residual_units > 0:
        drift = {name: rounded[name] - balances[name] for name in participants}
    else:
        drift = {name: balances[name] - rounded[name] for name in participants}
    ranked = sorted(participants, key=lambda name: (-drift[name], order[name]))

    for index in range(abs(residual_units)):
        rounded[ranked[index % len(ranked)]] += step
    return rounded


def compute_balances(
    transactions: Iterable[Transaction],
    participants: Iterable[Union[str, Participant]],
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> dict[str, Decimal]:
    """
    Net balance per participant over unsettled transactions.

    Positive means the group owes them; negative means they owe the
    group. The values always sum to exactly zero.
    """
    people = participant_names(participants)
    paid, owed, _, _, _ = _tally(transactions, people, minor_unit)
    exact = {name: paid[name] - owed[name] for name in people}
    return carry_residual(exact, people, minor_unit)


def simplify_debts(
    balances: dict[str, Decimal],
    participants: list[str],
) -> list[Settlement]:
    """
    Greedy debt simplification.

    Debtors are taken most-indebted first, creditors largest first; each
    step settles min(debt, credit) between the current pair. Produces at
    most debtors + creditors - 1 payments.
    """
    # sorted() is stable, so equal balances keep participant order
    debtors = sorted(
        ([name, -balances[name]] for name in participants if balances[name] < 0),
        key=lambda entry: -entry[1],
    )
    creditors = sorted(
        ([name, balances[name]] for name in participants if balances[name] > 0),
        key=lambda entry: -entry[1],
    )

    settlements = []
    d = c = 0
    while d < len(debtors) and c < len(creditors):
        debtor, creditor = debtors[d], creditors[c]
        amount = min(debtor[1], creditor[1])
        if amount > 0:
            settlements.append(Settlement(
                from_participant=debtor[0],
                to_participant=creditor[0],
                amount=amount,
            ))
        debtor[1] -= amount
        creditor[1] -= amount
        if debtor[1] <= 0:
            d += 1
        if creditor[1] <= 0:
            c += 1

    return settlements


def build_settlement_plan(
    transactions: Iterable[Transaction],
    participants: Iterable[Union[str, Participant]],
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> SettlementPlan:
    """
    Settlements together with the paid / owed / balance steps behind them.
    """
    people = participant_names(participants)
    if not people:
        return SettlementPlan()

    paid, owed, count, total, skipped = _tally(transactions, people, minor_unit)
    exact = {name: paid[name] - owed[name] for name in people}
    balances = carry_residual(exact, people, minor_unit)

    return SettlementPlan(
        participants=people,
        paid=paid,
        owed=owed,
        balances=balances,
        settlements=simplify_debts(balances, people),
        unsettled_count=count,
        unsettled_total=total,
        skipped_count=skipped,
    )


def settle(
    transactions: Iterable[Transaction],
    participants: Iterable[Union[str, Participant]],
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> list[Settlement]:
    """
    Minimal set of payments that brings every balance to zero.

    Participants may be Participant models or plain names.
    """
    return build_settlement_plan(transactions, participants, minor_unit).settlements


def mark_settled(
    transactions: Iterable[Transaction],
    settled_at: Optional[datetime] = None,
) -> list[Transaction]:
    """
    Copies of the transactions with every unsettled one marked settled.

    The inputs are left untouched; storing the copies is up to the caller.
    """
    settled_at = settled_at or datetime.now(timezone.utc)
    return [
        txn if txn.settled
        else txn.model_copy(update={"settled": True, "settled_at": settled_at})
        for txn in transactions
    ]


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def settlement_reminder(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
    policy: Optional[ReminderPolicy] = None,
) -> Optional[SettlementReminder]:
    """
    How pressing it is to settle up; None when nothing is pending.

    Naive datetimes are treated as UTC.
    """
    policy = policy or ReminderPolicy()
    now = _as_utc(now or datetime.now(timezone.utc))
    transactions = list(transactions)

    unsettled = [t for t in transactions if not t.settled]
    if not unsettled:
        return None

    settled_times = [
        _as_utc(t.settled_at) for t in transactions
        if t.settled and t.settled_at is not None
    ]
    days_since = (now - max(settled_times)).days if settled_times else None

    count = len(unsettled)
    pending = sum((t.amount for t in unsettled), ZERO)

    if count > policy.high_count or pending > policy.high_amount:
        urgency = ReminderUrgency.HIGH
        message = (
            f"You have {count} unsettled transactions totaling {pending:,.2f}. "
            f"Time to settle up!"
        )
    elif count > policy.medium_count or (
        days_since is not None and days_since > policy.medium_days
    ):
        urgency = ReminderUrgency.MEDIUM
        message = f"{count} transactions pending ({pending:,.2f}). Consider settling soon."
    else:
        urgency = ReminderUrgency.LOW
        message = f"{count} transactions to settle when you're ready."

    return SettlementReminder(
        urgency=urgency,
        unsettled_count=count,
        pending_amount=pending,
        days_since_last_settlement=days_since,
        message=message,
    )


def settlement_history(
    transactions: Iterable[Transaction],
    limit: int = 10,
) -> list[SettlementHistoryEntry]:
    """Settled transactions grouped by settlement day, most recent first."""
    by_day: dict = {}
    for txn in transactions:
        if not txn.settled or txn.settled_at is None:
            continue
        day = _as_utc(txn.settled_at).date()
        count, amount = by_day.get(day, (0, ZERO))
        by_day[day] = (count + 1, amount + txn.amount)

    return [
        SettlementHistoryEntry(date=day, count=count, amount=amount)
        for day, (count, amount) in sorted(by_day.items(), reverse=True)[:limit]
    ]
