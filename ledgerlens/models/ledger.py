"""
Core Ledger Models for LedgerLens

These models define the strict schemas for transaction data and for
everything the analytics derive from it. They are designed to:
1. Enforce type safety at runtime
2. Keep money as Decimal end to end (no float drift in settlements)
3. Be immutable snapshots: the engine reads transactions, it never edits them
4. Be serializable for the presentation layer and for audit logging

DESIGN DECISION: Derived entities (balances, settlements, anomalies,
forecasts) are computed fresh on every call. None of them are cached and
none of them write back into a Transaction.
"""

from collections.abc import Iterable
from datetime import date, datetime
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


DEFAULT_MINOR_UNIT = Decimal("0.01")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Direction(str, Enum):
    """Money flow direction, seen from the ledger owner."""
    CREDIT = "credit"  # income, sales, refunds
    DEBIT = "debit"    # expenses, purchases


class AnomalySeverity(str, Enum):
    """Severity tier attached to a flagged transaction."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrendDirection(str, Enum):
    """Sign of a fitted slope, with a dead band around zero."""
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class ReminderUrgency(str, Enum):
    """How pressing it is to settle up."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# MONEY HELPERS
# =============================================================================

def to_minor_units(amount: Decimal, minor_unit: Decimal = DEFAULT_MINOR_UNIT) -> int:
    """Convert an amount to an integer count of minor units (truncating)."""
    return int((amount / minor_unit).to_integral_value(rounding=ROUND_DOWN))


def split_equally(
    amount: Decimal,
    people: list[str],
    minor_unit: Decimal = DEFAULT_MINOR_UNIT,
) -> dict[str, Decimal]:
    """
    Split an amount equally, exactly, in minor units.

    The remainder is handed out one minor unit at a time in the order the
    people are given, so the shares always add back up to the amount.
    300 over three people is 100 each; 100 over three is 33.34, 33.33, 33.33.
    """
    if not people:
        return {}

    units = to_minor_units(amount, minor_unit)
    # Sub-minor-unit dust stays with the first person
    dust = amount - units * minor_unit
    base, remainder = divmod(units, len(people))

    shares = {}
    for index, person in enumerate(people):
        share_units = base + (1 if index < remainder else 0)
        shares[person] = shares.get(person, Decimal("0")) + share_units * minor_unit
    shares[people[0]] += dust
    return shares


# =============================================================================
# CORE LEDGER MODELS
# =============================================================================

class Participant(BaseModel):
    """
    A person taking part in shared expenses.

    A participant's balance is never stored. It is derived from the
    unsettled transactions every time it is needed.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within a ledger"
    )


def participant_names(participants: Iterable[Union[str, Participant]]) -> list[str]:
    """Names of the given participants in order, without duplicates.

    Accepts Participant models, plain names, or a mix of both.
    """
    return list(dict.fromkeys(
        p.name if isinstance(p, Participant) else p for p in participants
    ))


class Transaction(BaseModel):
    """
    A single immutable ledger record.

    Created by the ingestion collaborator. The engine only reads
    snapshots of these; it never mutates one.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: uuid4().hex,
        description="Stable identifier from the transaction store"
    )
    date: date
    description: str = Field(
        default="",
        max_length=500,
        description="Free-text description or merchant"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction carries the sign"
    )
    direction: Direction = Field(
        default=Direction.DEBIT,
        description="credit (money in) or debit (money out)"
    )
    category: str = Field(
        default="Other",
        max_length=100,
        description="Spending or income category"
    )
    payer: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Participant who paid"
    )
    split: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Owed share per participant; empty means equal split"
    )
    settled: bool = Field(
        default=False,
        description="Whether this expense has been settled between participants"
    )
    settled_at: Optional[datetime] = Field(
        default=None,
        description="When the transaction was marked settled"
    )
    source: str = Field(
        default="manual",
        max_length=50,
        description="Where the record came from (csv, sms, statement, manual)"
    )

    @field_validator('category')
    @classmethod
    def default_blank_category(cls, v: str) -> str:
        return v or "Other"

    @field_validator('split')
    @classmethod
    def validate_split(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        """Owed shares must be non-negative and keyed by a real name."""
        for person, share in v.items():
            if not person or not person.strip():
                raise ValueError("Split contains an empty participant name")
            if share < 0:
                raise ValueError(f"Split share for {person} cannot be negative")
        return v

    @model_validator(mode='after')
    def validate_settlement_fields(self) -> 'Transaction':
        if self.settled_at is not None and not self.settled:
            raise ValueError("settled_at is only valid on a settled transaction")
        return self

    @property
    def split_total(self) -> Decimal:
        return sum(self.split.values(), Decimal("0"))

    def owed_shares(
        self,
        participants: list[str],
        minor_unit: Decimal = DEFAULT_MINOR_UNIT,
    ) -> dict[str, Decimal]:
        """
        Who owes what for this transaction.

        An explicit split is returned as-is. Without one the amount is
        split equally among all participants.
        """
        if self.split:
            return dict(self.split)
        return split_equally(self.amount, participants, minor_unit)


class ValidationIssue(BaseModel):
    """A single problem found in a raw transaction record."""

    record_index: int = Field(
        ...,
        ge=0,
        description="Position of the record in the input batch"
    )
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_participant')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="error = record skipped, warning = record kept"
    )


class LedgerSnapshot(BaseModel):
    """
    An immutable view of the ledger for one query.

    Malformed records never make it in here; they are counted in
    skipped_count and described in issues instead.
    """
    model_config = ConfigDict(frozen=True)

    transactions: list[Transaction] = Field(default_factory=list)
    participants: list[str] = Field(default_factory=list)
    skipped_count: int = Field(
        default=0,
        ge=0,
        description="Number of input records excluded as malformed"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def unsettled(self) -> list[Transaction]:
        return [t for t in self.transactions if not t.settled]

    @property
    def debits(self) -> list[Transaction]:
        return [t for t in self.transactions if t.direction == Direction.DEBIT]

    @property
    def credits(self) -> list[Transaction]:
        return [t for t in self.transactions if t.direction == Direction.CREDIT]

    @property
    def is_empty(self) -> bool:
        return not self.transactions


# =============================================================================
# SETTLEMENT MODELS
# =============================================================================

class Settlement(BaseModel):
    """
    One point-to-point payment that moves the group toward zero.

    A transient solver output. It only becomes a Transaction if the
    caller chooses to record it as one.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_participant: str = Field(..., alias="from")
    to_participant: str = Field(..., alias="to")
    amount: Decimal = Field(..., gt=0)


class SettlementPlan(BaseModel):
    """
    Settlements together with the numbers that justify them.

    paid - owed = balance for every participant, and the settlements
    clear exactly the positive balances.
    """

    participants: list[str] = Field(default_factory=list)
    paid: dict[str, Decimal] = Field(default_factory=dict)
    owed: dict[str, Decimal] = Field(default_factory=dict)
    balances: dict[str, Decimal] = Field(default_factory=dict)
    settlements: list[Settlement] = Field(default_factory=list)
    unsettled_count: int = Field(default=0, ge=0)
    unsettled_total: Decimal = Field(default=Decimal("0"))
    skipped_count: int = Field(
        default=0,
        ge=0,
        description="Unsettled transactions left out (unknown participant, bad split)"
    )

    @property
    def total(self) -> Decimal:
        return sum((s.amount for s in self.settlements), Decimal("0"))

    @property
    def is_settled(self) -> bool:
        return not self.settlements


class SettlementReminder(BaseModel):
    """Nudge to settle up, derived from the unsettled backlog."""

    urgency: ReminderUrgency
    unsettled_count: int = Field(ge=0)
    pending_amount: Decimal
    days_since_last_settlement: Optional[int] = None
    message: str


class SettlementHistoryEntry(BaseModel):
    """Transactions settled on one calendar day."""

    date: date
    count: int = Field(ge=0)
    amount: Decimal


# =============================================================================
# ANOMALY MODELS
# =============================================================================

class Anomaly(BaseModel):
    """A transaction that stands out against its baseline."""

    transaction: Transaction
    observed_amount: Decimal
    baseline_amount: Decimal
    deviation_ratio: float = Field(
        ...,
        gt=0,
        description="observed / baseline"
    )
    severity: AnomalySeverity
    is_known: bool = Field(
        default=False,
        description="Matches a pattern the user already marked as expected"
    )
    reason: str = ""


# =============================================================================
# FORECAST MODELS
# =============================================================================

class DailyPoint(BaseModel):
    """Income and expense totals for one calendar day."""
    model_config = ConfigDict(frozen=True)

    date: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class SeriesTrend(BaseModel):
    """Trend direction for each forecast series."""

    income: TrendDirection
    expense: TrendDirection


class ForecastSeries(BaseModel):
    """
    A near-future projection of daily income and expense.

    The three projected lists are aligned index by index with
    projected_dates.
    """

    horizon_days: int = Field(ge=0)
    history_days: int = Field(ge=0)
    projected_dates: list[date] = Field(default_factory=list)
    projected_income: list[Decimal] = Field(default_factory=list)
    projected_expense: list[Decimal] = Field(default_factory=list)
    trend_direction: SeriesTrend
    income_slope: float
    expense_slope: float

    @property
    def projected_total_income(self) -> Decimal:
        return sum(self.projected_income, Decimal("0"))

    @property
    def projected_total_expense(self) -> Decimal:
        return sum(self.projected_expense, Decimal("0"))

    @property
    def projected_net(self) -> Decimal:
        return self.projected_total_income - self.projected_total_expense
