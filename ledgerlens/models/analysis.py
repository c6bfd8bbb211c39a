"""
Analysis Result Models

Structured outputs of the plain aggregations, and the envelope the
dispatcher hands to the presentation layer. Formatting these into prose
or charts happens elsewhere.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledgerlens.models.intent import AnalyticCategory, Intent
from ledgerlens.models.ledger import Transaction


class LedgerTotals(BaseModel):
    """Income, expense and what is left over."""

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def margin_percent(self) -> Optional[float]:
        """Net as a share of income; None when there is no income."""
        if self.total_income <= 0:
            return None
        return round(float(self.net / self.total_income) * 100, 1)


class CategoryTotal(BaseModel):
    """One slice of a category breakdown."""

    category: str
    amount: Decimal
    count: int = Field(ge=0)
    percentage: float = Field(ge=0.0, le=100.0)


class MonthlyTotal(BaseModel):
    """Income and expense for one calendar month."""

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="YYYY-MM"
    )
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)


class PeriodTotals(BaseModel):
    """Income and expense inside a date window (inclusive)."""

    label: str
    start: date
    end: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)


class PeriodComparison(BaseModel):
    """Current window against the one before it."""

    current: PeriodTotals
    previous: PeriodTotals
    income_change_percent: Optional[float] = None
    expense_change_percent: Optional[float] = None


class CategoryProjection(BaseModel):
    """Monthly spending of one category before and after an adjustment."""

    category: str
    current_monthly: Decimal
    adjusted_monthly: Decimal
    factor: Decimal = Field(default=Decimal("1"), ge=0)

    @property
    def monthly_change(self) -> Decimal:
        return self.adjusted_monthly - self.current_monthly


class ScenarioSimulation(BaseModel):
    """
    A what-if applied to average monthly spending.

    yearly_impact is positive when the scenario saves money.
    per_person_monthly is only set for groups of two or more.
    """

    label: str
    factor: Decimal = Field(..., ge=0)
    category: Optional[str] = Field(
        default=None,
        description="Only this category is adjusted; None adjusts all spending"
    )
    months_of_data: int = Field(..., ge=1)
    current_monthly: Decimal
    projected_monthly: Decimal
    yearly_impact: Decimal
    per_person_monthly: Optional[Decimal] = None
    categories: list[CategoryProjection] = Field(default_factory=list)


class BudgetGoal(BaseModel):
    """How far average monthly spending is from a target."""

    target_monthly: Decimal
    current_monthly: Decimal
    gap: Decimal = Field(..., description="Reduction needed; negative when under target")
    reduction_percent: Optional[float] = None
    achievable: bool
    focus_categories: list[CategoryProjection] = Field(default_factory=list)

    @property
    def on_track(self) -> bool:
        return self.gap <= 0


class SavingsPlan(BaseModel):
    """Savings rate from income and expense, and where cuts would help."""

    monthly_income: Decimal
    monthly_expense: Decimal
    target: Optional[Decimal] = None
    months_to_target: Optional[float] = None
    cut_suggestions: list[CategoryProjection] = Field(default_factory=list)

    @property
    def monthly_savings(self) -> Decimal:
        return self.monthly_income - self.monthly_expense

    @property
    def is_saving(self) -> bool:
        return self.monthly_savings > 0


class UnpaidBills(BaseModel):
    """Unsettled transactions, most recent first."""

    unsettled_count: int = Field(default=0, ge=0)
    unsettled_total: Decimal = Decimal("0")
    by_payer: dict[str, Decimal] = Field(default_factory=dict)
    transactions: list[Transaction] = Field(default_factory=list)


class RecurringPayment(BaseModel):
    """A payment that repeats at a roughly monthly cadence."""

    description: str
    category: str
    occurrences: int = Field(..., ge=2)
    average_amount: Decimal
    cadence_days: float = Field(..., gt=0)
    last_date: date
    next_expected: date
    confidence: float = Field(..., ge=0.0, le=1.0)


class AnalysisResult(BaseModel):
    """
    Result of one analytic computation.

    data holds the computation's own model(s) under stable keys;
    data_found is False when there was nothing to compute on.
    category is None for computations reached through the intent
    rather than the analytic classifier (settlement).
    """

    result_id: UUID = Field(default_factory=uuid4)
    computed_at: datetime = Field(default_factory=datetime.utcnow)
    category: Optional[AnalyticCategory] = None
    analysis: str = Field(
        ...,
        description="Name of the computation that produced this result"
    )

    success: bool = True
    error_message: Optional[str] = None

    data_found: bool
    data: dict[str, Any] = Field(default_factory=dict)

    # Records left out because they were malformed
    skipped_count: int = Field(default=0, ge=0)

    description: str = Field(
        ...,
        description="Human-readable description of what was computed"
    )


class QueryOutcome(BaseModel):
    """
    Everything the engine decided and computed for one query.

    result is None when the query was too vague to compute anything;
    intent.clarification then holds the question to ask.
    """

    correlation_id: UUID
    query: str
    intent: Intent
    analytic_category: AnalyticCategory
    result: Optional[AnalysisResult] = None

    @property
    def needs_clarification(self) -> bool:
        return self.intent.needs_clarification
