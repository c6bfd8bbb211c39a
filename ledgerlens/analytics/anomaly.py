"""
Anomaly Detector

Flags transactions that are large compared with their baseline, the
mean amount of the set they belong to.

DESIGN DECISION: The rule is deliberately simple (amount > multiplier x
mean) so that every flag can be explained in one sentence. Severity is
a function of the deviation ratio with configurable tiers; nothing here
learns or remembers. Previously accepted patterns are passed in by the
caller as known_descriptions and only mark an anomaly, never hide it.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ledgerlens.models.ledger import Anomaly, AnomalySeverity, Direction, Transaction


class SeverityTiers(BaseModel):
    """Deviation ratios above which an anomaly is medium / high."""
    model_config = ConfigDict(frozen=True)

    medium: float = Field(default=2.0, gt=0.0)
    high: float = Field(default=3.0, gt=0.0)

    @model_validator(mode='after')
    def validate_order(self) -> 'SeverityTiers':
        if self.medium > self.high:
            raise ValueError("medium tier cannot exceed high tier")
        return self

    def classify(self, ratio: float) -> AnomalySeverity:
        if ratio > self.high:
            return AnomalySeverity.HIGH
        if ratio > self.medium:
            return AnomalySeverity.MEDIUM
        return AnomalySeverity.LOW


def _group(
    transactions: list[tuple[int, Transaction]],
    by_category: bool,
) -> list[list[tuple[int, Transaction]]]:
    if not by_category:
        return [transactions]
    groups: dict[str, list[tuple[int, Transaction]]] = {}
    for position, txn in transactions:
        groups.setdefault(txn.category, []).append((position, txn))
    return list(groups.values())


def detect_anomalies(
    transactions: Iterable[Transaction],
    threshold_multiplier: float = 2.0,
    tiers: Optional[SeverityTiers] = None,
    direction: Optional[Direction] = None,
    by_category: bool = False,
    known_descriptions: Optional[Iterable[str]] = None,
) -> list[Anomaly]:
    """
    Flag transactions above threshold_multiplier times their baseline.

    Args:
        transactions: Candidate transactions
        threshold_multiplier: Must be positive
        tiers: Severity cut-offs; defaults to medium > 2, high > 3
        direction: Only consider credits or debits
        by_category: Compare each transaction with its own category's mean
        known_descriptions: Descriptions the user already accepted as
                            expected; matching anomalies get is_known

    Returns:
        Anomalies in input order. Sets with fewer than two transactions
        have no meaningful baseline and yield nothing.
    """
    if threshold_multiplier <= 0:
        raise ValueError(f"threshold_multiplier must be positive, got {threshold_multiplier}")

    tiers = tiers or SeverityTiers()
    known = {d.strip().lower() for d in known_descriptions or ()}
    multiplier = Decimal(str(threshold_multiplier))

    # Keyed by input position; ids are not guaranteed unique here
    relevant = [
        (position, t) for position, t in enumerate(transactions)
        if direction is None or t.direction == direction
    ]

    flagged: dict[int, Anomaly] = {}
    for group in _group(relevant, by_category):
        if len(group) < 2:
            continue

        baseline = sum((t.amount for _, t in group), Decimal("0")) / len(group)

        for position, txn in group:
            if txn.amount <= multiplier * baseline:
                continue

            ratio = float(txn.amount / baseline)
            scope = f"{txn.category} average" if by_category else "average"
            flagged[position] = Anomaly(
                transaction=txn,
                observed_amount=txn.amount,
                baseline_amount=baseline,
                deviation_ratio=ratio,
                severity=tiers.classify(ratio),
                is_known=txn.description.strip().lower() in known,
                reason=(
                    f"{txn.description or txn.category} of {txn.amount:,.2f} is "
                    f"{round((ratio - 1) * 100)}% above the {scope} of {baseline:,.2f}"
                ),
            )

    return [flagged[position] for position in sorted(flagged)]
