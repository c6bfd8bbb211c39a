"""Record validation package."""

from ledgerlens.validation.validator import TransactionValidator, derive_participants

__all__ = ["TransactionValidator", "derive_participants"]
