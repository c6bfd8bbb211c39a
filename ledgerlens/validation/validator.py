"""
Two-Stage Record Validation

DESIGN DECISION: Raw records from the transaction store are validated in
two distinct stages before any analytics run on them:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (amount, date, payer)
- Positive amount
- Type and format checks via the Transaction model
- A record failing this stage is skipped and counted

STAGE 2 - SEMANTIC VALIDATION:
- Duplicate ids (skipped)
- Future dates
- Payers or split names outside the participant list
- Explicit splits that do not add up to the amount
- These are warnings; the record stays in the snapshot and each
  computation decides what to do with it

IMPORTANT: Validation NEVER silently fixes records. Whatever it drops
is counted in LedgerSnapshot.skipped_count and described in issues, and
one bad record never aborts the batch.
"""

from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import ValidationError

from ledgerlens.config import get_settings
from ledgerlens.models.ledger import (
    LedgerSnapshot,
    Participant,
    Transaction,
    ValidationIssue,
    participant_names,
)


REQUIRED_FIELDS = ("amount", "date", "payer")


def derive_participants(transactions: Iterable[Transaction]) -> list[str]:
    """Everyone who paid or owes a share, in order of first appearance."""
    seen: dict[str, None] = {}
    for txn in transactions:
        seen.setdefault(txn.payer, None)
        for person in txn.split:
            seen.setdefault(person, None)
    return list(seen)


class TransactionValidator:
    """
    Turns a batch of raw records into a LedgerSnapshot.

    Stage 1: Schema validation (record skipped on error)
    Stage 2: Semantic validation (warnings only, except duplicates)
    """

    def __init__(self, future_date_tolerance_days: Optional[int] = None):
        if future_date_tolerance_days is None:
            future_date_tolerance_days = get_settings().app.future_date_tolerance_days
        self._future_tolerance = timedelta(days=future_date_tolerance_days)

    def _validate_schema(
        self,
        index: int,
        record: Any,
    ) -> tuple[Optional[Transaction], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (transaction_or_None, list_of_issues)
        """
        if isinstance(record, Transaction):
            return record, []

        if not isinstance(record, Mapping):
            return None, [ValidationIssue(
                record_index=index,
                field="record",
                issue_type="invalid_type",
                message=f"Record is a {type(record).__name__}, not a mapping",
            )]

        issues = []

        # Check required fields
        for field_name in REQUIRED_FIELDS:
            value = record.get(field_name)
            if value is None or (isinstance(value, str) and not value.strip()):
                issues.append(ValidationIssue(
                    record_index=index,
                    field=field_name,
                    issue_type="missing",
                    message=f"{field_name} is required but missing",
                ))

        amount = record.get("amount")
        if amount is not None:
            try:
                if Decimal(str(amount)) <= 0:
                    issues.append(ValidationIssue(
                        record_index=index,
                        field="amount",
                        issue_type="invalid_value",
                        message=f"Amount must be greater than zero, got {amount}",
                    ))
            except InvalidOperation:
                # Left for the model to report
                pass

        if issues:
            return None, issues

        try:
            return Transaction.model_validate(record), []
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"]) or "record"
                issues.append(ValidationIssue(
                    record_index=index,
                    field=location,
                    issue_type="invalid_value",
                    message=error["msg"],
                ))
            return None, issues

    def _validate_semantic(
        self,
        index: int,
        txn: Transaction,
        participants: Optional[set[str]],
        today: date,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Returns warnings only; the record is kept.
        """
        issues = []

        if txn.date > today + self._future_tolerance:
            issues.append(ValidationIssue(
                record_index=index,
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({txn.date}) is in the future",
                severity="warning",
            ))

        if participants is not None:
            unknown = [
                name for name in [txn.payer, *txn.split]
                if name not in participants
            ]
            if unknown:
                issues.append(ValidationIssue(
                    record_index=index,
                    field="payer" if txn.payer in unknown else "split",
                    issue_type="unknown_participant",
                    message=f"Not a ledger participant: {', '.join(sorted(set(unknown)))}",
                    severity="warning",
                ))

        if txn.split and txn.split_total != txn.amount:
            issues.append(ValidationIssue(
                record_index=index,
                field="split",
                issue_type="inconsistent",
                message=(
                    f"Split shares add up to {txn.split_total}, "
                    f"not the amount {txn.amount}"
                ),
                severity="warning",
            ))

        return issues

    def build_snapshot(
        self,
        records: Iterable[Any],
        participants: Optional[Iterable[Union[str, Participant]]] = None,
        today: Optional[date] = None,
    ) -> LedgerSnapshot:
        """
        Validate a batch and build the snapshot the analytics run on.

        Args:
            records: Transaction instances or raw mappings
            participants: Ledger members, as names or Participant models.
                          When omitted they are derived from the payers
                          and split names of the valid records.
            today: Reference date for the future-date check

        Returns:
            LedgerSnapshot with the valid records, the skip count and
            every issue found
        """
        today = today or date.today()
        if participants is not None:
            participants = participant_names(participants)
        known = set(participants) if participants is not None else None

        transactions: list[Transaction] = []
        all_issues: list[ValidationIssue] = []
        seen_ids: set[str] = set()
        skipped = 0

        for index, record in enumerate(records):
            txn, schema_issues = self._validate_schema(index, record)
            all_issues.extend(schema_issues)

            if txn is None:
                skipped += 1
                continue

            if txn.id in seen_ids:
                all_issues.append(ValidationIssue(
                    record_index=index,
                    field="id",
                    issue_type="duplicate",
                    message=f"Transaction id {txn.id} appears more than once",
                ))
                skipped += 1
                continue
            seen_ids.add(txn.id)

            all_issues.extend(self._validate_semantic(index, txn, known, today))
            transactions.append(txn)

        if participants is None:
            participants = derive_participants(transactions)

        return LedgerSnapshot(
            transactions=transactions,
            participants=list(participants),
            skipped_count=skipped,
            issues=all_issues,
        )

    def get_user_friendly_summary(self, snapshot: LedgerSnapshot) -> str:
        """
        Summarize what was dropped or flagged, for non-technical users.
        """
        if not snapshot.issues:
            return "All records passed validation."

        lines = []

        errors = [i for i in snapshot.issues if i.severity == "error"]
        warnings = [i for i in snapshot.issues if i.severity == "warning"]

        if errors:
            lines.append(
                f"{snapshot.skipped_count} record(s) were left out of the analysis:"
            )
            for issue in errors:
                lines.append(f"   • Record {issue.record_index + 1}: {issue.message}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for issue in warnings:
                lines.append(f"   • Record {issue.record_index + 1}: {issue.message}")

        return "\n".join(lines)
