"""
Tests for the plain aggregations
"""

from datetime import date
from decimal import Decimal

import pytest

from ledgerlens.analytics import (
    TransactionFilter,
    category_breakdown,
    compare_periods,
    filter_transactions,
    monthly_breakdown,
    parse_transaction_filter,
    summarize_totals,
)
from ledgerlens.analytics.aggregation import percent_change
from ledgerlens.models.ledger import Direction, Transaction


def txn(amount, on, category="Other", direction=Direction.DEBIT):
    return Transaction(
        date=on,
        amount=Decimal(str(amount)),
        payer="A",
        category=category,
        direction=direction,
    )


@pytest.fixture
def ledger():
    return [
        txn(10, date(2024, 2, 20), "Food"),
        txn(70, date(2024, 3, 3), "Rent"),
        txn(20, date(2024, 3, 10), "Food"),
        txn(500, date(2024, 3, 12), "Sales", Direction.CREDIT),
    ]


class TestTotals:
    """Tests for summarize_totals and category_breakdown."""

    def test_summarize_totals(self, ledger):
        """Test income, expense, net and count."""
        totals = summarize_totals(ledger)
        assert totals.total_income == Decimal("500")
        assert totals.total_expense == Decimal("100")
        assert totals.net == Decimal("400")
        assert totals.transaction_count == 4

    def test_empty_totals(self):
        """Test that an empty ledger sums to zero."""
        totals = summarize_totals([])
        assert totals.total_income == Decimal("0")
        assert totals.transaction_count == 0

    def test_category_breakdown(self, ledger):
        """Test that debits are grouped largest first with shares."""
        breakdown = category_breakdown(ledger)
        assert [(c.category, c.amount, c.count) for c in breakdown] == [
            ("Rent", Decimal("70"), 1),
            ("Food", Decimal("30"), 2),
        ]
        assert [c.percentage for c in breakdown] == [70.0, 30.0]

    def test_category_breakdown_ignores_credits(self):
        """Test that income has no slice in the expense breakdown."""
        assert category_breakdown([txn(5, date(2024, 3, 1), direction=Direction.CREDIT)]) == []


class TestMonthly:
    """Tests for monthly_breakdown."""

    def test_months_oldest_first(self, ledger):
        """Test grouping by calendar month."""
        months = monthly_breakdown(ledger)
        assert [m.month for m in months] == ["2024-02", "2024-03"]
        assert months[0].expense == Decimal("10")
        assert months[1].expense == Decimal("90")
        assert months[1].income == Decimal("500")
        assert months[1].count == 3


class TestComparison:
    """Tests for compare_periods and percent_change."""

    def test_week_over_week(self):
        """Test this week against last week."""
        transactions = [
            txn(100, date(2024, 3, 3)),
            txn(50, date(2024, 3, 10)),
            txn(100, date(2024, 3, 5), direction=Direction.CREDIT),
            txn(200, date(2024, 3, 12), direction=Direction.CREDIT),
            txn(999, date(2024, 2, 1)),
        ]
        comparison = compare_periods(transactions, today=date(2024, 3, 14))

        assert comparison.current.label == "this week"
        assert comparison.current.start == date(2024, 3, 8)
        assert comparison.previous.start == date(2024, 3, 1)
        assert comparison.previous.end == date(2024, 3, 7)
        assert comparison.current.expense == Decimal("50")
        assert comparison.previous.expense == Decimal("100")
        assert comparison.expense_change_percent == -50.0
        assert comparison.income_change_percent == 100.0

    def test_custom_window(self):
        """Test that other windows get their own labels."""
        comparison = compare_periods([], today=date(2024, 3, 14), window_days=3)
        assert comparison.current.label == "last 3 days"
        assert comparison.previous.label == "previous 3 days"
        assert comparison.expense_change_percent is None

    def test_invalid_window(self):
        """Test that the window must be at least a day."""
        with pytest.raises(ValueError):
            compare_periods([], today=date(2024, 3, 14), window_days=0)

    def test_percent_change(self):
        """Test rounding and the empty baseline."""
        assert percent_change(Decimal("150"), Decimal("100")) == 50.0
        assert percent_change(Decimal("1"), Decimal("3")) == -66.7
        assert percent_change(Decimal("10"), Decimal("0")) is None


class TestTransactionFilter:
    """Tests for parse_transaction_filter and filter_transactions."""

    def test_category_direction_and_limit(self):
        """Test reading all three parts out of a query."""
        criteria = parse_transaction_filter("show 5 rent expenses", categories=["Food"])
        assert criteria.category == "rent"
        assert criteria.direction == Direction.DEBIT
        assert criteria.limit == 5

    def test_ledger_categories_are_recognized(self):
        """Test that categories present in the ledger are matched."""
        criteria = parse_transaction_filter("list food transactions", categories=["Food"])
        assert criteria.category == "Food"
        assert criteria.direction is None

    def test_credit_words(self):
        """Test that income words select credits."""
        criteria = parse_transaction_filter("list all income")
        assert criteria.direction == Direction.CREDIT

    def test_out_of_range_limit_is_ignored(self):
        """Test that an oversized count falls back to the maximum."""
        assert parse_transaction_filter("show 500 transactions", max_results=50).limit == 50
        assert parse_transaction_filter("show 0 transactions", max_results=50).limit == 50

    def test_filter_newest_first_with_limit(self, ledger):
        """Test ordering and capping of the listing."""
        criteria = TransactionFilter(category="food", limit=1)
        listed = filter_transactions(ledger, criteria)
        assert [t.date for t in listed] == [date(2024, 3, 10)]

    def test_filter_by_direction(self, ledger):
        """Test that only the requested direction is listed."""
        listed = filter_transactions(ledger, TransactionFilter(direction=Direction.DEBIT))
        assert [t.amount for t in listed] == [Decimal("20"), Decimal("70"), Decimal("10")]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
