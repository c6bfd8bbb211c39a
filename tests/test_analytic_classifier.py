"""
Tests for the analytic classifier cascade
"""

import pytest

from ledgerlens.intents import ANALYTIC_RULES, classify_analytic
from ledgerlens.intents.analytic import is_greeting
from ledgerlens.models.intent import AnalyticCategory


class TestClassifyAnalytic:
    """Tests for classify_analytic."""

    @pytest.mark.parametrize("query, expected", [
        ("hello", AnalyticCategory.GREETING),
        ("Hi there!", AnalyticCategory.GREETING),
        ("list all transactions", AnalyticCategory.TRANSACTION_LIST),
        ("show me the rent transactions", AnalyticCategory.TRANSACTION_LIST),
        ("show me my expense trend", AnalyticCategory.TREND_ANALYSIS),
        ("daily totals please", AnalyticCategory.TREND_ANALYSIS),
        ("monthly performance", AnalyticCategory.MONTHLY_ANALYSIS),
        ("how did jan go", AnalyticCategory.MONTHLY_ANALYSIS),
        ("compare this week with last week", AnalyticCategory.COMPARISON),
        ("where does my money go", AnalyticCategory.EXPENSE_BREAKDOWN),
        ("category split", AnalyticCategory.EXPENSE_BREAKDOWN),
        ("what is my profit", AnalyticCategory.PROFIT_ANALYSIS),
        ("any unusual spikes", AnalyticCategory.ANOMALY_DETECTION),
        ("how were sales", AnalyticCategory.SALES_INCOME),
        ("forecast for next week", AnalyticCategory.PREDICTION),
        ("give me an overview", AnalyticCategory.SUMMARY),
    ])
    def test_cascade(self, query, expected):
        """Test representative queries for every category."""
        assert classify_analytic(query) == expected

    def test_trend_beats_expense(self):
        """Test that rule order decides overlapping queries."""
        assert classify_analytic("show me my expense trend") == AnalyticCategory.TREND_ANALYSIS
        assert classify_analytic("monthly spending") == AnalyticCategory.MONTHLY_ANALYSIS

    def test_case_and_whitespace_are_ignored(self):
        """Test that the query is normalized first."""
        assert classify_analytic("   FORECAST   ") == AnalyticCategory.PREDICTION

    def test_default_is_summary(self):
        """Test that unmatched and empty queries fall back to SUMMARY."""
        assert classify_analytic("") == AnalyticCategory.SUMMARY
        assert classify_analytic("qwerty") == AnalyticCategory.SUMMARY

    def test_rules_are_ordered_data(self):
        """Test that the cascade starts with greetings and lists."""
        categories = [category for _, category in ANALYTIC_RULES]
        assert categories[0] == AnalyticCategory.GREETING
        assert categories[1] == AnalyticCategory.TRANSACTION_LIST
        assert AnalyticCategory.SUMMARY not in categories


class TestGreeting:
    """Tests for greeting detection."""

    def test_short_greeting(self):
        """Test that short greetings match."""
        assert is_greeting("good morning")
        assert is_greeting("namaste")

    def test_long_query_with_greeting_is_not_a_greeting(self):
        """Test that a greeting followed by a question is a real query."""
        assert not is_greeting("hi what is my profit")
        assert classify_analytic("hi what is my profit") == AnalyticCategory.PROFIT_ANALYSIS

    def test_word_boundary(self):
        """Test that words starting with 'hi' are not greetings."""
        assert not is_greeting("history")
        assert classify_analytic("history") == AnalyticCategory.TREND_ANALYSIS


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
