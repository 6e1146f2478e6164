"""
Tests for cross-category pattern analysis.
"""

import pytest

from predictive_insights.services.pattern_analyzer import (
    analyze_spending_patterns,
    category_trend,
    has_irregular_income,
    seasonality_strength,
)
from tests.factories.financial_factory import expenses_on, make_income

SIX_MONTHS = ["2025-12", "2026-01", "2026-02", "2026-03", "2026-04", "2026-05"]


def _monthly(category_id, totals, months=SIX_MONTHS):
    return expenses_on(category_id, [(f"{month}-10", total) for month, total in zip(months, totals)])


def _salary(amounts, months=("2026-03", "2026-04", "2026-05")):
    return [
        make_income(category_id="salary", date=f"{month}-01", amount=amount)
        for month, amount in zip(months, amounts)
    ]


@pytest.mark.unit
class TestSignals:

    def test_category_trend_needs_three_months(self):
        assert category_trend([100, 200]) is None
        assert category_trend([100, 200, 300]) == pytest.approx(0.5)

    def test_category_trend_is_not_clamped(self):
        assert category_trend([10, 100, 190]) == pytest.approx(90 / 100)
        assert category_trend([1, 1, 100]) > 1.0

    def test_seasonality_strength_needs_six_months(self):
        assert seasonality_strength([100, 500, 100, 500, 100]) is None
        assert seasonality_strength([100, 100, 100, 100, 100, 100]) == pytest.approx(0.0)

    def test_irregular_income(self):
        assert has_irregular_income(_salary([4000, 1000, 5000]))
        assert not has_irregular_income(_salary([4000, 4000, 4000]))

    def test_irregular_income_needs_three_months(self):
        assert not has_irregular_income(_salary([4000, 500], months=("2026-04", "2026-05")))

    def test_month_without_income_counts_as_zero(self):
        transactions = _salary([4000, 4000], months=("2026-03", "2026-05")) + expenses_on(
            "food", [("2026-04-10", 50)]
        )

        assert has_irregular_income(transactions)


@pytest.mark.unit
class TestAnalyzeSpendingPatterns:

    def test_too_few_transactions_gives_empty_patterns(self, test_settings):
        patterns = analyze_spending_patterns(_monthly("food", [100, 100, 100]), test_settings)

        assert patterns.is_empty
        assert patterns.category_trends == {}
        assert patterns.seasonal_category_ids == []

    def test_irregular_income_detected(self, test_settings):
        transactions = _salary([4000, 1000, 5000]) + expenses_on("food", [
            (f"{month}-{day:02d}", 300)
            for month in ("2026-03", "2026-04", "2026-05")
            for day in (5, 15, 25)
        ])

        patterns = analyze_spending_patterns(transactions, test_settings)

        assert patterns.has_irregular_income
        assert patterns.category_trends["food"] == pytest.approx(0.0, abs=1e-9)
        assert not patterns.has_seasonal_spending

    def test_seasonal_categories_ordered_by_strength(self, test_settings):
        transactions = (
            _monthly("food", [100, 110, 100, 110, 100, 110])
            + _monthly("rent", [100, 100, 100, 100, 100, 300])
            + _monthly("travel", [100, 100, 100, 100, 100, 500])
        )

        patterns = analyze_spending_patterns(transactions, test_settings)

        assert patterns.has_seasonal_spending
        assert patterns.seasonal_category_ids == ["travel", "rent"]
        assert set(patterns.category_trends) == {"food", "rent", "travel"}
        assert not patterns.has_irregular_income

    def test_short_category_has_no_trend(self, test_settings):
        transactions = (
            _monthly("food", [100, 110, 120, 130, 140, 150])
            + _monthly("rent", [900] * 6)
            + _monthly("travel", [400, 800], months=["2026-04", "2026-05"])
        )

        patterns = analyze_spending_patterns(transactions, test_settings)

        assert "travel" not in patterns.category_trends
        assert patterns.category_trends["food"] > 0
