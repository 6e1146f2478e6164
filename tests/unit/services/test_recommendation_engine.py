"""
Tests for the rule-based recommendation engine.
"""

from datetime import date
from unittest.mock import patch

import pytest

from predictive_insights.models.insights import (
    CategoryPrediction,
    SpendingAnomaly,
    SpendingPatterns,
    SpendingPrediction,
)
from predictive_insights.services import recommendation_engine
from predictive_insights.services.category_predictor import predict_spending
from predictive_insights.services.pattern_analyzer import analyze_spending_patterns
from predictive_insights.services.recommendation_engine import (
    generate_recommendations,
    rank_recommendations,
)
from predictive_insights.utils.constants import Difficulty, Severity, TimeFrame
from tests.factories.financial_factory import make_expense, make_income

ESTABLISHED_MONTHS = ("2026-03-05", "2026-03-20", "2026-04-05", "2026-04-20", "2026-05-05")


def _prediction(income: float, expense: float) -> SpendingPrediction:
    balance = income - expense
    return SpendingPrediction(
        target_period="2026-07",
        total_predicted_expense=expense,
        total_predicted_income=income,
        predicted_balance=balance,
        predicted_savings_rate=balance / income * 100 if income > 0 else 0.0,
        category_predictions=[CategoryPrediction(
            category_id="food",
            category_name="Food",
            category_color="#FF5733",
            predicted_amount=expense,
            confidence=0.8,
        )],
    )


def _anomaly(category_id: str, amount: float, expected: float, severity: Severity, txn_id: str) -> SpendingAnomaly:
    return SpendingAnomaly(
        category_id=category_id,
        category_name=category_id.title(),
        category_color="#FF5733",
        amount=amount,
        expected_amount=expected,
        percentage_deviation=(amount - expected) / expected * 100,
        transaction_date=date(2026, 5, 20),
        description="Unusual purchase",
        transaction_id=txn_id,
        severity=severity,
    )


def _established_history(category_ids, amount=100):
    """Five expenses per category spread over three months."""
    return [
        make_expense(category_id=category_id, date=day, amount=amount)
        for category_id in category_ids
        for day in ESTABLISHED_MONTHS
    ]


def _ids(result):
    return [r.id for r in result.recommendations]


@pytest.mark.unit
class TestRules:
    """One rule at a time."""

    def test_overspend(self, categories, test_settings):
        history = [
            make_expense(category_id="rent", date="2026-05-02", amount=800),
            make_expense(category_id="food", date="2026-05-03", amount=100),
            make_expense(category_id="travel", date="2026-05-04", amount=100),
        ]

        result = generate_recommendations(
            _prediction(5000, 1000), [], SpendingPatterns(), history, categories, test_settings
        )

        rent = next(r for r in result.recommendations if r.id == "reduce-rent")
        assert rent.potential_impact == pytest.approx(80.0)
        assert rent.difficulty == Difficulty.EASY
        assert rent.time_frame == TimeFrame.SHORT_TERM
        assert rent.relevance_score == pytest.approx(0.80)
        assert rent.related_category_ids == ["rent"]
        # exactly 10% share each: not above the 15% threshold
        assert "reduce-food" not in _ids(result)
        assert "reduce-travel" not in _ids(result)

    def test_overspend_with_increasing_trend(self, categories, test_settings):
        history = [make_expense(category_id="food", date="2026-05-03", amount=400)]
        patterns = SpendingPatterns(category_trends={"food": 0.2})

        result = generate_recommendations(
            _prediction(5000, 400), [], patterns, history, categories, test_settings
        )

        food = next(r for r in result.recommendations if r.id == "reduce-food")
        assert food.potential_impact == pytest.approx(60.0)
        assert food.difficulty == Difficulty.MEDIUM
        assert food.time_frame == TimeFrame.IMMEDIATE
        assert food.relevance_score == pytest.approx(0.90)

    @pytest.mark.parametrize("income,expense,target,difficulty", [
        (1000, 900, 20.0, Difficulty.MEDIUM),
        (1000, 950, 15.0, Difficulty.HARD),
    ])
    def test_increase_savings(self, categories, test_settings, income, expense, target, difficulty):
        result = generate_recommendations(
            _prediction(income, expense), [], SpendingPatterns(), [], categories, test_settings
        )

        savings = next(r for r in result.recommendations if r.id == "increase-savings")
        rate = (income - expense) / income * 100
        assert savings.potential_impact == pytest.approx(income * (target - rate) / 100)
        assert savings.difficulty == difficulty

    def test_negative_balance(self, categories, test_settings):
        result = generate_recommendations(
            _prediction(1000, 1500), [], SpendingPatterns(), [], categories, test_settings
        )

        budget = next(r for r in result.recommendations if r.id == "create-budget")
        assert budget.potential_impact == pytest.approx(600.0)
        assert budget.relevance_score == pytest.approx(0.95)
        assert result.recommendations[0].id == "create-budget"

    def test_start_investing(self, categories, test_settings):
        result = generate_recommendations(
            _prediction(5000, 3000), [], SpendingPatterns(), [], categories, test_settings
        )

        invest = next(r for r in result.recommendations if r.id == "start-investing")
        assert invest.potential_impact == pytest.approx(1000.0)
        assert invest.time_frame == TimeFrame.LONG_TERM
        assert "increase-savings" not in _ids(result)

    def test_repeated_anomalies(self, categories, test_settings):
        anomalies = [
            _anomaly("food", 300, 50, Severity.HIGH, "t1"),
            _anomaly("food", 130, 100, Severity.LOW, "t2"),
            _anomaly("travel", 900, 100, Severity.HIGH, "t3"),
        ]

        result = generate_recommendations(
            _prediction(5000, 3000), anomalies, SpendingPatterns(), [], categories, test_settings
        )

        review = next(r for r in result.recommendations if r.id == "review-food")
        assert review.potential_impact == pytest.approx(280.0)
        assert review.relevance_score == pytest.approx(0.88)
        # a single anomaly is not a pattern
        assert "review-travel" not in _ids(result)

    def test_repeated_low_anomalies_ignored(self, categories, test_settings):
        anomalies = [
            _anomaly("food", 130, 100, Severity.LOW, "t1"),
            _anomaly("food", 135, 100, Severity.MEDIUM, "t2"),
        ]

        result = generate_recommendations(
            _prediction(5000, 3000), anomalies, SpendingPatterns(), [], categories, test_settings
        )

        assert "review-food" not in _ids(result)

    def test_seasonal_spending(self, categories, test_settings):
        history = _established_history(["food", "travel"])
        patterns = SpendingPatterns(has_seasonal_spending=True, seasonal_category_ids=["travel", "food"])

        result = generate_recommendations(
            _prediction(5000, 3000), [], patterns, history, categories, test_settings
        )

        seasonal = [r for r in result.recommendations if r.id.startswith("plan-seasonal-")]
        assert [r.id for r in seasonal] == ["plan-seasonal-travel"]
        assert seasonal[0].potential_impact == pytest.approx(500 * 0.2)

    def test_insufficient_history(self, categories, test_settings):
        history = [make_expense(category_id="food", date="2026-05-03", amount=100)]

        result = generate_recommendations(
            _prediction(5000, 1000), [], SpendingPatterns(), history, categories, test_settings
        )

        budget = next(r for r in result.recommendations if r.id == "establish-budget")
        assert budget.potential_impact == pytest.approx(100.0)

    def test_emergency_fund(self, categories, test_settings):
        patterns = SpendingPatterns(has_irregular_income=True)
        prediction = _prediction(5000, 3000)

        result = generate_recommendations(prediction, [], patterns, [], categories, test_settings)

        fund = next(r for r in result.recommendations if r.id == "emergency-fund")
        assert fund.potential_impact == pytest.approx(0.5 * prediction.total_predicted_expense)


@pytest.mark.unit
class TestScenarios:
    """Full predictor -> patterns -> rules flows."""

    def test_balanced_budget_scenario(self, today, categories, test_settings):
        history = (
            [make_income(category_id="salary", date=f"2026-0{m}-01", amount=4000) for m in (3, 4, 5)]
            + [make_expense(category_id="rent", date=f"2026-0{m}-02", amount=3000) for m in (3, 4, 5)]
        )
        prediction = predict_spending(history, categories, today, test_settings)
        patterns = analyze_spending_patterns(history, test_settings)

        result = generate_recommendations(prediction, [], patterns, history, categories, test_settings)

        ids = _ids(result)
        assert prediction.predicted_savings_rate == pytest.approx(25.0)
        assert "increase-savings" not in ids
        assert "start-investing" not in ids
        assert "create-budget" not in ids
        assert ids == ["reduce-rent", "establish-budget"]
        assert not result.used_fallback

    def test_irregular_income_scenario(self, today, categories, test_settings):
        history = [
            make_income(category_id="salary", date=f"{month}-01", amount=amount)
            for month, amount in (("2026-03", 4000), ("2026-04", 1000), ("2026-05", 5000))
        ] + [
            make_expense(category_id="food", date=f"{month}-{day}", amount=300)
            for month in ("2026-03", "2026-04", "2026-05")
            for day in ("05", "15", "25")
        ]
        prediction = predict_spending(history, categories, today, test_settings)
        patterns = analyze_spending_patterns(history, test_settings)

        result = generate_recommendations(prediction, [], patterns, history, categories, test_settings)

        fund = next(r for r in result.recommendations if r.id == "emergency-fund")
        assert fund.potential_impact == pytest.approx(0.5 * prediction.total_predicted_expense)


@pytest.mark.unit
class TestRankingAndFallback:

    def test_sorted_by_relevance(self, categories, test_settings):
        history = [make_expense(category_id="food", date="2026-05-03", amount=1500)]
        patterns = SpendingPatterns(has_irregular_income=True)

        result = generate_recommendations(
            _prediction(1000, 1500), [], patterns, history, categories, test_settings
        )

        scores = [r.relevance_score for r in result.recommendations]
        assert scores == sorted(scores, reverse=True)
        assert _ids(result)[:2] == ["create-budget", "increase-savings"]

    def test_rank_ties_broken_by_id(self, categories, test_settings):
        history = [
            make_expense(category_id="travel", date="2026-05-03", amount=100),
            make_expense(category_id="food", date="2026-05-03", amount=100),
        ]

        result = generate_recommendations(
            _prediction(5000, 4000), [], SpendingPatterns(), history, categories, test_settings
        )

        assert _ids(result)[:2] == ["reduce-food", "reduce-travel"]
        assert rank_recommendations(list(reversed(result.recommendations))) == result.recommendations

    def test_failing_rule_falls_back_to_generic(self, categories, test_settings):
        def broken_rule(ctx):
            raise ZeroDivisionError("boom")

        with patch.object(recommendation_engine, "RULES", [broken_rule]):
            result = generate_recommendations(
                _prediction(5000, 3000), [], SpendingPatterns(), [], categories, test_settings
            )

        assert result.used_fallback
        assert result.error == "boom"
        assert _ids(result) == ["create-budget", "reduce-expenses", "save-more"]
        assert all(r.potential_impact == 0.0 for r in result.recommendations)

    def test_no_rule_firing_falls_back_to_generic(self, categories, test_settings):
        directory = categories + [
            category.model_copy(update={"id": f"extra-{i}", "name": f"Extra {i}"})
            for i, category in enumerate(categories[:3])
        ]
        # seven categories with equal spending: every share is below 15%
        history = _established_history(["food", "rent", "travel", "salary", "extra-0", "extra-1", "extra-2"])

        result = generate_recommendations(
            _prediction(5000, 3900), [], SpendingPatterns(), history, directory, test_settings
        )

        assert result.used_fallback
        assert result.error is None
        assert _ids(result) == ["create-budget", "reduce-expenses", "save-more"]
