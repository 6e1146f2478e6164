"""
Category spending predictor.

Forecasts next-month spending per category with a recency-weighted mean,
adjusted by a linear monthly trend and a fixed seasonal prior once a category
has enough history. Income is forecast as the plain mean per category.
"""

from datetime import date
from typing import List, Optional, Sequence

import structlog

from ..config import Settings, get_settings
from ..models.financial import CategoryInfo, TransactionRecord
from ..models.insights import CategoryPrediction, SpendingPrediction
from ..utils.constants import (
    CONFIDENCE_BOOST_MAX,
    CONFIDENCE_BOOST_PER_TRANSACTION,
    CONFIDENCE_CAP,
    DEFAULT_CATEGORY_COLOR,
    FALLBACK_CONFIDENCE,
    HIGH_CONFIDENCE_MIN_TRANSACTIONS,
    LOW_CONFIDENCE_MAX_TRANSACTIONS,
    PLACEHOLDER_CATEGORY_ID,
    PLACEHOLDER_CATEGORY_NAME,
    SEASONAL_FACTORS,
    TREND_INCREASING_THRESHOLD,
    TREND_WEIGHT,
    ConfidenceLevel,
    TransactionKind,
    TrendDirection,
)
from ..utils.exceptions import ComputationError
from ..utils.statistics import (
    clamp,
    coefficient_of_variation,
    is_finite,
    mean,
    normalized_slope,
    safe_divide,
)
from .history_loader import build_category_map
from .preprocessing import group_by_category, monthly_series, next_period, previous_month

logger = structlog.get_logger()


def recency_weighted_mean(transactions: Sequence[TransactionRecord]) -> float:
    """Weighted mean where the i-th newest of N transactions weighs ``max(1, N - i)``.

    Falls back to the simple mean, then to 0.0 for an empty sample.
    """
    ordered = sorted(transactions, key=lambda t: (t.transaction_date, t.id), reverse=True)
    total = len(ordered)

    weighted_sum = 0.0
    weight_sum = 0
    for index, transaction in enumerate(ordered):
        weight = max(1, total - index)
        weighted_sum += transaction.value * weight
        weight_sum += weight

    result = safe_divide(weighted_sum, weight_sum)
    if result is None:
        return mean([t.value for t in ordered]) or 0.0
    return result


def previous_period_amount(transactions: Sequence[TransactionRecord], today: date) -> Optional[float]:
    """Total of the calendar month before ``today``; None when that month is empty."""
    year, month = previous_month(today)
    amounts = [
        t.value for t in transactions
        if t.transaction_date.year == year and t.transaction_date.month == month
    ]
    if not amounts:
        return None
    return sum(amounts)


def percentage_change(predicted: float, previous: Optional[float]) -> Optional[float]:
    """Relative change in percent; None when there is no usable previous amount."""
    if previous is None:
        return None
    ratio = safe_divide(predicted - previous, previous)
    return None if ratio is None else ratio * 100


def consistency_confidence(amounts: Sequence[float]) -> float:
    """``1 - CoV/2`` clamped to [0, 1]; FALLBACK_CONFIDENCE when CoV is undefined."""
    cov = coefficient_of_variation(amounts)
    if cov is None:
        return FALLBACK_CONFIDENCE
    return clamp(1 - cov / 2)


def detect_trend(transactions: Sequence[TransactionRecord]) -> float:
    """Slope of the monthly average amounts, normalized by their mean, in [-1, 1]."""
    averages = monthly_series(transactions, how="mean")
    trend = normalized_slope(averages, bound=1.0)
    return 0.0 if trend is None else trend


def seasonal_factor(today: date) -> float:
    """Fixed seasonal prior for the reference month."""
    return SEASONAL_FACTORS.get(today.month, 1.0)


def trend_direction(trend: float) -> TrendDirection:
    if trend > TREND_INCREASING_THRESHOLD:
        return TrendDirection.INCREASING
    if trend < -TREND_INCREASING_THRESHOLD:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def _weighted_mean_prediction(expenses: Sequence[TransactionRecord],
                              category: CategoryInfo,
                              today: date) -> CategoryPrediction:
    """Plain recency-weighted forecast, also used as the fallback."""
    if not expenses:
        return CategoryPrediction(
            category_id=category.id,
            category_name=category.name,
            category_color=category.color,
            predicted_amount=0.0,
            confidence=0.0,
        )

    predicted = recency_weighted_mean(expenses)
    previous = previous_period_amount(expenses, today)

    return CategoryPrediction(
        category_id=category.id,
        category_name=category.name,
        category_color=category.color,
        predicted_amount=predicted,
        confidence=consistency_confidence([t.value for t in expenses]),
        previous_amount=previous,
        percentage_change=percentage_change(predicted, previous),
        transaction_count=len(expenses),
    )


def predict_category_spending(transactions: Sequence[TransactionRecord],
                              category: CategoryInfo,
                              today: date,
                              min_transactions_for_trend: int = 5) -> CategoryPrediction:
    """Forecast one category's spending for the month after ``today``.

    Only expense transactions are considered. With fewer than
    ``min_transactions_for_trend`` of them the plain weighted mean is returned.
    """
    expenses = [t for t in transactions if t.is_expense]
    base = _weighted_mean_prediction(expenses, category, today)

    if len(expenses) < min_transactions_for_trend:
        return base

    try:
        trend = detect_trend(expenses)
        adjusted = base.predicted_amount * seasonal_factor(today) * (1 + trend * TREND_WEIGHT)
        if not is_finite(adjusted):
            raise ComputationError(
                message="Adjusted prediction is not finite",
                details=[f"category_id={category.id}"]
            )

        boost = min(CONFIDENCE_BOOST_MAX, len(expenses) * CONFIDENCE_BOOST_PER_TRANSACTION)
        confidence = clamp(min(CONFIDENCE_CAP, base.confidence + boost))

        return base.model_copy(update={
            "predicted_amount": adjusted,
            "confidence": confidence,
            "percentage_change": percentage_change(adjusted, base.previous_amount),
            "trend": trend_direction(trend),
        })
    except Exception as e:
        logger.warning(
            "Trend adjustment failed, using weighted mean",
            category_id=category.id,
            error=str(e)
        )
        return base


def placeholder_prediction() -> CategoryPrediction:
    """Labelled stand-in used when no expense category exists at all."""
    return CategoryPrediction(
        category_id=PLACEHOLDER_CATEGORY_ID,
        category_name=PLACEHOLDER_CATEGORY_NAME,
        category_color=DEFAULT_CATEGORY_COLOR,
        predicted_amount=0.0,
        confidence=0.0,
        is_placeholder=True,
    )


def confidence_level_for(data_points: int) -> ConfidenceLevel:
    """Overall confidence from the volume of history."""
    if data_points > HIGH_CONFIDENCE_MIN_TRANSACTIONS:
        return ConfidenceLevel.HIGH
    if data_points < LOW_CONFIDENCE_MAX_TRANSACTIONS:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.MEDIUM


def predict_income(transactions: Sequence[TransactionRecord], categories: Sequence[CategoryInfo]) -> float:
    """Sum over income categories of the mean observed income amount."""
    category_map = build_category_map(categories)
    total = 0.0
    for category_id, incomes in group_by_category(transactions, TransactionKind.INCOME).items():
        if category_id not in category_map:
            continue
        total += mean([t.value for t in incomes]) or 0.0
    return total


def predict_spending(transactions: Sequence[TransactionRecord],
                     categories: Sequence[CategoryInfo],
                     today: date,
                     settings: Optional[Settings] = None) -> SpendingPrediction:
    """Aggregate next-month forecast over every category with expenses.

    Predictions are ordered by category id. When there is no expense category a
    single placeholder prediction is injected; it does not count in the totals.
    """
    settings = settings or get_settings()
    category_map = build_category_map(categories)

    predictions: List[CategoryPrediction] = []
    unknown_categories = []
    for category_id, expenses in group_by_category(transactions, TransactionKind.EXPENSE).items():
        category = category_map.get(category_id)
        if category is None:
            unknown_categories.append(category_id)
            continue
        predictions.append(predict_category_spending(
            expenses,
            category,
            today,
            min_transactions_for_trend=settings.min_transactions_for_trend,
        ))

    if unknown_categories:
        logger.debug("Skipping transactions of unknown categories", category_ids=unknown_categories)

    total_expense = sum(p.predicted_amount for p in predictions)
    total_income = predict_income(transactions, categories)
    balance = total_income - total_expense
    savings_rate = balance / total_income * 100 if total_income > 0 else 0.0

    if not predictions:
        logger.info("No expense categories found, injecting placeholder prediction")
        predictions = [placeholder_prediction()]

    return SpendingPrediction(
        target_period=next_period(today),
        total_predicted_expense=total_expense,
        total_predicted_income=total_income,
        predicted_balance=balance,
        predicted_savings_rate=savings_rate,
        category_predictions=predictions,
        confidence_level=confidence_level_for(len(transactions)),
        data_points=len(transactions),
    )
