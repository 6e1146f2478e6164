"""
Cross-category spending pattern analysis: monthly trends per category,
seasonal categories and income irregularity.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from ..config import Settings, get_settings
from ..models.financial import TransactionRecord
from ..models.insights import SpendingPatterns
from ..utils.constants import (
    INCOME_MIN_MONTHS,
    IRREGULAR_INCOME_COV_THRESHOLD,
    SEASONAL_COV_THRESHOLD,
    SEASONAL_MIN_MONTHS,
    TREND_MIN_MONTHS,
    TransactionKind,
)
from ..utils.statistics import coefficient_of_variation, normalized_slope
from .preprocessing import group_by_category, monthly_income_totals, monthly_series

logger = structlog.get_logger()


def category_trend(monthly_totals: Sequence[float]) -> Optional[float]:
    """Normalized slope of monthly totals; None below TREND_MIN_MONTHS months."""
    if len(monthly_totals) < TREND_MIN_MONTHS:
        return None
    return normalized_slope(monthly_totals)


def seasonality_strength(monthly_totals: Sequence[float]) -> Optional[float]:
    """CoV of monthly totals; None below SEASONAL_MIN_MONTHS months."""
    if len(monthly_totals) < SEASONAL_MIN_MONTHS:
        return None
    return coefficient_of_variation(monthly_totals)


def has_irregular_income(transactions: Sequence[TransactionRecord]) -> bool:
    """True when the CoV of monthly income exceeds IRREGULAR_INCOME_COV_THRESHOLD."""
    totals = monthly_income_totals(transactions)
    if len(totals) < INCOME_MIN_MONTHS:
        return False
    cov = coefficient_of_variation(totals)
    return cov is not None and cov > IRREGULAR_INCOME_COV_THRESHOLD


def analyze_spending_patterns(transactions: Sequence[TransactionRecord],
                              settings: Optional[Settings] = None) -> SpendingPatterns:
    """Trend, seasonality and income signals for the recommendation rules.

    Below ``pattern_min_transactions`` transactions the empty result is returned.
    """
    settings = settings or get_settings()

    if len(transactions) < settings.pattern_min_transactions:
        logger.debug(
            "Not enough transactions for pattern analysis",
            transaction_count=len(transactions),
            required=settings.pattern_min_transactions
        )
        return SpendingPatterns()

    trends: Dict[str, float] = {}
    seasonal: List[Tuple[float, str]] = []

    for category_id, expenses in group_by_category(transactions, TransactionKind.EXPENSE).items():
        totals = monthly_series(expenses, how="sum")

        trend = category_trend(totals)
        if trend is not None:
            trends[category_id] = trend

        strength = seasonality_strength(totals)
        if strength is not None and strength > SEASONAL_COV_THRESHOLD:
            seasonal.append((strength, category_id))

    # strongest seasonal category first
    seasonal.sort(key=lambda item: (-item[0], item[1]))
    seasonal_ids = [category_id for _, category_id in seasonal]

    return SpendingPatterns(
        category_trends=trends,
        has_irregular_income=has_irregular_income(transactions),
        has_seasonal_spending=bool(seasonal_ids),
        seasonal_category_ids=seasonal_ids,
    )
