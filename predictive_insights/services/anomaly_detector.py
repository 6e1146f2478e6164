"""
Spending anomaly detection.

Each expense is scored against the rest of its category (leave-one-out mean
and sample standard deviation). Scores strictly above the threshold are
reported, bucketed into severities.
"""

from datetime import date
from typing import List, Optional, Sequence

import structlog

from ..config import Settings, get_settings
from ..models.financial import CategoryInfo, TransactionRecord
from ..models.insights import SpendingAnomaly
from ..utils.constants import (
    PLACEHOLDER_ANOMALY_ID,
    SEVERITY_HIGH_SCORE,
    SEVERITY_MEDIUM_SCORE,
    SEVERITY_ORDER,
    Severity,
    TransactionKind,
)
from ..utils.statistics import mean, safe_divide, sample_std
from .history_loader import build_category_map
from .preprocessing import group_by_category

logger = structlog.get_logger()


def deviation_score(amount: float, baseline_mean: Optional[float], baseline_std: Optional[float]) -> float:
    """``|amount - mean| / std``; 0 when the baseline has no spread."""
    if baseline_mean is None or not baseline_std:
        return 0.0
    return abs(amount - baseline_mean) / baseline_std


def severity_for(score: float) -> Severity:
    if score > SEVERITY_HIGH_SCORE:
        return Severity.HIGH
    if score > SEVERITY_MEDIUM_SCORE:
        return Severity.MEDIUM
    return Severity.LOW


def anomaly_sort_key(anomaly: SpendingAnomaly):
    """Severity first, then size of the deviation, then transaction id."""
    return (
        -SEVERITY_ORDER[anomaly.severity],
        -abs(anomaly.percentage_deviation),
        anomaly.transaction_id,
    )


def detect_category_anomalies(transactions: Sequence[TransactionRecord],
                              category: CategoryInfo,
                              threshold: float = 2.0,
                              min_transactions: int = 5) -> List[SpendingAnomaly]:
    """Flag the category's expenses whose deviation score exceeds ``threshold``."""
    expenses = sorted(
        (t for t in transactions if t.is_expense),
        key=lambda t: (t.transaction_date, t.id)
    )
    if len(expenses) < min_transactions:
        return []

    amounts = [t.value for t in expenses]
    anomalies = []
    for index, transaction in enumerate(expenses):
        baseline = amounts[:index] + amounts[index + 1:]
        baseline_mean = mean(baseline)
        score = deviation_score(transaction.value, baseline_mean, sample_std(baseline))

        if score <= threshold:
            continue

        deviation = safe_divide(transaction.value - baseline_mean, baseline_mean, fallback=0.0)
        anomalies.append(SpendingAnomaly(
            category_id=category.id,
            category_name=category.name,
            category_color=category.color,
            amount=transaction.value,
            expected_amount=baseline_mean,
            percentage_deviation=deviation * 100,
            transaction_date=transaction.transaction_date,
            description=transaction.description,
            transaction_id=transaction.id,
            severity=severity_for(score),
        ))

    return anomalies


def placeholder_anomaly(category: CategoryInfo, today: date) -> SpendingAnomaly:
    """Illustrative entry carrying the sentinel transaction id; no invented amounts."""
    return SpendingAnomaly(
        category_id=category.id,
        category_name=category.name,
        category_color=category.color,
        amount=0.0,
        expected_amount=0.0,
        percentage_deviation=0.0,
        transaction_date=today,
        description="No unusual spending detected",
        transaction_id=PLACEHOLDER_ANOMALY_ID,
        severity=Severity.LOW,
        is_placeholder=True,
    )


def detect_anomalies(transactions: Sequence[TransactionRecord],
                     categories: Sequence[CategoryInfo],
                     today: date,
                     settings: Optional[Settings] = None) -> List[SpendingAnomaly]:
    """Anomalies across all known categories, sorted by severity then deviation.

    Returns an empty list when nothing is flagged, unless the
    ``emit_placeholder_anomaly`` setting asks for a labelled placeholder.
    """
    settings = settings or get_settings()
    category_map = build_category_map(categories)

    anomalies: List[SpendingAnomaly] = []
    for category_id, expenses in group_by_category(transactions, TransactionKind.EXPENSE).items():
        category = category_map.get(category_id)
        if category is None:
            continue
        anomalies.extend(detect_category_anomalies(
            expenses,
            category,
            threshold=settings.anomaly_threshold,
            min_transactions=settings.anomaly_min_transactions,
        ))

    anomalies.sort(key=anomaly_sort_key)

    if not anomalies and categories and settings.emit_placeholder_anomaly:
        first_category = sorted(categories, key=lambda c: c.id)[0]
        logger.info("No anomalies found, emitting placeholder", category_id=first_category.id)
        return [placeholder_anomaly(first_category, today)]

    logger.debug("Anomaly detection finished", anomaly_count=len(anomalies))
    return anomalies
