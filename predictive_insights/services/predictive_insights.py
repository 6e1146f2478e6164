"""
Predictive insights orchestration.

Loads the history window and the category directory once, then runs the
predictor, the anomaly detector, the pattern analyzer, the financial health
analysis and the recommendation engine over that in-memory snapshot.
"""

import time
from datetime import date
from typing import List, Optional, Sequence

import structlog

from ..config import Settings, get_settings
from ..models.financial import CategoryInfo, TransactionRecord
from ..models.insights import (
    DataQuality,
    PredictiveInsights,
    SpendingAnomaly,
    SpendingPrediction,
)
from ..utils.constants import InsufficientDataReason
from ..utils.exceptions import ValidationError as AppValidationError
from .anomaly_detector import detect_anomalies
from .category_predictor import predict_spending
from .financial_health import calculate_financial_health, identify_recurring_expenses
from .history_loader import (
    CategoryLoader,
    TransactionLoader,
    load_category_directory,
    load_history,
    slice_window,
)
from .pattern_analyzer import analyze_spending_patterns
from .preprocessing import count_distinct_months
from .recommendation_engine import RecommendationResult, generate_recommendations

logger = structlog.get_logger()


def _data_quality(history: Sequence[TransactionRecord],
                  prediction: SpendingPrediction,
                  anomalies: Sequence[SpendingAnomaly],
                  recommendations: RecommendationResult,
                  settings: Settings) -> DataQuality:
    reasons: List[InsufficientDataReason] = []

    if not history:
        reasons.append(InsufficientDataReason.NO_TRANSACTIONS)
    if any(p.is_placeholder for p in prediction.category_predictions):
        reasons.append(InsufficientDataReason.NO_EXPENSE_CATEGORIES)
    if any(a.is_placeholder for a in anomalies):
        reasons.append(InsufficientDataReason.PLACEHOLDER_ANOMALY)
    if len(history) < settings.pattern_min_transactions:
        reasons.append(InsufficientDataReason.PATTERNS_UNAVAILABLE)

    expense_count = sum(1 for t in history if t.is_expense)
    if (count_distinct_months(history) < settings.history_min_months
            or expense_count < settings.history_min_expense_transactions):
        reasons.append(InsufficientDataReason.LIMITED_HISTORY)

    if recommendations.used_fallback:
        reasons.append(InsufficientDataReason.GENERIC_RECOMMENDATIONS)

    return DataQuality(reasons=reasons)


def build_insights(user_id: str,
                   history: Sequence[TransactionRecord],
                   categories: Sequence[CategoryInfo],
                   today: date,
                   settings: Optional[Settings] = None) -> PredictiveInsights:
    """Pure part of the pipeline: analyse an already loaded snapshot."""
    settings = settings or get_settings()
    history = list(history)
    recent = slice_window(history, settings.anomaly_window_months, today)

    prediction = predict_spending(history, categories, today, settings)
    anomalies = detect_anomalies(recent, categories, today, settings)
    patterns = analyze_spending_patterns(history, settings)
    recommendations = generate_recommendations(
        prediction, anomalies, patterns, history, categories, settings
    )
    if recommendations.error:
        logger.warning(
            "Recommendation rules failed, generic recommendations returned",
            user_id=user_id,
            error=recommendations.error
        )

    return PredictiveInsights(
        user_id=user_id,
        predictions=prediction,
        anomalies=anomalies,
        recommendations=recommendations.recommendations,
        patterns=patterns,
        recurring_expenses=identify_recurring_expenses(history, categories),
        financial_health=calculate_financial_health(history),
        data_quality=_data_quality(history, prediction, anomalies, recommendations, settings),
    )


async def get_insights(user_id: str,
                       load_transactions: TransactionLoader,
                       load_categories: CategoryLoader,
                       today: Optional[date] = None,
                       settings: Optional[Settings] = None) -> PredictiveInsights:
    """Generate predictive insights for one user.

    Calls the transaction store once (prediction window) and the category
    directory once; the anomaly window is sliced from the same snapshot.
    Collaborator failures raise DataUnavailableError.
    """
    if not user_id:
        raise AppValidationError(message="User id is required")

    settings = settings or get_settings()
    today = today or date.today()
    start_time = time.time()
    logger.debug("Generating predictive insights", user_id=user_id, today=today.isoformat())

    history = await load_history(user_id, settings.prediction_window_months, load_transactions, today)
    categories = await load_category_directory(user_id, load_categories)

    insights = build_insights(user_id, history, categories, today, settings)

    logger.info(
        "Predictive insights generated",
        user_id=user_id,
        transaction_count=len(history),
        category_count=len(categories),
        anomaly_count=len(insights.anomalies),
        recommendation_count=len(insights.recommendations),
        degraded=insights.data_quality.is_degraded,
        process_time=f"{time.time() - start_time:.4f}s"
    )
    return insights


class PredictiveInsightsService:
    """Binds the two collaborators so callers only pass a user id."""

    def __init__(self,
                 load_transactions: TransactionLoader,
                 load_categories: CategoryLoader,
                 settings: Optional[Settings] = None):
        self.load_transactions = load_transactions
        self.load_categories = load_categories
        self.settings = settings or get_settings()

    async def get_insights(self, user_id: str, today: Optional[date] = None) -> PredictiveInsights:
        return await get_insights(
            user_id,
            self.load_transactions,
            self.load_categories,
            today=today,
            settings=self.settings,
        )
