"""
Pydantic models for the predictive insights engine.
"""
from .base import ImmutableModel, TimestampedModel
from .financial import CategoryInfo, TransactionRecord
from .insights import (
    CategoryPrediction,
    DataQuality,
    FinancialHealthMetrics,
    FinancialRecommendation,
    PredictiveInsights,
    RecurringExpense,
    SpendingAnomaly,
    SpendingPatterns,
    SpendingPrediction,
)

__all__ = [
    # Base
    "ImmutableModel",
    "TimestampedModel",
    # Inputs
    "CategoryInfo",
    "TransactionRecord",
    # Outputs
    "CategoryPrediction",
    "DataQuality",
    "FinancialHealthMetrics",
    "FinancialRecommendation",
    "PredictiveInsights",
    "RecurringExpense",
    "SpendingAnomaly",
    "SpendingPatterns",
    "SpendingPrediction",
]
