"""
Predictive financial analytics engine: next-month spending forecasts,
anomaly detection and ranked recommendations over a user's transactions.
"""
from .models import PredictiveInsights, TransactionRecord, CategoryInfo
from .services import PredictiveInsightsService, build_insights, get_insights
from .utils.exceptions import AppException, DataUnavailableError

__version__ = "1.0.0"

__all__ = [
    "AppException",
    "CategoryInfo",
    "DataUnavailableError",
    "PredictiveInsights",
    "PredictiveInsightsService",
    "TransactionRecord",
    "build_insights",
    "get_insights",
]
