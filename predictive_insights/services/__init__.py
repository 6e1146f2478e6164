"""
Analysis services.
"""
from .anomaly_detector import detect_anomalies
from .category_predictor import predict_spending
from .pattern_analyzer import analyze_spending_patterns
from .predictive_insights import PredictiveInsightsService, build_insights, get_insights
from .recommendation_engine import generate_recommendations

__all__ = [
    "PredictiveInsightsService",
    "analyze_spending_patterns",
    "build_insights",
    "detect_anomalies",
    "generate_recommendations",
    "get_insights",
    "predict_spending",
]
