"""
Output models of a predictive-insights run.

Plain data: every model is frozen, rejects NaN/inf floats and serializes with
``model_dump(mode="json")``.
"""
from datetime import date
from typing import Dict, List, Optional

from pydantic import Field, computed_field

from ..utils.constants import (
    ConfidenceLevel,
    Difficulty,
    InsufficientDataReason,
    RecommendationType,
    Severity,
    TimeFrame,
    TrendDirection,
)
from .base import ImmutableModel, TimestampedModel


class CategoryPrediction(ImmutableModel):
    """Next-period spending forecast for one category."""

    category_id: str
    category_name: str
    category_color: str
    predicted_amount: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    previous_amount: Optional[float] = None
    percentage_change: Optional[float] = None
    trend: TrendDirection = TrendDirection.STABLE
    transaction_count: int = Field(default=0, ge=0)
    is_placeholder: bool = Field(default=False, description="Injected because no expense category exists")


class SpendingPrediction(ImmutableModel):
    """Aggregate forecast for the month after the reference date."""

    target_period: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    total_predicted_expense: float = Field(..., ge=0)
    total_predicted_income: float = Field(..., ge=0)
    predicted_balance: float
    predicted_savings_rate: float
    category_predictions: List[CategoryPrediction] = Field(..., min_length=1)
    confidence_level: ConfidenceLevel = ConfidenceLevel.MEDIUM
    data_points: int = Field(default=0, ge=0)


class SpendingAnomaly(ImmutableModel):
    """An expense that deviates strongly from the rest of its category."""

    category_id: str
    category_name: str
    category_color: str
    amount: float
    expected_amount: float
    percentage_deviation: float
    transaction_date: date
    description: str
    transaction_id: str
    severity: Severity
    is_placeholder: bool = Field(default=False, description="Illustrative entry, not a real transaction")


class FinancialRecommendation(ImmutableModel):
    """A ranked, typed piece of financial advice."""

    id: str
    type: RecommendationType
    title: str
    description: str
    potential_impact: float = Field(..., ge=0)
    difficulty: Difficulty
    time_frame: TimeFrame
    relevance_score: float = Field(..., ge=0, le=1)
    related_category_ids: Optional[List[str]] = None


class SpendingPatterns(ImmutableModel):
    """Cross-category signals consumed by the recommendation rules."""

    category_trends: Dict[str, float] = Field(default_factory=dict)
    has_irregular_income: bool = False
    has_seasonal_spending: bool = False
    seasonal_category_ids: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.category_trends
            or self.has_irregular_income
            or self.has_seasonal_spending
        )


class RecurringExpense(ImmutableModel):
    """An expense description seen repeatedly in the history window."""

    description: str
    category_id: str
    category_name: str
    occurrences: int = Field(..., ge=1)
    average_amount: float = Field(..., ge=0)


class FinancialHealthMetrics(ImmutableModel):
    """Coarse health score derived from income and expense totals."""

    score: int = Field(..., ge=0, le=100)
    grade: str
    savings_rate: float = Field(..., ge=0, le=100)
    expense_to_income_ratio: float = Field(..., ge=0)
    total_income: float = Field(default=0.0, ge=0)
    total_expense: float = Field(default=0.0, ge=0)


class DataQuality(ImmutableModel):
    """Explicit "insufficient data" signal for degraded runs."""

    reasons: List[InsufficientDataReason] = Field(default_factory=list)

    @computed_field
    @property
    def is_degraded(self) -> bool:
        return bool(self.reasons)


class PredictiveInsights(TimestampedModel):
    """Top-level result of a run."""

    user_id: str
    predictions: SpendingPrediction
    anomalies: List[SpendingAnomaly] = Field(default_factory=list)
    recommendations: List[FinancialRecommendation] = Field(..., min_length=1)
    patterns: SpendingPatterns = Field(default_factory=SpendingPatterns)
    recurring_expenses: List[RecurringExpense] = Field(default_factory=list)
    financial_health: Optional[FinancialHealthMetrics] = None
    data_quality: DataQuality = Field(default_factory=DataQuality)
