"""
Analysis constants.
"""

from enum import Enum


class TransactionKind(str, Enum):
    """Transaction kinds."""
    INCOME = "income"
    EXPENSE = "expense"


class TrendDirection(str, Enum):
    """Direction of a category's monthly spending."""
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class ConfidenceLevel(str, Enum):
    """Overall confidence of a prediction run."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Severity(str, Enum):
    """Anomaly severity buckets."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecommendationType(str, Enum):
    """Recommendation types."""
    SAVING = "saving"
    SPENDING = "spending"
    BUDGET = "budget"
    INVESTMENT = "investment"


class Difficulty(str, Enum):
    """Effort needed to follow a recommendation."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TimeFrame(str, Enum):
    """When a recommendation should be acted on."""
    IMMEDIATE = "immediate"
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"


class InsufficientDataReason(str, Enum):
    """Why a run produced degraded output."""
    NO_TRANSACTIONS = "no_transactions"
    NO_EXPENSE_CATEGORIES = "no_expense_categories"
    PLACEHOLDER_ANOMALY = "placeholder_anomaly"
    PATTERNS_UNAVAILABLE = "patterns_unavailable"
    LIMITED_HISTORY = "limited_history"
    GENERIC_RECOMMENDATIONS = "generic_recommendations"


SEVERITY_ORDER = {
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}

# Seasonal prior keyed by calendar month (1-12); months not listed use 1.0
SEASONAL_FACTORS = {
    12: 1.15,
    1: 0.90,
}

# Trend / confidence tuning
TREND_WEIGHT = 0.05
TREND_INCREASING_THRESHOLD = 0.1
CONFIDENCE_BOOST_MAX = 0.15
CONFIDENCE_BOOST_PER_TRANSACTION = 0.01
CONFIDENCE_CAP = 0.95

# Severity cut-offs on the deviation score
SEVERITY_HIGH_SCORE = 4.0
SEVERITY_MEDIUM_SCORE = 3.0

# Pattern analysis
SEASONAL_MIN_MONTHS = 6
SEASONAL_COV_THRESHOLD = 0.3
TREND_MIN_MONTHS = 3
INCOME_MIN_MONTHS = 3
IRREGULAR_INCOME_COV_THRESHOLD = 0.25

# Confidence level by data volume
HIGH_CONFIDENCE_MIN_TRANSACTIONS = 200
LOW_CONFIDENCE_MAX_TRANSACTIONS = 50

# Fallback constants used when a computation is undefined
FALLBACK_CONFIDENCE = 0.7
PLACEHOLDER_CATEGORY_ID = "uncategorized"
PLACEHOLDER_CATEGORY_NAME = "Uncategorized"
PLACEHOLDER_ANOMALY_ID = "example-anomaly"
DEFAULT_CATEGORY_COLOR = "#CCCCCC"

# Recurring expenses
RECURRING_MIN_OCCURRENCES = 3
