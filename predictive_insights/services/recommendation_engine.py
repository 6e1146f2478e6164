"""
Rule-based recommendation engine.

Deterministic given the spending prediction, the anomalies, the spending
patterns and the raw history. Each rule carries a fixed relevance score; the
result is sorted by relevance. A failing rule degrades the whole result to a
fixed set of generic recommendations instead of raising.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from ..config import Settings, get_settings
from ..models.financial import CategoryInfo, TransactionRecord
from ..models.insights import (
    FinancialRecommendation,
    SpendingAnomaly,
    SpendingPatterns,
    SpendingPrediction,
)
from ..utils.constants import (
    TREND_INCREASING_THRESHOLD,
    Difficulty,
    RecommendationType,
    Severity,
    TimeFrame,
)
from ..utils.statistics import safe_divide
from .history_loader import build_category_map
from .preprocessing import count_distinct_months

logger = structlog.get_logger()

# Relevance per rule
RELEVANCE_OVERSPEND_INCREASING = 0.90
RELEVANCE_OVERSPEND = 0.80
RELEVANCE_INCREASE_SAVINGS = 0.90
RELEVANCE_NEGATIVE_BALANCE = 0.95
RELEVANCE_INVEST = 0.70
RELEVANCE_REVIEW_ANOMALIES = 0.88
RELEVANCE_EMERGENCY_FUND = 0.85
RELEVANCE_SEASONAL = 0.75
RELEVANCE_ESTABLISH_BUDGET = 0.78

# Impact multipliers
OVERSPEND_REDUCTION = 0.10
OVERSPEND_REDUCTION_INCREASING = 0.15
SAVINGS_RATE_STEP = 10.0
DEFICIT_MULTIPLIER = 1.2
INVESTABLE_SHARE = 0.5
EMERGENCY_FUND_SHARE = 0.5
SEASONAL_SAVING_SHARE = 0.2
BUDGET_SAVING_SHARE = 0.1


@dataclass
class RecommendationContext:
    """Inputs shared by every rule, precomputed once per run."""
    prediction: SpendingPrediction
    anomalies: List[SpendingAnomaly]
    patterns: SpendingPatterns
    transactions: List[TransactionRecord]
    category_map: Dict[str, CategoryInfo]
    settings: Settings
    category_spending: Dict[str, float] = field(default_factory=dict)
    total_spending: float = 0.0

    def __post_init__(self):
        spending: Dict[str, float] = defaultdict(float)
        for transaction in self.transactions:
            if transaction.is_expense:
                spending[transaction.category_id] += transaction.value
        self.category_spending = {key: spending[key] for key in sorted(spending)}
        self.total_spending = sum(self.category_spending.values())


@dataclass
class RecommendationResult:
    """Ranked recommendations plus whether the generic fallback was used."""
    recommendations: List[FinancialRecommendation]
    used_fallback: bool = False
    error: Optional[str] = None


def overspend_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Categories above the overspend share of total expense."""
    recommendations = []
    for category_id, amount in ctx.category_spending.items():
        share = safe_divide(amount, ctx.total_spending)
        if share is None or share <= ctx.settings.overspend_share_threshold:
            continue
        category = ctx.category_map.get(category_id)
        if category is None:
            continue

        trend = ctx.patterns.category_trends.get(category_id)
        increasing = trend is not None and trend > TREND_INCREASING_THRESHOLD
        percent = share * 100

        if increasing:
            title = f"Curb rising {category.name} spending"
            description = (
                f"Your {category.name} spending is increasing and makes up {percent:.1f}% "
                f"of your expenses. Look for ways to keep this growth in check."
            )
        else:
            title = f"Reduce {category.name} spending"
            description = (
                f"Your {category.name} spending makes up {percent:.1f}% of your expenses. "
                f"Look for ways to cut back in this category."
            )

        recommendations.append(FinancialRecommendation(
            id=f"reduce-{category_id}",
            type=RecommendationType.SPENDING,
            title=title,
            description=description,
            potential_impact=amount * (OVERSPEND_REDUCTION_INCREASING if increasing else OVERSPEND_REDUCTION),
            difficulty=Difficulty.MEDIUM if increasing else Difficulty.EASY,
            time_frame=TimeFrame.IMMEDIATE if increasing else TimeFrame.SHORT_TERM,
            relevance_score=RELEVANCE_OVERSPEND_INCREASING if increasing else RELEVANCE_OVERSPEND,
            related_category_ids=[category_id],
        ))
    return recommendations


def savings_rate_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Savings rate under target: raise it by up to ten points."""
    rate = ctx.prediction.predicted_savings_rate
    if rate >= ctx.settings.savings_rate_target:
        return []

    target = min(ctx.settings.investment_savings_rate, rate + SAVINGS_RATE_STEP)
    return [FinancialRecommendation(
        id="increase-savings",
        type=RecommendationType.SAVING,
        title="Increase your savings rate",
        description=(
            f"Your predicted savings rate is {rate:.1f}%. Aim for at least {target:.1f}% "
            f"to strengthen your finances."
        ),
        potential_impact=ctx.prediction.total_predicted_income * (target - rate) / 100,
        difficulty=Difficulty.HARD if rate < 10 else Difficulty.MEDIUM,
        time_frame=TimeFrame.SHORT_TERM,
        relevance_score=RELEVANCE_INCREASE_SAVINGS,
    )]


def negative_balance_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Predicted expenses above income: budget now."""
    balance = ctx.prediction.predicted_balance
    if balance >= 0:
        return []

    return [FinancialRecommendation(
        id="create-budget",
        type=RecommendationType.BUDGET,
        title="Create a monthly budget",
        description=(
            f"Your predicted expenses exceed your income by {abs(balance):.2f}. "
            f"A detailed budget helps keep spending under control and avoid debt."
        ),
        potential_impact=abs(balance) * DEFICIT_MULTIPLIER,
        difficulty=Difficulty.MEDIUM,
        time_frame=TimeFrame.IMMEDIATE,
        relevance_score=RELEVANCE_NEGATIVE_BALANCE,
    )]


def investment_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Healthy savings rate: invest part of the surplus."""
    rate = ctx.prediction.predicted_savings_rate
    if rate <= ctx.settings.investment_savings_rate:
        return []

    return [FinancialRecommendation(
        id="start-investing",
        type=RecommendationType.INVESTMENT,
        title="Consider investing your surplus",
        description=(
            f"You have a healthy predicted savings rate of {rate:.1f}%. Investing part of "
            f"your savings can grow them over the long term."
        ),
        potential_impact=ctx.prediction.predicted_balance * INVESTABLE_SHARE,
        difficulty=Difficulty.MEDIUM,
        time_frame=TimeFrame.LONG_TERM,
        relevance_score=RELEVANCE_INVEST,
    )]


def repeated_anomalies_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Categories with several anomalies, at least one of them high severity."""
    by_category: Dict[str, List[SpendingAnomaly]] = defaultdict(list)
    for anomaly in ctx.anomalies:
        if not anomaly.is_placeholder:
            by_category[anomaly.category_id].append(anomaly)

    recommendations = []
    for category_id in sorted(by_category):
        anomalies = by_category[category_id]
        if len(anomalies) <= 1 or not any(a.severity == Severity.HIGH for a in anomalies):
            continue

        excess = sum(a.amount - a.expected_amount for a in anomalies)
        name = anomalies[0].category_name
        recommendations.append(FinancialRecommendation(
            id=f"review-{category_id}",
            type=RecommendationType.SPENDING,
            title=f"Review unusual {name} expenses",
            description=(
                f"{len(anomalies)} recent {name} expenses were well outside your usual range. "
                f"Check whether they were one-offs or a new habit."
            ),
            potential_impact=max(0.0, excess),
            difficulty=Difficulty.EASY,
            time_frame=TimeFrame.IMMEDIATE,
            relevance_score=RELEVANCE_REVIEW_ANOMALIES,
            related_category_ids=[category_id],
        ))
    return recommendations


def emergency_fund_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Irregular income: build a cushion."""
    if not ctx.patterns.has_irregular_income:
        return []

    return [FinancialRecommendation(
        id="emergency-fund",
        type=RecommendationType.SAVING,
        title="Build an emergency fund",
        description=(
            "Your income varies from month to month. An emergency fund covering several "
            "months of expenses protects you in the lean months."
        ),
        potential_impact=ctx.prediction.total_predicted_expense * EMERGENCY_FUND_SHARE,
        difficulty=Difficulty.MEDIUM,
        time_frame=TimeFrame.LONG_TERM,
        relevance_score=RELEVANCE_EMERGENCY_FUND,
    )]


def seasonal_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Plan ahead for the strongest seasonal category."""
    if not ctx.patterns.has_seasonal_spending or not ctx.patterns.seasonal_category_ids:
        return []

    category_id = ctx.patterns.seasonal_category_ids[0]
    category = ctx.category_map.get(category_id)
    if category is None:
        return []

    return [FinancialRecommendation(
        id=f"plan-seasonal-{category_id}",
        type=RecommendationType.BUDGET,
        title=f"Plan ahead for seasonal {category.name} spending",
        description=(
            f"Your {category.name} spending follows a seasonal pattern. Setting money aside "
            f"ahead of the expensive months smooths out your budget."
        ),
        potential_impact=ctx.category_spending.get(category_id, 0.0) * SEASONAL_SAVING_SHARE,
        difficulty=Difficulty.EASY,
        time_frame=TimeFrame.SHORT_TERM,
        relevance_score=RELEVANCE_SEASONAL,
        related_category_ids=[category_id],
    )]


def insufficient_history_rule(ctx: RecommendationContext) -> List[FinancialRecommendation]:
    """Short history: start with a simple monthly budget."""
    months = count_distinct_months(ctx.transactions)
    expense_count = sum(1 for t in ctx.transactions if t.is_expense)
    if (months >= ctx.settings.history_min_months
            and expense_count >= ctx.settings.history_min_expense_transactions):
        return []

    return [FinancialRecommendation(
        id="establish-budget",
        type=RecommendationType.BUDGET,
        title="Establish a monthly budget",
        description=(
            "There is only a short spending history so far. Setting a monthly budget now "
            "gives you a baseline to track against."
        ),
        potential_impact=ctx.prediction.total_predicted_expense * BUDGET_SAVING_SHARE,
        difficulty=Difficulty.EASY,
        time_frame=TimeFrame.SHORT_TERM,
        relevance_score=RELEVANCE_ESTABLISH_BUDGET,
    )]


RULES: List[Callable[[RecommendationContext], List[FinancialRecommendation]]] = [
    overspend_rule,
    savings_rate_rule,
    negative_balance_rule,
    investment_rule,
    repeated_anomalies_rule,
    emergency_fund_rule,
    seasonal_rule,
    insufficient_history_rule,
]


def generic_recommendations() -> List[FinancialRecommendation]:
    """Fixed fallback set; impacts are unknown and reported as 0."""
    return [
        FinancialRecommendation(
            id="create-budget",
            type=RecommendationType.BUDGET,
            title="Create a monthly budget",
            description="A detailed budget helps you control spending and plan your finances.",
            potential_impact=0.0,
            difficulty=Difficulty.MEDIUM,
            time_frame=TimeFrame.IMMEDIATE,
            relevance_score=0.95,
        ),
        FinancialRecommendation(
            id="reduce-expenses",
            type=RecommendationType.SPENDING,
            title="Cut unnecessary expenses",
            description="Find and reduce non-essential spending to improve your monthly balance.",
            potential_impact=0.0,
            difficulty=Difficulty.EASY,
            time_frame=TimeFrame.IMMEDIATE,
            relevance_score=0.90,
        ),
        FinancialRecommendation(
            id="save-more",
            type=RecommendationType.SAVING,
            title="Increase your savings rate",
            description="Saving a larger share of your income gets you to your goals faster.",
            potential_impact=0.0,
            difficulty=Difficulty.MEDIUM,
            time_frame=TimeFrame.SHORT_TERM,
            relevance_score=0.85,
        ),
    ]


def rank_recommendations(recommendations: Sequence[FinancialRecommendation]) -> List[FinancialRecommendation]:
    """Relevance descending, ties by id."""
    return sorted(recommendations, key=lambda r: (-r.relevance_score, r.id))


def generate_recommendations(prediction: SpendingPrediction,
                             anomalies: Sequence[SpendingAnomaly],
                             patterns: SpendingPatterns,
                             transactions: Sequence[TransactionRecord],
                             categories: Sequence[CategoryInfo],
                             settings: Optional[Settings] = None) -> RecommendationResult:
    """Run every rule and rank the output.

    Falls back to ``generic_recommendations()`` when a rule raises or when no
    rule fires.
    """
    settings = settings or get_settings()

    try:
        ctx = RecommendationContext(
            prediction=prediction,
            anomalies=list(anomalies),
            patterns=patterns,
            transactions=list(transactions),
            category_map=build_category_map(categories),
            settings=settings,
        )
        recommendations: List[FinancialRecommendation] = []
        for rule in RULES:
            recommendations.extend(rule(ctx))
    except Exception as e:
        logger.error(
            "Recommendation generation failed, using generic recommendations",
            error_type=type(e).__name__,
            error=str(e)
        )
        return RecommendationResult(
            recommendations=generic_recommendations(),
            used_fallback=True,
            error=str(e),
        )

    if not recommendations:
        logger.info("No recommendation rule fired, using generic recommendations")
        return RecommendationResult(recommendations=generic_recommendations(), used_fallback=True)

    return RecommendationResult(recommendations=rank_recommendations(recommendations))
