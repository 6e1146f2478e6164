"""
Financial health metrics and recurring expense detection over the
prediction window.
"""

from collections import defaultdict
from typing import Dict, List, Sequence

from ..models.financial import CategoryInfo, TransactionRecord
from ..models.insights import FinancialHealthMetrics, RecurringExpense
from ..utils.constants import PLACEHOLDER_CATEGORY_NAME, RECURRING_MIN_OCCURRENCES
from ..utils.statistics import clamp, mean, safe_divide
from .history_loader import build_category_map

# Score weights; budget adherence is fixed at 100 because budgets are not an input
SAVINGS_WEIGHT = 0.4
RATIO_WEIGHT = 0.4
ADHERENCE_WEIGHT = 0.2
BUDGET_ADHERENCE = 100.0

GRADE_THRESHOLDS = [
    (90, "A+"),
    (85, "A"),
    (80, "A-"),
    (75, "B+"),
    (70, "B"),
    (65, "B-"),
    (60, "C+"),
    (55, "C"),
    (50, "C-"),
    (45, "D+"),
    (40, "D"),
]


def grade_for(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def calculate_financial_health(transactions: Sequence[TransactionRecord]) -> FinancialHealthMetrics:
    """Score 0-100 from the savings rate and the expense-to-income ratio."""
    total_income = sum(t.value for t in transactions if t.is_income)
    total_expense = sum(t.value for t in transactions if t.is_expense)

    if total_income > 0:
        savings_rate = clamp((total_income - total_expense) / total_income * 100, 0.0, 100.0)
        ratio = safe_divide(total_expense, total_income, fallback=1.0)
    else:
        savings_rate = 0.0
        ratio = 1.0

    score = round(
        savings_rate * SAVINGS_WEIGHT
        + (1 - min(1.0, ratio)) * 100 * RATIO_WEIGHT
        + BUDGET_ADHERENCE * ADHERENCE_WEIGHT
    )
    score = int(clamp(score, 0, 100))

    return FinancialHealthMetrics(
        score=score,
        grade=grade_for(score),
        savings_rate=savings_rate,
        expense_to_income_ratio=ratio,
        total_income=total_income,
        total_expense=total_expense,
    )


def _normalize_description(description: str) -> str:
    return " ".join(description.lower().split())


def identify_recurring_expenses(transactions: Sequence[TransactionRecord],
                                categories: Sequence[CategoryInfo],
                                min_occurrences: int = RECURRING_MIN_OCCURRENCES) -> List[RecurringExpense]:
    """Expenses whose normalized description repeats at least ``min_occurrences`` times.

    Sorted by occurrences, then average amount (both descending).
    """
    category_map = build_category_map(categories)
    groups: Dict[str, List[TransactionRecord]] = defaultdict(list)
    for transaction in transactions:
        if not transaction.is_expense:
            continue
        key = _normalize_description(transaction.description)
        if key:
            groups[key].append(transaction)

    recurring = []
    for key, expenses in groups.items():
        if len(expenses) < min_occurrences:
            continue
        first = min(expenses, key=lambda t: (t.transaction_date, t.id))
        category = category_map.get(first.category_id)
        recurring.append(RecurringExpense(
            description=key[:1].upper() + key[1:],
            category_id=first.category_id,
            category_name=category.name if category else PLACEHOLDER_CATEGORY_NAME,
            occurrences=len(expenses),
            average_amount=mean([t.value for t in expenses]) or 0.0,
        ))

    recurring.sort(key=lambda r: (-r.occurrences, -r.average_amount, r.description))
    return recurring
