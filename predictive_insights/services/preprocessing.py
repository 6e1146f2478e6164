"""
Preprocessing of transaction records into pandas time series and groupings
used by the predictor, the anomaly detector and the pattern analyzer.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..models.financial import TransactionRecord
from ..utils.constants import TransactionKind


def transactions_to_frame(transactions: Sequence[TransactionRecord]) -> pd.DataFrame:
    """Build a DataFrame with one row per transaction and a monthly period column."""
    if not transactions:
        return pd.DataFrame()

    df = pd.DataFrame([
        {
            "id": t.id,
            "amount": t.value,
            "category_id": t.category_id,
            "date": t.transaction_date,
            "kind": t.kind.value,
            "description": t.description,
        }
        for t in transactions
    ])
    df["date"] = pd.to_datetime(df["date"])
    df["amount"] = df["amount"].astype(float)
    df["month"] = df["date"].dt.to_period("M")
    return df


def monthly_series(transactions: Sequence[TransactionRecord], how: str = "sum") -> List[float]:
    """Chronological per-month totals (``how="sum"``) or averages (``how="mean"``).

    Only months that contain at least one of the given transactions appear.
    """
    df = transactions_to_frame(transactions)
    if df.empty:
        return []

    grouped = df.groupby("month")["amount"]
    series = grouped.mean() if how == "mean" else grouped.sum()
    return [float(value) for value in series.sort_index().tolist()]


def monthly_income_totals(transactions: Sequence[TransactionRecord]) -> List[float]:
    """Income per month over every month that has any transaction (0 if no income)."""
    df = transactions_to_frame(transactions)
    if df.empty:
        return []

    df["income"] = df["amount"].where(df["kind"] == TransactionKind.INCOME.value, 0.0)
    series = df.groupby("month")["income"].sum().sort_index()
    return [float(value) for value in series.tolist()]


def count_distinct_months(transactions: Sequence[TransactionRecord]) -> int:
    """Number of calendar months in which at least one transaction occurred."""
    return len({(t.transaction_date.year, t.transaction_date.month) for t in transactions})


def group_by_category(transactions: Sequence[TransactionRecord],
                      kind: Optional[TransactionKind] = None) -> Dict[str, List[TransactionRecord]]:
    """Group transactions by category id, optionally keeping a single kind.

    Keys are returned in sorted order so downstream merges are deterministic.
    """
    groups: Dict[str, List[TransactionRecord]] = defaultdict(list)
    for transaction in transactions:
        if kind is not None and transaction.kind != kind:
            continue
        groups[transaction.category_id].append(transaction)
    return {category_id: groups[category_id] for category_id in sorted(groups)}


def months_before(reference: date, months: int) -> date:
    """Calendar date ``months`` months before ``reference`` (day clipped to month end)."""
    return (pd.Timestamp(reference) - pd.DateOffset(months=months)).date()


def previous_month(reference: date) -> Tuple[int, int]:
    """(year, month) of the calendar month before ``reference``."""
    if reference.month == 1:
        return reference.year - 1, 12
    return reference.year, reference.month - 1


def next_period(reference: date) -> str:
    """``YYYY-MM`` label of the calendar month after ``reference``."""
    if reference.month == 12:
        return f"{reference.year + 1}-01"
    return f"{reference.year}-{reference.month + 1:02d}"
