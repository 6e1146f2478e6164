"""
History window loading: the only place that talks to the transaction store
and the category directory.
"""

import inspect
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..models.financial import CategoryInfo, TransactionRecord
from ..utils.exceptions import DataUnavailableError, ValidationError as AppValidationError
from .preprocessing import months_before

logger = structlog.get_logger()

RawRecord = Union[TransactionRecord, Dict[str, Any]]
RawCategory = Union[CategoryInfo, Dict[str, Any]]

# Collaborator contracts; plain functions or coroutine functions are accepted
TransactionLoader = Callable[[str, Optional[date]], Union[Iterable[RawRecord], Awaitable[Iterable[RawRecord]]]]
CategoryLoader = Callable[[str], Union[Iterable[RawCategory], Awaitable[Iterable[RawCategory]]]]


async def _call_collaborator(source: str, user_id: str, func: Callable, *args) -> List[Any]:
    """Invoke a collaborator once, awaiting it when needed; failures become DataUnavailableError."""
    try:
        result = func(user_id, *args)
        if inspect.isawaitable(result):
            result = await result
        # lazy iterables may fail while being consumed
        rows = [] if result is None else list(result)
    except DataUnavailableError:
        raise
    except Exception as e:
        logger.error(
            "Collaborator request failed",
            source=source,
            user_id=user_id,
            error_type=type(e).__name__,
            error=str(e)
        )
        raise DataUnavailableError(
            message=f"Could not load data from {source}",
            source=source,
            details=[f"Source: {source}", f"{type(e).__name__}: {e}"]
        ) from e

    return rows


def coerce_transactions(rows: Iterable[RawRecord], source: str = "transaction_store") -> List[TransactionRecord]:
    """Validate raw store rows into TransactionRecord instances."""
    records = []
    for row in rows:
        if isinstance(row, TransactionRecord):
            records.append(row)
            continue
        try:
            records.append(TransactionRecord.model_validate(row))
        except PydanticValidationError as e:
            logger.error("Malformed transaction row", source=source, error=str(e))
            raise DataUnavailableError(
                message="Transaction store returned a malformed record",
                source=source,
                details=[f"Source: {source}", str(e)]
            ) from e
    return records


def coerce_categories(rows: Iterable[RawCategory], source: str = "category_directory") -> List[CategoryInfo]:
    """Validate raw directory rows into CategoryInfo instances."""
    categories = []
    for row in rows:
        if isinstance(row, CategoryInfo):
            categories.append(row)
            continue
        try:
            categories.append(CategoryInfo.model_validate(row))
        except PydanticValidationError as e:
            logger.error("Malformed category row", source=source, error=str(e))
            raise DataUnavailableError(
                message="Category directory returned a malformed record",
                source=source,
                details=[f"Source: {source}", str(e)]
            ) from e
    return categories


async def load_history(user_id: str,
                       months_back: int,
                       load_transactions: TransactionLoader,
                       today: Optional[date] = None) -> List[TransactionRecord]:
    """Load ``months_back`` months of transactions, with no upper bound on the date.

    No retry: failures propagate as DataUnavailableError.
    """
    if months_back < 1:
        raise AppValidationError(
            message="History window must be at least one month",
            details=[f"months_back={months_back}"]
        )

    today = today or date.today()
    since_date = months_before(today, months_back)

    rows = await _call_collaborator("transaction_store", user_id, load_transactions, since_date)
    transactions = coerce_transactions(rows)

    logger.debug(
        "History window loaded",
        user_id=user_id,
        months_back=months_back,
        since_date=since_date.isoformat(),
        transaction_count=len(transactions)
    )
    return transactions


async def load_category_directory(user_id: str, load_categories: CategoryLoader) -> List[CategoryInfo]:
    """Load the user's categories from the directory."""
    rows = await _call_collaborator("category_directory", user_id, load_categories)
    return coerce_categories(rows)


def slice_window(transactions: Sequence[TransactionRecord],
                 months_back: int,
                 today: date) -> List[TransactionRecord]:
    """In-memory subset of ``transactions`` dated on or after the window start."""
    since_date = months_before(today, months_back)
    return [t for t in transactions if t.transaction_date >= since_date]


def build_category_map(categories: Sequence[CategoryInfo]) -> Dict[str, CategoryInfo]:
    """Category id -> category, built once per run. Later duplicates win."""
    return {category.id: category for category in categories}
