"""
Input domain models: transaction records and categories as handed over by
the transaction store and the category directory.
"""
from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, Field, validator

from ..utils.constants import DEFAULT_CATEGORY_COLOR, TransactionKind
from .base import ImmutableModel


class TransactionRecord(ImmutableModel):
    """A single income or expense, read-only for the duration of a run."""

    id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Always positive; the sign lives in ``kind``")
    description: str = Field(default="", max_length=500)
    category_id: str = Field(
        ...,
        validation_alias=AliasChoices("category_id", "categoryId", "category"),
    )
    transaction_date: date = Field(
        ...,
        validation_alias=AliasChoices("transaction_date", "date"),
    )
    kind: TransactionKind = Field(
        ...,
        validation_alias=AliasChoices("kind", "type", "transaction_type"),
    )

    @validator("transaction_date", pre=True)
    def truncate_datetime(cls, v):
        """Datetimes are reduced to their calendar date."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @validator("id", "category_id", pre=True)
    def coerce_identifier(cls, v):
        """Stores may hand over numeric or UUID ids."""
        if v is None:
            return v
        return str(v)

    @property
    def value(self) -> float:
        """Amount as a float for numerical work."""
        return float(self.amount)

    @property
    def is_expense(self) -> bool:
        return self.kind == TransactionKind.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.kind == TransactionKind.INCOME


class CategoryInfo(ImmutableModel):
    """Category as returned by the category directory."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR)

    @validator("id", pre=True)
    def coerce_identifier(cls, v):
        """Directories may hand over numeric or UUID ids."""
        if v is None:
            return v
        return str(v)

    @validator("color", pre=True)
    def default_color(cls, v):
        """Missing colors fall back to neutral grey."""
        return v or DEFAULT_CATEGORY_COLOR
