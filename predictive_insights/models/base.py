"""
Base models for all Pydantic models in the engine.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ImmutableModel(BaseModel):
    """Frozen model that rejects NaN and infinite floats."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, use_enum_values=False)


class TimestampedModel(ImmutableModel):
    """Immutable model stamped with its generation time."""

    generated_at: datetime = Field(default_factory=datetime.utcnow)
