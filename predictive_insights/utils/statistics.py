"""
Numerical helpers shared by the analysis services.

Every helper guards its undefined case (empty sample, zero denominator,
non-finite result) and returns ``None`` or an explicit fallback, so NaN never
leaves this module.
"""

import math
from typing import Optional, Sequence

import numpy as np
from sklearn.linear_model import LinearRegression


def is_finite(value: Optional[float]) -> bool:
    """True for a real, finite number."""
    return value is not None and math.isfinite(value)


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def safe_divide(numerator: float, denominator: float,
                fallback: Optional[float] = None) -> Optional[float]:
    """Divide, returning ``fallback`` for a zero denominator or a non-finite result."""
    if denominator == 0 or not is_finite(denominator) or not is_finite(numerator):
        return fallback
    result = numerator / denominator
    return result if math.isfinite(result) else fallback


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, ``None`` for an empty sample."""
    if len(values) == 0:
        return None
    result = float(np.mean(np.asarray(values, dtype=float)))
    return result if math.isfinite(result) else None


def population_std(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation (ddof=0), ``None`` for an empty sample."""
    if len(values) == 0:
        return None
    result = float(np.std(np.asarray(values, dtype=float)))
    return result if math.isfinite(result) else None


def sample_std(values: Sequence[float]) -> Optional[float]:
    """Sample standard deviation (ddof=1), ``None`` below two values."""
    if len(values) < 2:
        return None
    result = float(np.std(np.asarray(values, dtype=float), ddof=1))
    return result if math.isfinite(result) else None


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    """Population std divided by mean; ``None`` when the mean is zero or the sample empty."""
    avg = mean(values)
    std = population_std(values)
    if avg is None or std is None:
        return None
    return safe_divide(std, avg)


def ols_slope(values: Sequence[float]) -> Optional[float]:
    """Least-squares slope of ``values`` against their index 0..n-1.

    Needs at least two points.
    """
    if len(values) < 2:
        return None
    x = np.arange(len(values), dtype=float).reshape(-1, 1)
    y = np.asarray(values, dtype=float)
    model = LinearRegression()
    model.fit(x, y)
    slope = float(model.coef_[0])
    return slope if math.isfinite(slope) else None


def normalized_slope(values: Sequence[float], bound: Optional[float] = None) -> Optional[float]:
    """OLS slope divided by the series mean, optionally clamped to ``[-bound, bound]``.

    ``None`` when the slope is undefined or the mean is zero.
    """
    slope = ols_slope(values)
    avg = mean(values)
    if slope is None or avg is None:
        return None
    normalized = safe_divide(slope, avg)
    if normalized is None:
        return None
    if bound is not None:
        normalized = clamp(normalized, -bound, bound)
    return normalized
