"""
Numeric Guards

Helpers that keep NaN/Inf out of confidence scores and ratios.
"""

import math
from typing import Iterable, Sequence

from emfad.utils.constants import CONDUCTIVITY_LOG_FLOOR


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]; NaN maps to low."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def clamp_unit(value: float) -> float:
    """Clamp into [0.0, 1.0]. NaN -> 0.0, +inf -> 1.0, -inf -> 0.0."""
    return clamp(value, 0.0, 1.0)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Division that returns `default` instead of raising or producing NaN/Inf.

    Args:
        numerator: 분자
        denominator: 분모
        default: denominator가 0이거나 결과가 유한하지 않을 때 반환할 값

    Returns:
        numerator / denominator, or default
    """
    if denominator == 0 or math.isnan(denominator):
        return default
    result = numerator / denominator
    if not math.isfinite(result):
        return default
    return result


def safe_log10(value: float, floor: float = CONDUCTIVITY_LOG_FLOOR) -> float:
    """log10 of |value| floored at `floor` (conductivities may be 0 or slightly negative)."""
    magnitude = abs(value)
    if math.isnan(magnitude):
        magnitude = floor
    return math.log10(max(magnitude, floor))


def ratio_balance(a: float, b: float) -> float:
    """min(|a|,|b|) / max(|a|,|b|) in [0, 1]; 0.0 when both are zero."""
    lo, hi = sorted((abs(a), abs(b)))
    return clamp_unit(safe_divide(lo, hi, default=0.0))


def all_finite(values: Iterable[float]) -> bool:
    return all(math.isfinite(v) for v in values)


def weighted_sum(terms: Sequence[float], weights: Sequence[float]) -> float:
    """Σ w_i·t_i, each term clamped to [0, 1] first; result clamped as well."""
    if len(terms) != len(weights):
        raise ValueError("terms and weights must have the same length")
    total = sum(w * clamp_unit(t) for t, w in zip(terms, weights))
    return clamp_unit(total)
