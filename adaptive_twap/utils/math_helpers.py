"""
Mathematical helper functions.

Clamping, finiteness guards, weighted means and summary statistics.
"""

import math
from typing import Dict, Optional, Sequence

import numpy as np


def is_finite_positive(*values: Optional[float]) -> bool:
    """True when every value is a finite number strictly greater than zero."""
    for v in values:
        if v is None:
            return False
        try:
            f = float(v)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(f) or f <= 0:
            return False
    return True


def clamp(x: float, lo: float, hi: float) -> float:
    """
    Clamp x into [lo, hi].

    NaN clamps to 1.0 (the neutral multiplier) when 1.0 lies in the range,
    otherwise to lo.
    """
    if x is None or math.isnan(x):
        return 1.0 if lo <= 1.0 <= hi else lo
    return max(lo, min(hi, x))


def weighted_average(values: Sequence[float], weights: Sequence[float]) -> float:
    """
    Weighted mean of values.

    Args:
        values: Observations (e.g. fill prices)
        weights: Non-negative weights (e.g. filled sizes)

    Returns:
        Weighted mean, or 0.0 when total weight is zero
    """
    v = np.asarray(values, dtype=float)
    w = np.asarray(weights, dtype=float)
    if v.size == 0 or w.size != v.size:
        return 0.0
    total = float(np.sum(w))
    if total <= 0:
        return 0.0
    return float(np.dot(v, w) / total)


def describe(values: Sequence[float]) -> Dict[str, float]:
    """Mean / max / min of a sample (zeros when empty)."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return {"mean": 0.0, "max": 0.0, "min": 0.0}
    return {
        "mean": float(np.mean(arr)),
        "max": float(np.max(arr)),
        "min": float(np.min(arr)),
    }


def pct_change(value: float, reference: float) -> float:
    """(value - reference) / reference in percent; 0.0 for a non-positive reference."""
    if not is_finite_positive(reference):
        return 0.0
    return (value - reference) / reference * 100.0
