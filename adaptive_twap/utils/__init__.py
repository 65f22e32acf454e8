"""Utilities: precision helpers, math functions."""

from adaptive_twap.utils.precision import (
    format_price,
    format_size,
    round_size,
    validate_price,
    validate_size,
)
from adaptive_twap.utils.math_helpers import clamp, is_finite_positive, weighted_average

__all__ = [
    "format_price",
    "format_size",
    "round_size",
    "validate_price",
    "validate_size",
    "clamp",
    "is_finite_positive",
    "weighted_average",
]
