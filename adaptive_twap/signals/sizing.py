"""
Dynamic slice sizing from VWAP deviation.

    deviation  = (VWAP - price) / VWAP
    multiplier = clamp(1 + α·deviation, min_multiplier, max_multiplier)
    size       = base × multiplier

Price below VWAP gives a larger slice, price above VWAP a smaller one. The
sign convention is the same for buys and sells.
"""

import logging
from dataclasses import dataclass

from adaptive_twap.utils.math_helpers import clamp, is_finite_positive

logger = logging.getLogger(__name__)

NEUTRAL_BAND_PCT = 0.5  # |deviation| below this is reported as neutral


@dataclass(frozen=True)
class SizingDecision:
    """Result of one sizing call."""

    base_size: float
    adjusted_size: float
    multiplier: float
    price_deviation_pct: float  # Positive = price below VWAP
    reasoning: str


def compute_slice_size(
    base_size: float,
    current_price: float,
    vwap: float,
    alpha: float,
    max_multiplier: float,
    min_multiplier: float,
) -> SizingDecision:
    """
    VWAP-adjusted slice size.

    Args:
        base_size: Size from the TWAP schedule
        current_price: Current market price
        vwap: Reference VWAP
        alpha: Sensitivity factor
        max_multiplier: Upper multiplier bound
        min_multiplier: Lower multiplier bound

    Returns:
        SizingDecision; degenerate inputs return the base size with multiplier 1
    """
    if not is_finite_positive(base_size, current_price, vwap):
        logger.warning(
            "[Sizer] Invalid inputs: base=%s price=%s vwap=%s, using base size",
            base_size, current_price, vwap,
        )
        safe_base = base_size if is_finite_positive(base_size) else 0.0
        return SizingDecision(
            base_size=safe_base,
            adjusted_size=safe_base,
            multiplier=1.0,
            price_deviation_pct=0.0,
            reasoning="Invalid input data - using base size",
        )

    deviation = (vwap - current_price) / vwap
    deviation_pct = deviation * 100.0

    multiplier = clamp(1.0 + alpha * deviation, min_multiplier, max_multiplier)
    adjusted = base_size * multiplier

    if abs(deviation_pct) < NEUTRAL_BAND_PCT:
        reasoning = f"Price ≈ VWAP ({deviation_pct:.2f}%) - neutral sizing ({multiplier:.3f}x)"
    elif deviation > 0:
        reasoning = f"Price {deviation_pct:.2f}% below VWAP - INCREASED volume ({multiplier:.3f}x)"
    else:
        reasoning = f"Price {abs(deviation_pct):.2f}% above VWAP - REDUCED volume ({multiplier:.3f}x)"

    logger.debug("[Sizer] %s base=%.6f adjusted=%.6f", reasoning, base_size, adjusted)
    return SizingDecision(
        base_size=base_size,
        adjusted_size=adjusted,
        multiplier=multiplier,
        price_deviation_pct=deviation_pct,
        reasoning=reasoning,
    )
