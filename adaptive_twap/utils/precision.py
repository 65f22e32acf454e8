"""
Precision helpers for Hyperliquid tick/lot formatting.

Prices: ≤5 significant figures and ≤(MAX_DECIMALS - szDecimals) decimal
places; whole-number prices are always accepted. Sizes: ≤szDecimals places.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Iterable, Optional

MAX_DECIMALS_PERP = 6
MAX_DECIMALS_SPOT = 8
MAX_SIG_FIGS = 5


@dataclass(frozen=True)
class PrecisionCheck:
    """Outcome of validating a venue-formatted string."""

    is_valid: bool
    reason: Optional[str] = None


def max_price_decimals(sz_decimals: int, max_decimals: int = MAX_DECIMALS_PERP) -> int:
    """Decimal places allowed in a price for an asset with `sz_decimals`."""
    return max(0, max_decimals - sz_decimals)


def _to_plain(d: Decimal) -> str:
    # format(..., "f") never emits exponent notation
    s = format(d, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


def format_price(
    px: float,
    sz_decimals: int,
    max_decimals: int = MAX_DECIMALS_PERP,
    max_sig_figs: int = MAX_SIG_FIGS,
) -> str:
    """
    Format price per Hyperliquid rules.

    Rules:
    - whole numbers pass through untouched
    - ≤max_sig_figs significant figures
    - ≤(max_decimals - szDecimals) decimal places

    A price that would round to zero at the allowed precision is raised to
    the smallest representable tick.

    Args:
        px: Price
        sz_decimals: Asset szDecimals
        max_decimals: MAX_DECIMALS (6 for perps, 8 for spot)
        max_sig_figs: Significant-figure cap

    Returns:
        Formatted price string
    """
    if px is None or not math.isfinite(px) or px <= 0:
        raise ValueError(f"price must be finite and > 0, got {px}")

    if float(px).is_integer():
        return str(int(px))

    max_dp = max_price_decimals(sz_decimals, max_decimals)
    d = Decimal(repr(float(px)))

    # Round to significant figures first
    sig_exp = d.adjusted() - (max_sig_figs - 1)
    d = d.quantize(Decimal(1).scaleb(sig_exp), rounding=ROUND_HALF_UP)

    # Then clamp decimals
    tick = Decimal(1).scaleb(-max_dp)
    if d.as_tuple().exponent < -max_dp:
        d = d.quantize(tick, rounding=ROUND_HALF_UP)
    if d <= 0:
        d = tick

    return _to_plain(d)


def validate_price(
    price_str: str,
    sz_decimals: int,
    max_decimals: int = MAX_DECIMALS_PERP,
    max_sig_figs: int = MAX_SIG_FIGS,
) -> PrecisionCheck:
    """
    Validate a formatted price string against the same rules `format_price`
    enforces. Whole numbers are valid regardless of significant figures.
    """
    try:
        d = Decimal(str(price_str).strip())
    except (InvalidOperation, ValueError):
        return PrecisionCheck(False, f"Unparseable price: {price_str!r}")

    if not d.is_finite() or d <= 0:
        return PrecisionCheck(False, f"Price must be positive: {price_str!r}")

    if d == d.to_integral_value():
        return PrecisionCheck(True)

    max_dp = max_price_decimals(sz_decimals, max_decimals)
    decimal_places = max(0, -d.as_tuple().exponent)
    if decimal_places > max_dp:
        return PrecisionCheck(False, f"Too many decimal places: {decimal_places} > {max_dp}")

    sig_figs = len(d.normalize().as_tuple().digits)
    if sig_figs > max_sig_figs:
        return PrecisionCheck(False, f"Too many significant figures: {sig_figs} > {max_sig_figs}")

    return PrecisionCheck(True)


def to_decimal(x: float) -> Decimal:
    """Exact decimal value of a float's shortest repr (0.35 -> Decimal("0.35"))."""
    return Decimal(repr(float(x)))


def remaining_size(total: float, executed: Iterable[float], sz_decimals: int) -> float:
    """
    Quantity left to execute, accumulated in decimal on the lot grid.

    Summing executed sizes as binary floats drifts (0.35 * 3 != 1.05), so the
    remainder is computed from exact decimal values and converted once.
    """
    done = sum((to_decimal(x) for x in executed), Decimal(0))
    left = to_decimal(total) - done
    if left <= 0:
        return 0.0
    q = Decimal(1).scaleb(-max(0, sz_decimals))
    return float(left.quantize(q, rounding=ROUND_HALF_UP))


def round_size(sz: float, sz_decimals: int, rounding: str = ROUND_HALF_UP) -> float:
    """
    Round a size to the asset's lot precision.

    Args:
        sz: Size (quantity)
        sz_decimals: Asset szDecimals
        rounding: decimal rounding mode (nearest by default, ROUND_DOWN to floor)

    Returns:
        Rounded size (0.0 for non-finite or non-positive input)
    """
    if sz is None or not math.isfinite(sz) or sz <= 0:
        return 0.0
    q = Decimal(1).scaleb(-max(0, sz_decimals))
    return float(Decimal(repr(float(sz))).quantize(q, rounding=rounding))


def format_size(sz: float, sz_decimals: int) -> str:
    """
    Format size per lot precision (truncating surplus digits).

    Args:
        sz: Size (quantity)
        sz_decimals: Asset szDecimals

    Returns:
        Formatted size string
    """
    if sz is None or not math.isfinite(sz) or sz < 0:
        raise ValueError(f"size must be finite and >= 0, got {sz}")
    q = Decimal(1).scaleb(-max(0, sz_decimals))
    return _to_plain(Decimal(repr(float(sz))).quantize(q, rounding=ROUND_DOWN))


def validate_size(size_str: str, sz_decimals: int) -> PrecisionCheck:
    """Validate a formatted size string against szDecimals."""
    try:
        d = Decimal(str(size_str).strip())
    except (InvalidOperation, ValueError):
        return PrecisionCheck(False, f"Unparseable size: {size_str!r}")
    if not d.is_finite() or d <= 0:
        return PrecisionCheck(False, f"Size must be positive: {size_str!r}")
    decimal_places = max(0, -d.as_tuple().exponent)
    if decimal_places > sz_decimals:
        return PrecisionCheck(
            False, f"Size has too many decimal places: {decimal_places} > {sz_decimals}"
        )
    return PrecisionCheck(True)
