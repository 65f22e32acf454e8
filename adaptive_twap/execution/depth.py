"""
Order-book depth analysis.

Spread and depth statistics, book-walk slippage estimates, and the maximum
size executable within a slippage tolerance. Pure functions over a snapshot;
a missing snapshot is treated as an empty book.
"""

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from adaptive_twap.data.models import OrderBookSnapshot, PriceLevel

Side = Literal["buy", "sell"]

SAFETY_MARGIN = 0.10  # Subtracted from the computed max size


@dataclass(frozen=True)
class DepthAnalysis:
    """Two-sided book summary."""

    total_bid_volume: float
    total_ask_volume: float
    bid_depth: int  # Number of bid levels
    ask_depth: int
    spread: float
    spread_pct: float
    mid_price: float
    best_bid: float = 0.0
    best_ask: float = 0.0


@dataclass(frozen=True)
class SlippageEstimate:
    """Book-walk estimate for a hypothetical order."""

    estimated_price: float  # Size-weighted average fill
    slippage_pct: float  # |avg - best| / best × 100; 100 when the book runs out
    depth_levels_consumed: int
    would_execute: bool


@dataclass(frozen=True)
class VolumeCheck:
    """Whether the book can absorb a size within tolerance."""

    can_handle: bool
    reason: Optional[str] = None
    suggested_max_volume: Optional[float] = None


def _levels(book: Optional[OrderBookSnapshot], side: Side) -> Sequence[PriceLevel]:
    if book is None:
        return ()
    return book.side_levels(side)


def analyze_depth(book: Optional[OrderBookSnapshot]) -> DepthAnalysis:
    """
    Summarize both sides of a snapshot.

    Spread and mid are zero unless both sides are present.
    """
    bids = book.bids if book is not None else ()
    asks = book.asks if book is not None else ()

    best_bid = bids[0].price if bids else 0.0
    best_ask = asks[0].price if asks else 0.0

    if best_bid > 0 and best_ask > 0:
        spread = best_ask - best_bid
        mid = (best_ask + best_bid) / 2.0
        spread_pct = spread / mid * 100.0
    else:
        spread, mid, spread_pct = 0.0, 0.0, 0.0

    return DepthAnalysis(
        total_bid_volume=sum(l.size for l in bids),
        total_ask_volume=sum(l.size for l in asks),
        bid_depth=len(bids),
        ask_depth=len(asks),
        spread=spread,
        spread_pct=spread_pct,
        mid_price=mid,
        best_bid=best_bid,
        best_ask=best_ask,
    )


def estimate_slippage(book: Optional[OrderBookSnapshot], size: float, side: Side) -> SlippageEstimate:
    """
    Walk the opposing side of the book best price first.

    Args:
        book: Depth snapshot (None = empty)
        size: Order size (base units)
        side: "buy" consumes asks, "sell" consumes bids

    Returns:
        SlippageEstimate
    """
    levels = _levels(book, side)

    if size <= 0:
        best = levels[0].price if levels else 0.0
        return SlippageEstimate(best, 0.0, 0, True)

    if not levels:
        return SlippageEstimate(0.0, 100.0, 0, False)

    remaining = size
    total_cost = 0.0
    consumed = 0

    for level in levels:
        if remaining <= 0:
            break
        take = min(remaining, level.size)
        if take <= 0:
            continue
        total_cost += take * level.price
        remaining -= take
        consumed += 1

    if remaining > 1e-12:
        return SlippageEstimate(0.0, 100.0, consumed, False)

    best = levels[0].price
    avg = total_cost / size
    slippage_pct = abs(avg - best) / best * 100.0
    return SlippageEstimate(avg, slippage_pct, consumed, True)


def max_size_within_slippage(
    book: Optional[OrderBookSnapshot],
    side: Side,
    max_slippage_pct: float,
    safety_margin: float = SAFETY_MARGIN,
) -> float:
    """
    Largest size whose average fill stays within the tolerance, less a
    safety margin.

    Whole levels are taken while the running average stays inside the limit;
    the first level that would breach it is taken partially, up to the exact
    size at which the average reaches the limit.
    """
    levels = _levels(book, side)
    if not levels or max_slippage_pct < 0:
        return 0.0

    best = levels[0].price
    tol = max_slippage_pct / 100.0
    limit_avg = best * (1.0 + tol) if side == "buy" else best * (1.0 - tol)

    filled = 0.0
    cost = 0.0
    for level in levels:
        if level.size <= 0:
            continue
        new_filled = filled + level.size
        new_avg = (cost + level.size * level.price) / new_filled
        within = new_avg <= limit_avg if side == "buy" else new_avg >= limit_avg
        if within:
            filled, cost = new_filled, cost + level.size * level.price
            continue
        # Partial take q solving (cost + q·p) / (filled + q) = limit_avg
        denom = level.price - limit_avg
        if denom != 0:
            q = (limit_avg * filled - cost) / denom
            if q > 0:
                filled += min(q, level.size)
        break

    return max(0.0, filled * (1.0 - safety_margin))


def check_volume_constraint(
    book: Optional[OrderBookSnapshot],
    size: float,
    side: Side,
    max_slippage_pct: float,
    max_volume_pct: float = 10.0,
) -> VolumeCheck:
    """
    Check a size against book depth and slippage tolerance.

    1. Reject sizes above `max_volume_pct` of the opposing side's total depth,
       suggesting that share of depth.
    2. Reject sizes whose estimated slippage exceeds `max_slippage_pct`,
       suggesting the largest size within tolerance.
    """
    if size <= 0:
        return VolumeCheck(True)

    levels = _levels(book, side)
    if not levels:
        return VolumeCheck(False, "No liquidity on the opposing side of the book", 0.0)

    total_depth = sum(l.size for l in levels)
    max_by_depth = total_depth * max_volume_pct / 100.0
    if size > max_by_depth:
        return VolumeCheck(
            False,
            f"Order size {size:g} exceeds {max_volume_pct:g}% of book depth ({total_depth:g})",
            max_by_depth,
        )

    est = estimate_slippage(book, size, side)
    if est.slippage_pct > max_slippage_pct:
        return VolumeCheck(
            False,
            f"Estimated slippage {est.slippage_pct:.3f}% exceeds {max_slippage_pct:g}%",
            max_size_within_slippage(book, side, max_slippage_pct),
        )

    return VolumeCheck(True)
