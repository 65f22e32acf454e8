"""
TWAP Simulator

Replays a VWAP-enhanced TWAP schedule over historical bars without touching
the venue. Each slice reads the next bar, sizes against its close, and is
filled by walking a depth snapshot (when one is available) under the same
slippage protection the live executor applies.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_DOWN
from typing import List, Literal, Optional, Sequence

import numpy as np

from adaptive_twap.core.config import TWAPConfig
from adaptive_twap.data.models import Bar, OrderBookSnapshot
from adaptive_twap.execution.depth import check_volume_constraint, estimate_slippage
from adaptive_twap.signals.sizing import compute_slice_size
from adaptive_twap.signals.vwap import VWAPTracker
from adaptive_twap.utils.precision import remaining_size, round_size

logger = logging.getLogger(__name__)

SimStatus = Literal["executed", "partial", "rejected"]


@dataclass(frozen=True)
class SimulatedSlice:
    """One simulated child order."""

    index: int
    timestamp: int  # Bar open time (ms)
    requested_size: float
    size: float  # Filled
    price: float
    vwap: float
    multiplier: float
    slippage_pct: float
    status: SimStatus
    reasoning: str


@dataclass(frozen=True)
class PerformanceReport:
    """Aggregate simulation quality."""

    total_executed: float
    average_price: float  # Volume-weighted
    average_slippage_pct: float
    vwap_performance_pct: float  # Negative = beat VWAP
    average_multiplier: float
    execution_rate_pct: float  # Filled slices / all slices
    twap_average_price: float  # Equal-slice comparison


class TWAPSimulator:
    """
    Offline replay of a run configuration.

    Books come from the `book` argument, or from `data_loader.fetch_order_book`
    when a loader is attached. With neither, every slice fills entirely at the
    bar close.
    """

    def __init__(self, data_loader=None):
        self.data = data_loader

    def run(
        self,
        run_config: TWAPConfig,
        bars: Sequence[Bar],
        sz_decimals: int,
        book: Optional[OrderBookSnapshot] = None,
    ) -> List[SimulatedSlice]:
        """
        Simulate every slice of `run_config` over `bars`.

        Args:
            run_config: Run parameters
            bars: Historical bars, oldest first; the first `vwap_period` seed VWAP
            sz_decimals: Lot precision of the instrument
            book: Fixed depth snapshot used for every slice

        Returns:
            One SimulatedSlice per attempted slice

        Raises:
            ValueError: no bars given
        """
        if not bars:
            raise ValueError("No market data provided for simulation")

        cfg = run_config
        period = max(1, cfg.vwap_period)
        tracker = VWAPTracker.from_bars(bars[:period], session_reset=cfg.vwap_session_reset)
        logger.info("[Simulator] Initial VWAP: %.6f, max slippage %.2f%%", tracker.vwap, cfg.max_slippage_pct)

        results: List[SimulatedSlice] = []
        filled: List[float] = []
        n = cfg.slice_count

        for i in range(n):
            remaining = remaining_size(cfg.total_size, filled, sz_decimals)
            if remaining <= 0:
                break

            bar = bars[min(i + period, len(bars) - 1)]
            tracker.absorb(bar)

            slices_left = n - i
            sizing = compute_slice_size(
                remaining / slices_left, bar.close, tracker.vwap,
                cfg.vwap_alpha, cfg.max_multiplier, cfg.min_multiplier,
            )
            if slices_left == 1:
                requested = remaining
            else:
                requested = min(round_size(sizing.adjusted_size, sz_decimals), remaining)

            snapshot = book
            if snapshot is None and self.data is not None:
                snapshot = self.data.fetch_order_book(cfg.coin)

            size, price, slippage_pct, note = self._fill(cfg, snapshot, requested, bar.close, sz_decimals)
            if size <= 0:
                status: SimStatus = "rejected"
            elif size < requested:
                status = "partial"
            else:
                status = "executed"

            results.append(SimulatedSlice(
                index=i,
                timestamp=bar.timestamp,
                requested_size=requested,
                size=size,
                price=price,
                vwap=tracker.vwap,
                multiplier=sizing.multiplier,
                slippage_pct=slippage_pct,
                status=status,
                reasoning=f"{sizing.reasoning} | {note}",
            ))
            filled.append(size)
            logger.debug(
                "[Simulator] Slice %d: %s %g @ %.6f | VWAP %.6f | slippage %.3f%%",
                i + 1, status, size, price, tracker.vwap, slippage_pct,
            )

        unfilled = remaining_size(cfg.total_size, filled, sz_decimals)
        if unfilled > 0 and results:
            logger.warning("[Simulator] %g could not be executed within slippage constraints", unfilled)
        return results

    def _fill(self, cfg: TWAPConfig, book: Optional[OrderBookSnapshot], size: float, close: float, sz_decimals: int):
        """Returns (filled size, fill price, slippage %, note)."""
        if size <= 0:
            return 0.0, close, 0.0, "Zero size after rounding"
        if book is None or not cfg.slippage_protection:
            return size, close, 0.0, "No order book, filled at close"

        note = "Within slippage tolerance"
        vc = check_volume_constraint(book, size, cfg.side, cfg.max_slippage_pct, cfg.max_depth_pct)
        if not vc.can_handle:
            size = round_size(min(vc.suggested_max_volume or 0.0, size), sz_decimals, ROUND_DOWN)
            note = vc.reason or "Reduced by slippage protection"
            if size <= 0:
                return 0.0, close, 0.0, note

        est = estimate_slippage(book, size, cfg.side)
        if not est.would_execute:
            return 0.0, close, est.slippage_pct, note
        return size, est.estimated_price, est.slippage_pct, note

    @staticmethod
    def performance(
        results: Sequence[SimulatedSlice],
        slice_count: Optional[int] = None,
    ) -> PerformanceReport:
        """
        Summarize a simulation.

        Args:
            results: Output of run()
            slice_count: Planned number of slices (execution rate denominator;
                defaults to the slices attempted)

        Returns:
            PerformanceReport (zeros, multiplier 1, when nothing filled)
        """
        filled = [r for r in results if r.status != "rejected" and r.size > 0]
        if not filled:
            return PerformanceReport(0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0)

        sizes = np.array([r.size for r in filled], dtype=float)
        prices = np.array([r.price for r in filled], dtype=float)
        vwaps = np.array([r.vwap for r in filled], dtype=float)

        total = float(sizes.sum())
        avg_px = float(np.dot(prices, sizes) / total)
        avg_vwap = float(np.dot(vwaps, sizes) / total)
        vwap_perf = (avg_px - avg_vwap) / avg_vwap * 100.0 if avg_vwap > 0 else 0.0

        # Equal slices at the same prices reduce to the plain mean price
        twap_px = float(np.mean(prices))

        return PerformanceReport(
            total_executed=total,
            average_price=avg_px,
            average_slippage_pct=float(np.mean(np.abs([r.slippage_pct for r in filled]))),
            vwap_performance_pct=vwap_perf,
            average_multiplier=float(np.mean([r.multiplier for r in filled])),
            execution_rate_pct=len(filled) / (slice_count or len(results)) * 100.0,
            twap_average_price=twap_px,
        )
