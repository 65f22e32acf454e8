"""
VWAP Tracker

Session VWAP over HLC3 ("typical price"):

    VWAP = Σ(HLC3 × volume) / Σ(volume)

State transitions are pure functions returning a new VWAPState; VWAPTracker
holds the state for one run.
"""

import logging
import math
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np

from adaptive_twap.data.models import Bar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VWAPState:
    """Running VWAP accumulators."""

    vwap: float = 0.0
    cumulative_pv: float = 0.0
    cumulative_volume: float = 0.0
    last_updated: float = field(default_factory=time.time)
    last_bar_ts: Optional[int] = None  # Open time (ms) of the newest absorbed bar


def initialize_vwap(bars: Sequence[Bar]) -> VWAPState:
    """
    Fold historical bars into a fresh VWAP state.

    Invalid bars are skipped. If the result is non-finite or non-positive the
    VWAP falls back to the simple mean of the usable typical prices.
    """
    if not bars:
        return VWAPState()

    valid = [b for b in bars if b.is_valid]
    skipped = len(bars) - len(valid)
    if skipped:
        logger.warning("[VWAP] Skipped %d invalid bars of %d", skipped, len(bars))

    last_ts = max((b.timestamp for b in bars), default=None)

    if valid:
        typical = np.array([b.typical_price for b in valid], dtype=float)
        volume = np.array([b.volume for b in valid], dtype=float)
        cum_pv = float(np.sum(typical * volume))
        cum_vol = float(np.sum(volume))
    else:
        cum_pv, cum_vol = 0.0, 0.0

    with np.errstate(divide="ignore", invalid="ignore"):
        vwap = cum_pv / cum_vol if cum_vol > 0 else float("nan")

    if not math.isfinite(vwap) or vwap <= 0:
        usable = [b.typical_price for b in bars if math.isfinite(b.typical_price) and b.typical_price > 0]
        vwap = float(np.mean(usable)) if usable else 0.0
        logger.warning("[VWAP] Degenerate inputs, falling back to mean HLC3=%.6f", vwap)

    logger.info(
        "[VWAP] Initialized from %d bars: VWAP=%.6f (ΣPV=%.2f, ΣV=%.2f)",
        len(valid), vwap, cum_pv, cum_vol,
    )
    return VWAPState(
        vwap=vwap,
        cumulative_pv=cum_pv,
        cumulative_volume=cum_vol,
        last_bar_ts=last_ts,
    )


def absorb_bar(state: VWAPState, bar: Optional[Bar]) -> VWAPState:
    """
    Fold one new bar into the running sums.

    Bars with non-finite fields, non-positive prices or negative volume are
    ignored (cumulative volume never decreases). A zero-volume bar leaves
    the VWAP unchanged.
    """
    if bar is None:
        return state

    prices_ok = all(math.isfinite(v) and v > 0 for v in (bar.high, bar.low, bar.close))
    if not prices_ok or not math.isfinite(bar.volume) or bar.volume < 0:
        logger.warning("[VWAP] Ignoring invalid bar at t=%s", bar.timestamp)
        return state

    pv = bar.typical_price * bar.volume
    cum_pv = state.cumulative_pv + pv
    cum_vol = state.cumulative_volume + bar.volume

    if cum_vol > 0:
        new_vwap = cum_pv / cum_vol
        if not math.isfinite(new_vwap):
            new_vwap = state.vwap
    else:
        new_vwap = state.vwap if state.vwap > 0 else bar.typical_price

    last_ts = bar.timestamp if state.last_bar_ts is None else max(state.last_bar_ts, bar.timestamp)
    logger.debug("[VWAP] Update: HLC3=%.6f V=%.4f VWAP=%.6f", bar.typical_price, bar.volume, new_vwap)
    return VWAPState(
        vwap=new_vwap,
        cumulative_pv=cum_pv,
        cumulative_volume=cum_vol,
        last_bar_ts=last_ts,
    )


def reset_vwap(state: Optional[VWAPState] = None, seed: Optional[Bar] = None) -> VWAPState:
    """
    Start a new session.

    Args:
        state: Previous state (unused beyond lineage; accepted for symmetry)
        seed: Optional first bar of the new session

    Returns:
        Zero state, or a state holding only the seed bar's contribution
    """
    if seed is None or not seed.is_valid:
        return VWAPState()
    return VWAPState(
        vwap=seed.typical_price,
        cumulative_pv=seed.typical_price * seed.volume,
        cumulative_volume=seed.volume,
        last_bar_ts=seed.timestamp,
    )


def rolling_vwap(bars: Sequence[Bar], period: int = 20) -> VWAPState:
    """VWAP over the last `period` bars."""
    if period <= 0:
        return initialize_vwap(bars)
    return initialize_vwap(list(bars)[-period:])


def _utc_day(ts_ms: int):
    return datetime.fromtimestamp(ts_ms / 1000.0, tz=timezone.utc).date()


class VWAPTracker:
    """
    Per-run VWAP holder.

    Ignores bars that are not newer than the last absorbed one, so polling the
    same in-progress candle twice does not double count its volume.
    """

    def __init__(self, state: Optional[VWAPState] = None, session_reset: bool = False):
        self.state = state or VWAPState()
        self.session_reset = session_reset

    @classmethod
    def from_bars(cls, bars: Sequence[Bar], period: int = 0, session_reset: bool = False) -> "VWAPTracker":
        return cls(rolling_vwap(bars, period), session_reset=session_reset)

    @property
    def vwap(self) -> float:
        return self.state.vwap

    def absorb(self, bar: Optional[Bar]) -> bool:
        """
        Absorb a bar if it is newer than anything seen.

        Returns:
            True if the state changed
        """
        if bar is None:
            return False
        last = self.state.last_bar_ts
        if last is not None and bar.timestamp <= last:
            return False

        if self.session_reset and last is not None and _utc_day(bar.timestamp) != _utc_day(last):
            logger.info("[VWAP] New UTC session at t=%d, resetting", bar.timestamp)
            self.state = reset_vwap(self.state, bar)
            if not bar.is_valid:
                self.state = replace(self.state, last_bar_ts=bar.timestamp)
            return True

        before = self.state
        self.state = absorb_bar(self.state, bar)
        return self.state is not before

    def reset(self, seed: Optional[Bar] = None):
        self.state = reset_vwap(self.state, seed)
