"""Signals: VWAP tracking and VWAP-driven slice sizing."""

from adaptive_twap.signals.vwap import (
    VWAPState,
    VWAPTracker,
    absorb_bar,
    initialize_vwap,
    reset_vwap,
    rolling_vwap,
)
from adaptive_twap.signals.sizing import SizingDecision, compute_slice_size

__all__ = [
    "VWAPState",
    "VWAPTracker",
    "absorb_bar",
    "initialize_vwap",
    "reset_vwap",
    "rolling_vwap",
    "SizingDecision",
    "compute_slice_size",
]
