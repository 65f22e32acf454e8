"""
Adaptive TWAP Execution Engine for Hyperliquid

Splits a large order into time-sliced child orders, scaling each slice by the
price's deviation from a running VWAP and guarding submission with
order-book depth checks and account-level risk limits.

Components:
- Slice Scheduler: Interval clock with cancellable waits
- Data Loader: Top of book, L2 depth, instrument metadata, candles
- VWAP Tracker: Session VWAP over HLC3
- Dynamic Sizer: VWAP-deviation slice multiplier
- Depth Analyzer: Spread, book-walk slippage, max size within tolerance
- Risk Monitor: Price / slippage / exposure limits with halt and resume
- Order Router: Venue-formatted limit orders through the Exchange client
- Executor: Per-slice state machine with events and summary
- Simulator: Offline replay over historical bars
"""

__version__ = "0.1.0"

from adaptive_twap.core.config import Config, TWAPConfig
from adaptive_twap.core.events import EventStream
from adaptive_twap.execution.executor import TWAPExecutor
from adaptive_twap.execution.simulator import TWAPSimulator

__all__ = [
    "Config",
    "TWAPConfig",
    "EventStream",
    "TWAPExecutor",
    "TWAPSimulator",
]
