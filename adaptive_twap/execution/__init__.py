"""Execution: depth analysis, order routing, order/run records."""

from adaptive_twap.execution.depth import (
    analyze_depth,
    check_volume_constraint,
    estimate_slippage,
    max_size_within_slippage,
)
from adaptive_twap.execution.orders import (
    ExecutionSummary,
    OrderRequest,
    OrderResult,
    RunState,
    SliceResult,
)
from adaptive_twap.execution.router import OrderRouter

__all__ = [
    "analyze_depth",
    "check_volume_constraint",
    "estimate_slippage",
    "max_size_within_slippage",
    "ExecutionSummary",
    "OrderRequest",
    "OrderResult",
    "RunState",
    "SliceResult",
    "OrderRouter",
]
