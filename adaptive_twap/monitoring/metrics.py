"""
Execution Metrics

Running statistics over slice results: executed quantity, volume-weighted
achieved price, success/failure counts and slippage of successful slices.
"""

from decimal import Decimal
from typing import List

from adaptive_twap.execution.orders import ExecutionSummary, RunStatus, SliceResult, SlippageStats
from adaptive_twap.utils.math_helpers import describe, pct_change, weighted_average
from adaptive_twap.utils.precision import to_decimal


class ExecutionMetrics:
    """Accumulates slice results for one run."""

    def __init__(self):
        self.results: List[SliceResult] = []

    def record(self, result: SliceResult):
        self.results.append(result)

    @property
    def successful(self) -> List[SliceResult]:
        return [r for r in self.results if r.success]

    @property
    def executed_sizes(self) -> List[float]:
        return [r.executed_size for r in self.results if r.success]

    @property
    def executed_quantity(self) -> float:
        """Sum of executed sizes, accumulated in decimal so lot-grid sizes add up exactly."""
        return float(sum((to_decimal(x) for x in self.executed_sizes), Decimal(0)))

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def average_price(self) -> float:
        """Volume-weighted achieved price over successful slices."""
        ok = [r for r in self.successful if r.executed_size > 0]
        return weighted_average([r.price for r in ok], [r.executed_size for r in ok])

    def slippage(self) -> SlippageStats:
        stats = describe([r.slippage_pct for r in self.successful])
        return SlippageStats(average=stats["mean"], maximum=stats["max"], minimum=stats["min"])

    def summary(
        self,
        status: RunStatus,
        total_slices: int,
        total_size: float,
        final_vwap: float,
        duration_sec: float,
    ) -> ExecutionSummary:
        avg_px = self.average_price
        return ExecutionSummary(
            status=status,
            total_slices=total_slices,
            attempted_slices=len(self.results),
            successful_slices=self.success_count,
            failed_slices=self.failure_count,
            total_size=total_size,
            executed_size=self.executed_quantity,
            average_price=avg_px,
            vwap_deviation_pct=pct_change(avg_px, final_vwap) if avg_px > 0 else 0.0,
            duration_sec=duration_sec,
            slippage=self.slippage(),
        )
