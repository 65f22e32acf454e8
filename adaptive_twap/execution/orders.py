"""
Order and run records (OrderRequest, OrderResult, SliceResult, RunState,
ExecutionSummary).
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

RunStatus = Literal["pending", "running", "completed", "cancelled", "failed"]


@dataclass(frozen=True)
class OrderRequest:
    """
    One venue order, with price and size already venue-formatted.
    """

    coin: str
    is_buy: bool
    limit_px: str
    size: str
    time_in_force: Literal["Ioc", "Gtc", "Alo"] = "Ioc"
    reduce_only: bool = False
    cloid: Optional[str] = None  # Client order ID (0x + 32 hex)


@dataclass(frozen=True)
class OrderResult:
    """
    Venue response to a submission.
    """

    success: bool
    order_id: Optional[str] = None
    filled_size: Optional[float] = None  # Reported for immediate fills
    avg_price: Optional[float] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SliceResult:
    """Outcome of one slice attempt. Appended to the run log, never mutated."""

    index: int
    requested_size: float
    executed_size: float
    price: float
    timestamp: float
    applied_multiplier: float
    success: bool
    order_id: Optional[str] = None
    error_reason: Optional[str] = None

    market_price: float = 0.0  # Top of book used for sizing
    vwap: float = 0.0
    slippage_pct: float = 0.0  # |price - market_price| / market_price × 100
    reasoning: str = ""


@dataclass
class RunState:
    """Progress of the active run."""

    status: RunStatus = "pending"
    halted: bool = False
    current_slice_index: int = 0
    total_slices: int = 0
    executed_quantity: float = 0.0
    success_count: int = 0
    failure_count: int = 0
    average_price: float = 0.0  # Volume-weighted achieved price
    started_at: Optional[float] = None
    estimated_end_at: Optional[float] = None
    last_order_at: Optional[float] = None


@dataclass(frozen=True)
class SlippageStats:
    average: float = 0.0
    maximum: float = 0.0
    minimum: float = 0.0


@dataclass(frozen=True)
class ExecutionSummary:
    """End-of-run report."""

    status: RunStatus
    total_slices: int
    attempted_slices: int
    successful_slices: int
    failed_slices: int
    total_size: float
    executed_size: float
    average_price: float
    vwap_deviation_pct: float  # Achieved price vs final VWAP (%)
    duration_sec: float
    slippage: SlippageStats = field(default_factory=SlippageStats)

    @property
    def remaining_size(self) -> float:
        return max(0.0, self.total_size - self.executed_size)
