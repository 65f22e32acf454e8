"""
Risk Monitor

Per-slice admission control against account-level limits:
- price deviation from the session start price   (critical)
- estimated book slippage                         (critical)
- cumulative notional exposure                    (critical)
- bid-ask spread floor                            (warning)
- slice size vs per-minute market volume          (warning)
- slice notional                                  (warning)

A critical alert halts the monitor until resume() is called, even if the
breaching condition clears.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional

from adaptive_twap.core.config import RiskConfig, RiskLimits
from adaptive_twap.core.events import EventStream
from adaptive_twap.data.models import OrderBookSnapshot
from adaptive_twap.execution.depth import analyze_depth, estimate_slippage

logger = logging.getLogger(__name__)

AlertLevel = Literal["warning", "critical"]


@dataclass(frozen=True)
class RiskAlert:
    """One limit breach."""

    level: AlertLevel
    metric: str
    message: str
    current_value: float
    limit: float
    timestamp: float


@dataclass(frozen=True)
class RiskMetrics:
    """Inputs compared against the limits for one slice."""

    current_price: float
    start_price: float
    price_deviation_pct: float
    spread: float  # Relative to best bid (fraction)
    market_volume_24h: float
    order_size_ratio: float
    estimated_slippage_pct: float
    order_notional: float
    total_exposure: float
    book_available: bool


@dataclass(frozen=True)
class RiskCheck:
    """Admission decision for one slice."""

    can_proceed: bool
    alerts: List[RiskAlert]
    metrics: RiskMetrics
    book: Optional[OrderBookSnapshot] = None


class RiskMonitor:
    """
    Stateful limit checker for one run.

    Fetches a fresh order book snapshot on every check through `fetch_book`
    (typically MarketDataLoader.fetch_order_book).
    """

    def __init__(
        self,
        coin: str,
        side: Literal["buy", "sell"],
        fetch_book: Callable[[str], Optional[OrderBookSnapshot]],
        risk_config: Optional[RiskConfig] = None,
        limits: Optional[RiskLimits] = None,
        events: Optional[EventStream] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize risk monitor.

        Args:
            coin: Instrument being executed
            side: Order side ("buy" walks asks, "sell" walks bids)
            fetch_book: Snapshot provider; None means book unavailable
            risk_config: Retention / escalation settings
            limits: Explicit limits (defaults to the configured preset)
            events: Optional event stream for alert events
            clock: Time source (epoch seconds)
        """
        self.coin = coin
        self.side = side
        self.fetch_book = fetch_book
        self.risk_config = risk_config or RiskConfig()
        self.limits = limits or self.risk_config.limits()
        self.events = events
        self.clock = clock

        self.start_price = 0.0
        self.market_volume_24h = self.risk_config.fallback_market_volume_24h
        self.is_halted = False
        self.halt_reason: Optional[str] = None
        self.alerts: List[RiskAlert] = []
        self.warning_count = 0

    @property
    def initialized(self) -> bool:
        return self.start_price > 0

    def initialize(self, start_price: float, market_volume_24h: Optional[float] = None):
        """Start a session: record start price, clear halt flag and alert log."""
        self.start_price = float(start_price)
        if market_volume_24h is not None and market_volume_24h > 0:
            self.market_volume_24h = float(market_volume_24h)
        else:
            self.market_volume_24h = self.risk_config.fallback_market_volume_24h
        self.is_halted = False
        self.halt_reason = None
        self.alerts = []
        self.warning_count = 0
        logger.info("[RiskMonitor] Session start price %.6f for %s", self.start_price, self.coin)

    def check_limits(self, order_size: float, current_price: float, executed_volume: float) -> RiskCheck:
        """
        Evaluate one slice.

        Args:
            order_size: Slice size about to be submitted
            current_price: Current market price
            executed_volume: Quantity already executed in this run

        Returns:
            RiskCheck; can_proceed is False when a critical alert fired now or
            the monitor was already halted
        """
        book = self.fetch_book(self.coin)
        metrics = self._calculate_metrics(order_size, current_price, executed_volume, book)
        limits = self.limits
        new_alerts: List[RiskAlert] = []

        def alert(level: AlertLevel, metric: str, message: str, value: float, limit: float):
            new_alerts.append(RiskAlert(level, metric, message, value, limit, self.clock()))

        if abs(metrics.price_deviation_pct) > limits.max_price_deviation_pct:
            alert(
                "critical", "price_deviation_pct",
                f"Price deviation {metrics.price_deviation_pct:.2f}% exceeds limit {limits.max_price_deviation_pct}%",
                abs(metrics.price_deviation_pct), limits.max_price_deviation_pct,
            )

        if not metrics.book_available:
            alert("warning", "book_available", f"Order book unavailable for {self.coin}", 0.0, 1.0)
        elif metrics.spread < limits.min_spread:
            alert(
                "warning", "spread",
                f"Bid-ask spread {metrics.spread:.6f} is below minimum {limits.min_spread}",
                metrics.spread, limits.min_spread,
            )

        if metrics.order_size_ratio > limits.max_volume_ratio:
            alert(
                "warning", "order_size_ratio",
                f"Order size ratio {metrics.order_size_ratio * 100:.2f}% exceeds {limits.max_volume_ratio * 100:.2f}%",
                metrics.order_size_ratio, limits.max_volume_ratio,
            )

        if metrics.order_notional > limits.max_order_notional:
            alert(
                "warning", "order_notional",
                f"Slice notional ${metrics.order_notional:,.2f} exceeds ${limits.max_order_notional:,.2f}",
                metrics.order_notional, limits.max_order_notional,
            )

        if metrics.estimated_slippage_pct > limits.max_slippage_pct:
            alert(
                "critical", "estimated_slippage_pct",
                f"Estimated slippage {metrics.estimated_slippage_pct:.4f}% exceeds limit {limits.max_slippage_pct}%",
                metrics.estimated_slippage_pct, limits.max_slippage_pct,
            )

        if metrics.total_exposure > limits.max_total_notional:
            alert(
                "critical", "total_exposure",
                f"Total exposure ${metrics.total_exposure:,.2f} exceeds limit ${limits.max_total_notional:,.2f}",
                metrics.total_exposure, limits.max_total_notional,
            )

        warnings = [a for a in new_alerts if a.level == "warning"]
        self.warning_count += len(warnings)
        threshold = self.risk_config.warning_escalation_threshold
        if warnings and threshold > 0 and self.warning_count >= threshold:
            alert(
                "critical", "warning_escalation",
                f"{self.warning_count} warnings reached escalation threshold {threshold}",
                float(self.warning_count), float(threshold),
            )

        for a in new_alerts:
            self._record(a)

        critical = [a for a in new_alerts if a.level == "critical"]
        can_proceed = not critical and not self.is_halted
        if critical and not self.is_halted:
            self.is_halted = True
            self.halt_reason = critical[0].message
            logger.error("[RiskMonitor] HALTED: %s", self.halt_reason)

        return RiskCheck(can_proceed=can_proceed, alerts=new_alerts, metrics=metrics, book=book)

    def _record(self, a: RiskAlert):
        self.alerts.append(a)
        log = logger.error if a.level == "critical" else logger.warning
        log("[RiskMonitor] %s: %s", a.level.upper(), a.message)
        if self.events is not None:
            self.events.emit("risk_alert", a.message, a)

    def _calculate_metrics(
        self,
        order_size: float,
        current_price: float,
        executed_volume: float,
        book: Optional[OrderBookSnapshot],
    ) -> RiskMetrics:
        book_available = book is not None and not book.is_empty
        spread = 0.0
        slippage_pct = 0.0
        if book_available:
            depth = analyze_depth(book)
            if depth.best_bid > 0 and depth.best_ask > 0:
                spread = (depth.best_ask - depth.best_bid) / depth.best_bid
            slippage_pct = estimate_slippage(book, order_size, self.side).slippage_pct

        deviation = (current_price - self.start_price) / self.start_price * 100.0 if self.start_price > 0 else 0.0
        per_minute_volume = max(self.market_volume_24h / 1440.0, 1.0)

        return RiskMetrics(
            current_price=current_price,
            start_price=self.start_price,
            price_deviation_pct=deviation,
            spread=spread,
            market_volume_24h=self.market_volume_24h,
            order_size_ratio=order_size / per_minute_volume,
            estimated_slippage_pct=slippage_pct,
            order_notional=order_size * current_price,
            total_exposure=(executed_volume + order_size) * current_price,
            book_available=book_available,
        )

    def get_active_alerts(self, now: Optional[float] = None) -> List[RiskAlert]:
        """Alerts raised within the retention window. The raw log keeps all."""
        now = self.clock() if now is None else now
        cutoff = now - self.risk_config.alert_retention_sec
        return [a for a in self.alerts if a.timestamp > cutoff]

    def resume(self):
        """Clear the halt flag after a critical breach."""
        if self.is_halted:
            logger.info("[RiskMonitor] Resumed after halt: %s", self.halt_reason)
        self.is_halted = False
        self.halt_reason = None

    def clear_alerts(self):
        self.alerts = []

    def reset(self):
        """End the session: the next check needs initialize() with a fresh start price."""
        self.start_price = 0.0
        self.is_halted = False
        self.halt_reason = None
        self.alerts = []
        self.warning_count = 0
