"""
TWAP Executor

Runs one VWAP-enhanced TWAP schedule end to end. For each slice:

1. fetch top of book for the configured side
2. absorb the freshest bar into the VWAP tracker
3. size the slice from the remaining quantity and the VWAP deviation
4. round to lot precision
5. admission control (risk limits, slippage protection)
6. build, format and validate the limit price
7. submit and record a SliceResult
8. update running statistics
9. wait for the next slice

A failure inside one slice only fails that slice. Invalid configuration or
credentials fail the whole run before any order is sent.
"""

import logging
import threading
import time
import uuid
from dataclasses import replace
from decimal import ROUND_DOWN
from typing import Callable, Optional, Sequence, Tuple

from adaptive_twap.core.config import Config, TWAPConfig
from adaptive_twap.core.events import EventKind, EventStream
from adaptive_twap.core.exceptions import (
    ConfigurationError,
    ExecutionInProgressError,
    InsufficientLiquidityError,
    MarketDataError,
    PriceValidationError,
)
from adaptive_twap.core.scheduler import SliceScheduler
from adaptive_twap.data.models import Bar, InstrumentMeta, OrderBookSnapshot
from adaptive_twap.execution.depth import check_volume_constraint
from adaptive_twap.execution.orders import ExecutionSummary, OrderRequest, RunState, SliceResult
from adaptive_twap.execution.router import make_cloid
from adaptive_twap.monitoring.metrics import ExecutionMetrics
from adaptive_twap.risk.monitor import RiskMonitor
from adaptive_twap.signals.sizing import SizingDecision, compute_slice_size
from adaptive_twap.signals.vwap import VWAPTracker
from adaptive_twap.utils.math_helpers import clamp, is_finite_positive
from adaptive_twap.utils.precision import (
    format_price,
    format_size,
    remaining_size,
    round_size,
    validate_price,
    validate_size,
)

logger = logging.getLogger(__name__)


class TWAPExecutor:
    """
    Execution state machine for a single run at a time.

    pending -> running -> completed | cancelled | failed

    While running, a risk halt pauses submission (RunState.halted) until
    resume() or stop() is called.
    """

    def __init__(
        self,
        config: Config,
        data_loader,
        router,
        risk_monitor: Optional[RiskMonitor] = None,
        events: Optional[EventStream] = None,
        scheduler: Optional[SliceScheduler] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize executor.

        Args:
            config: Engine configuration
            data_loader: Market data collaborator (MarketDataLoader or compatible)
            router: Order submission collaborator (OrderRouter or compatible)
            risk_monitor: Explicit monitor; built per run from config.risk when omitted
            events: Event stream (a private one is created when omitted)
            scheduler: Inter-slice clock
            clock: Time source (epoch seconds)
        """
        self.config = config
        self.data = data_loader
        self.router = router
        self.events = events if events is not None else EventStream(config.monitoring.event_queue_size)
        self.scheduler = scheduler or SliceScheduler()
        self.clock = clock

        self._fixed_risk_monitor = risk_monitor
        self.risk: Optional[RiskMonitor] = risk_monitor
        self.tracker = VWAPTracker()
        self.meta: Optional[InstrumentMeta] = None
        self.metrics = ExecutionMetrics()
        self.run_id = ""

        self._state = RunState()
        self._lock = threading.Lock()
        self._running = False
        self._cancelled = False

    # ------------------------
    # Public API
    # ------------------------

    @property
    def state(self) -> RunState:
        """Copy of the current run state."""
        return replace(self._state)

    @property
    def results(self) -> Tuple[SliceResult, ...]:
        return tuple(self.metrics.results)

    @property
    def is_running(self) -> bool:
        return self._running

    def execute(self, run_config: Optional[TWAPConfig] = None, bars: Sequence[Bar] = ()) -> ExecutionSummary:
        """
        Run a full schedule.

        Args:
            run_config: Run parameters (defaults to config.twap)
            bars: Historical bars used to seed VWAP

        Returns:
            ExecutionSummary

        Raises:
            ExecutionInProgressError: a run is already active on this executor
            ConfigurationError, CredentialError: the run failed before slicing
        """
        cfg = run_config or self.config.twap
        with self._lock:
            if self._running:
                raise ExecutionInProgressError("TWAP execution already in progress")
            self._running = True
            self._cancelled = False
            self.scheduler.reset(cfg.interval_sec)

        self.metrics = ExecutionMetrics()
        self.run_id = uuid.uuid4().hex
        start = self.clock()
        self._state = RunState(
            status="running",
            total_slices=cfg.slice_count,
            started_at=start,
            estimated_end_at=self.scheduler.estimated_end(start, cfg.slice_count),
        )
        self._emit("run_started", f"Starting TWAP for {cfg.side.upper()} {cfg.total_size:g} {cfg.coin}", cfg)

        try:
            self._prepare(cfg, bars)
            self._run_slices(cfg)

            self._state.status = "cancelled" if self._cancelled else "completed"
            summary = self.metrics.summary(
                status=self._state.status,
                total_slices=cfg.slice_count,
                total_size=cfg.total_size,
                final_vwap=self.tracker.vwap,
                duration_sec=self.clock() - start,
            )
            self._emit_state()
            self._emit(
                "run_completed",
                f"Run {self._state.status}: {summary.successful_slices}/{summary.attempted_slices} slices, "
                f"executed {summary.executed_size:g} @ {summary.average_price:.6f}",
                summary,
            )
            return summary

        except Exception as e:
            self._state.status = "failed"
            logger.error("[Executor] Execution failed: %s", e)
            self._emit("error", f"Execution failed: {e}", e)
            self._emit_state()
            raise

        finally:
            with self._lock:
                self._running = False

    def stop(self):
        """Request cooperative cancellation; an order already in flight completes."""
        with self._lock:
            if not self._running:
                return
            self._cancelled = True
        self.scheduler.stop()
        self._emit("log", "Stopping TWAP execution...")

    def resume(self):
        """Clear a risk halt so slicing continues."""
        if self.risk is not None:
            self.risk.resume()

    # ------------------------
    # Run phases
    # ------------------------

    def _prepare(self, cfg: TWAPConfig, bars: Sequence[Bar]):
        errors = cfg.validate()
        if errors:
            raise ConfigurationError("Invalid TWAP configuration", errors)

        self.router.ensure_ready()
        self._emit("log", "Configuration validated")

        self.meta = self._instrument_meta(cfg.coin)
        self._emit(
            "log",
            f"Asset: {cfg.coin} (Index: {self.meta.asset_index}, Decimals: {self.meta.sz_decimals})",
            self.meta,
        )

        self.tracker = VWAPTracker.from_bars(bars, cfg.vwap_period, session_reset=cfg.vwap_session_reset)
        self._emit("log", f"Initial VWAP: {self.tracker.vwap:.6f}")

        if self._fixed_risk_monitor is not None:
            # New session per run
            self.risk = self._fixed_risk_monitor
            self.risk.reset()
        elif self.config.risk.enabled:
            self.risk = RiskMonitor(
                coin=cfg.coin,
                side=cfg.side,
                fetch_book=self.data.fetch_order_book,
                risk_config=self.config.risk,
                events=self.events,
                clock=self.clock,
            )
        else:
            self.risk = None

    def _instrument_meta(self, coin: str) -> InstrumentMeta:
        default = InstrumentMeta(coin=coin, sz_decimals=self.config.precision.default_sz_decimals)
        try:
            meta = self.data.fetch_instrument_metadata(coin)
        except Exception as e:
            logger.warning("[Executor] Instrument metadata unavailable for %s: %s", coin, e)
            return default
        if meta is None or meta.sz_decimals is None or meta.sz_decimals < 0:
            return default
        return meta

    def _run_slices(self, cfg: TWAPConfig):
        n = cfg.slice_count
        for i in range(n):
            if self._cancelled:
                break

            self._wait_while_halted()
            if self._cancelled:
                break

            remaining = self._remaining(cfg)
            if remaining <= 0:
                self._emit("log", "Target quantity reached, no slices left to place")
                break

            self._state.current_slice_index = i
            result = self._execute_slice(cfg, i, n - i, remaining)
            self._record(result)

            if i < n - 1 and not self._cancelled:
                self._emit("log", f"Waiting {cfg.interval_sec:g}s for next slice...")
                self.scheduler.wait(cfg.interval_sec)

        if self._cancelled:
            self._emit("log", f"Cancelled after {len(self.metrics.results)} slices")

    def _wait_while_halted(self):
        if self.risk is None or not self.risk.is_halted:
            return
        self._state.halted = True
        self._emit("halted", f"Execution halted by risk monitor: {self.risk.halt_reason}")
        self._emit_state()
        poll = max(self.config.risk.halt_poll_sec, 0.01)
        while self.risk.is_halted and not self._cancelled:
            self.scheduler.wait(poll)
        if not self._cancelled:
            self._state.halted = False
            self._emit("resumed", "Execution resumed")
            self._emit_state()

    def _remaining(self, cfg: TWAPConfig) -> float:
        sz_dec = self.meta.sz_decimals if self.meta else self.config.precision.default_sz_decimals
        return remaining_size(cfg.total_size, self.metrics.executed_sizes, sz_dec)

    # ------------------------
    # One slice
    # ------------------------

    def _execute_slice(self, cfg: TWAPConfig, index: int, slices_left: int, remaining: float) -> SliceResult:
        ts = self.clock()
        market_price = 0.0
        size = 0.0
        sizing: Optional[SizingDecision] = None

        def failed(reason: str) -> SliceResult:
            logger.warning("[Executor] Slice %d failed: %s", index + 1, reason)
            self._emit("error", f"Slice {index + 1} failed: {reason}")
            return SliceResult(
                index=index,
                requested_size=size,
                executed_size=0.0,
                price=0.0,
                timestamp=ts,
                applied_multiplier=sizing.multiplier if sizing else 0.0,
                success=False,
                error_reason=reason,
                market_price=market_price,
                vwap=self.tracker.vwap,
                reasoning=sizing.reasoning if sizing else "",
            )

        try:
            # 1. Market price
            prices = self.data.fetch_best_prices(cfg.coin)
            market_price = prices.for_side(cfg.side)
            if not is_finite_positive(market_price):
                raise MarketDataError(f"No {'asks' if cfg.is_buy else 'bids'} available for {cfg.coin}")
            if self.risk is not None and not self.risk.initialized:
                self.risk.initialize(market_price, self.meta.day_volume)

            # 2. VWAP
            self._refresh_vwap(cfg)

            # 3-4. Size
            sz_dec = self.meta.sz_decimals
            base = remaining / slices_left
            sizing = compute_slice_size(
                base, market_price, self.tracker.vwap,
                cfg.vwap_alpha, cfg.max_multiplier, cfg.min_multiplier,
            )
            if slices_left == 1:
                size = remaining
            else:
                size = min(round_size(sizing.adjusted_size, sz_dec), remaining)
            self._emit(
                "log",
                f"Slice {index + 1}: {sizing.adjusted_size:.6f} -> {size:g} ({sizing.multiplier:.3f}x VWAP multiplier)",
                sizing,
            )
            if size <= 0:
                raise PriceValidationError(f"Slice size rounds to zero at {sz_dec} decimals")

            # 5. Admission control
            book: Optional[OrderBookSnapshot] = None
            if self.risk is not None:
                check = self.risk.check_limits(size, market_price, self.metrics.executed_quantity)
                if not check.can_proceed:
                    self._state.halted = self.risk.is_halted
                    critical = [a.message for a in check.alerts if a.level == "critical"]
                    reason = "; ".join(critical) or self.risk.halt_reason or "risk monitor halted"
                    return failed(f"Risk check blocked slice: {reason}")
                book = check.book
            elif cfg.slippage_protection:
                book = self.data.fetch_order_book(cfg.coin)

            if cfg.slippage_protection:
                size = self._protect_size(cfg, book, size, sz_dec)

            # 6. Price
            limit_px = self._limit_price(market_price, cfg.is_buy)
            max_dec = self.config.precision.max_decimals
            sig_figs = self.config.precision.max_sig_figs
            price_str = format_price(limit_px, sz_dec, max_dec, sig_figs)
            price_check = validate_price(price_str, sz_dec, max_dec, sig_figs)
            if not price_check.is_valid:
                raise PriceValidationError(f"Invalid price format: {price_check.reason}")
            size_str = format_size(size, sz_dec)
            size_check = validate_size(size_str, sz_dec)
            if not size_check.is_valid:
                raise PriceValidationError(f"Invalid size format: {size_check.reason}")

            # 7. Submit
            request = OrderRequest(
                coin=cfg.coin,
                is_buy=cfg.is_buy,
                limit_px=price_str,
                size=size_str,
                time_in_force=cfg.time_in_force,
                reduce_only=cfg.reduce_only,
                cloid=make_cloid(self.run_id, index),
            )
            self._state.last_order_at = self.clock()
            self._emit("log", f"Placing {cfg.side.upper()} slice {index + 1}: {size_str} {cfg.coin} @ {price_str}", request)
            order = self.router.submit_order(request)
        except Exception as e:
            return failed(str(e))

        if not order.success:
            return failed(order.error or "Order rejected")

        executed = order.filled_size if order.filled_size is not None else float(size_str)
        fill_px = order.avg_price if order.avg_price else float(price_str)
        slippage_pct = abs(fill_px - market_price) / market_price * 100.0
        self._emit("log", f"Slice {index + 1} placed successfully! ID: {order.order_id}")
        return SliceResult(
            index=index,
            requested_size=size,
            executed_size=executed,
            price=fill_px,
            timestamp=ts,
            applied_multiplier=sizing.multiplier,
            success=True,
            order_id=order.order_id,
            market_price=market_price,
            vwap=self.tracker.vwap,
            slippage_pct=slippage_pct,
            reasoning=sizing.reasoning,
        )

    def _refresh_vwap(self, cfg: TWAPConfig):
        try:
            bar = self.data.fetch_latest_bar(cfg.coin, cfg.candle_interval)
        except Exception as e:
            logger.warning("[Executor] Latest bar unavailable, keeping VWAP %.6f: %s", self.tracker.vwap, e)
            return
        if self.tracker.absorb(bar):
            logger.debug("[Executor] VWAP updated to %.6f", self.tracker.vwap)

    def _protect_size(self, cfg: TWAPConfig, book: Optional[OrderBookSnapshot], size: float, sz_dec: int) -> float:
        vc = check_volume_constraint(book, size, cfg.side, cfg.max_slippage_pct, cfg.max_depth_pct)
        if vc.can_handle:
            return size
        capped = round_size(min(vc.suggested_max_volume or 0.0, size), sz_dec, ROUND_DOWN)
        if capped <= 0:
            raise InsufficientLiquidityError(vc.reason or "No executable size within slippage tolerance")
        self._emit("log", f"Slippage protection: {size:g} -> {capped:g} ({vc.reason})", vc)
        return capped

    def _limit_price(self, market_price: float, is_buy: bool) -> float:
        buf = self.config.pricing.slippage_buffer
        band = self.config.pricing.price_band
        raw = market_price * (1 + buf) if is_buy else market_price * (1 - buf)
        return clamp(raw, market_price * (1 - band), market_price * (1 + band))

    # ------------------------
    # Bookkeeping
    # ------------------------

    def _record(self, result: SliceResult):
        self.metrics.record(result)
        self._state.executed_quantity = self.metrics.executed_quantity
        self._state.success_count = self.metrics.success_count
        self._state.failure_count = self.metrics.failure_count
        self._state.average_price = self.metrics.average_price
        status = "ok" if result.success else f"FAILED ({result.error_reason})"
        self._emit("slice_result", f"Slice {result.index + 1}: {status}", result)
        self._emit_state()

    def _emit(self, kind: EventKind, message: str, payload=None):
        if kind == "log":
            logger.info("[Executor] %s", message)
        self.events.emit(kind, message, payload)

    def _emit_state(self):
        self.events.emit("state", self._state.status, self.state)
