"""
Main entry point for the adaptive TWAP engine.

Wires the components together: Config → Data → Router → Executor, and
streams execution events to the console while a run is in progress.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

from adaptive_twap.core.config import Config
from adaptive_twap.core.events import EventStream, ExecutionEvent
from adaptive_twap.data.loader import MarketDataLoader
from adaptive_twap.execution.executor import TWAPExecutor
from adaptive_twap.execution.orders import ExecutionSummary
from adaptive_twap.execution.router import OrderRouter
from adaptive_twap.execution.simulator import TWAPSimulator

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> Config:
    """Config file (or defaults + env) with command-line overrides applied."""
    config = Config.from_yaml(args.config) if args.config else Config()
    twap = config.twap
    if args.coin:
        twap.coin = args.coin
    if args.side:
        twap.side = args.side
    if args.size is not None:
        twap.total_size = args.size
    if args.slices is not None:
        twap.slice_count = args.slices
    if args.interval is not None:
        twap.interval_sec = args.interval
    if args.preset:
        config.risk.preset = args.preset
    return config


def print_event(event: ExecutionEvent):
    if event.kind in ("state", "log"):
        return
    print(f"[{event.kind}] {event.message}")


def print_summary(summary: ExecutionSummary):
    print("\n" + "=" * 60)
    print(f"  TWAP {summary.status.upper()}")
    print("=" * 60)
    print(f"  Slices:        {summary.successful_slices}/{summary.attempted_slices} ok "
          f"({summary.failed_slices} failed, {summary.total_slices} planned)")
    print(f"  Executed:      {summary.executed_size:g} / {summary.total_size:g} "
          f"(remaining {summary.remaining_size:g})")
    print(f"  Avg price:     {summary.average_price:.6f}")
    print(f"  vs VWAP:       {summary.vwap_deviation_pct:+.4f}%")
    print(f"  Slippage:      avg {summary.slippage.average:.4f}% "
          f"max {summary.slippage.maximum:.4f}% min {summary.slippage.minimum:.4f}%")
    print(f"  Duration:      {summary.duration_sec:.1f}s")


def run_simulation(config: Config, loader: MarketDataLoader) -> int:
    cfg = config.twap
    meta = loader.fetch_instrument_metadata(cfg.coin)
    bars = loader.fetch_candles(cfg.coin, cfg.candle_interval, cfg.vwap_period + cfg.slice_count)
    if not bars:
        print(f"[ERROR] No candles returned for {cfg.coin}")
        return 1

    simulator = TWAPSimulator(loader)
    results = simulator.run(cfg, bars, meta.sz_decimals)
    for r in results:
        print(f"  #{r.index + 1:>3} {r.status:<8} {r.size:>12g} @ {r.price:.6f} "
              f"VWAP {r.vwap:.6f} x{r.multiplier:.3f} slip {r.slippage_pct:.3f}%")

    report = simulator.performance(results, cfg.slice_count)
    print("\n" + "=" * 60)
    print("  SIMULATION REPORT")
    print("=" * 60)
    print(f"  Executed:         {report.total_executed:g} / {cfg.total_size:g}")
    print(f"  Avg price:        {report.average_price:.6f}")
    print(f"  Equal-slice TWAP: {report.twap_average_price:.6f}")
    print(f"  vs VWAP:          {report.vwap_performance_pct:+.4f}%")
    print(f"  Avg slippage:     {report.average_slippage_pct:.4f}%")
    print(f"  Avg multiplier:   {report.average_multiplier:.3f}")
    print(f"  Execution rate:   {report.execution_rate_pct:.1f}%")
    return 0


def run_live(config: Config, loader: MarketDataLoader, dry_run: bool) -> int:
    cfg = config.twap
    router = OrderRouter.from_config(config, dry_run=dry_run)
    events = EventStream(config.monitoring.event_queue_size)
    executor = TWAPExecutor(config, loader, router, events=events)

    bars = loader.fetch_candles(cfg.coin, cfg.candle_interval, cfg.vwap_period)
    outcome = {}

    def worker():
        try:
            outcome["summary"] = executor.execute(cfg, bars)
        except Exception as e:
            outcome["error"] = e

    thread = threading.Thread(target=worker, name="twap-executor", daemon=True)
    thread.start()

    try:
        while thread.is_alive() or not events.empty():
            event = events.poll(timeout=0.5)
            if event is not None:
                print_event(event)
    except KeyboardInterrupt:
        print("\n[Main] Shutdown signal received, stopping after the current slice...")
        executor.stop()
        thread.join()
        for event in events.drain():
            print_event(event)

    if "error" in outcome:
        print(f"[ERROR] {outcome['error']}")
        return 1
    print_summary(outcome["summary"])
    return 0


def main():
    """CLI entry point."""
    print("=" * 60)
    print("  ADAPTIVE TWAP - Hyperliquid")
    print("=" * 60)

    parser = argparse.ArgumentParser(description="VWAP-enhanced TWAP execution on Hyperliquid")
    parser.add_argument("--config", type=str, default="", help="Path to YAML config file")
    parser.add_argument("--coin", type=str, default="", help="Instrument, e.g. ETH")
    parser.add_argument("--side", choices=["buy", "sell"], default=None)
    parser.add_argument("--size", type=float, default=None, help="Total quantity (base units)")
    parser.add_argument("--slices", type=int, default=None, help="Number of slices")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between slices")
    parser.add_argument("--preset", choices=["conservative", "balanced", "aggressive"], default=None)
    parser.add_argument("--dry-run", action="store_true", help="Validate and log orders without sending them")
    parser.add_argument("--simulate", action="store_true", help="Replay the schedule over recent candles")
    args = parser.parse_args()

    # Load .env if present (before Config) to populate HL_* variables
    load_dotenv(dotenv_path=Path.cwd() / ".env")

    config = build_config(args)
    logging.basicConfig(
        level=getattr(logging, config.monitoring.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    errors = config.validate(require_credentials=not (args.dry_run or args.simulate))
    if errors:
        print("[ERROR] Configuration validation failed:")
        for err in errors:
            print(f"  - {err}")
        sys.exit(1)

    print(f"[Init] {config.twap.side.upper()} {config.twap.total_size:g} {config.twap.coin} "
          f"in {config.twap.slice_count} slices on {config.hyperliquid.network}")

    loader = MarketDataLoader(config)
    if args.simulate:
        sys.exit(run_simulation(config, loader))
    sys.exit(run_live(config, loader, args.dry_run))


if __name__ == "__main__":
    main()
