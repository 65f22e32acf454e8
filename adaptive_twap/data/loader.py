"""
Market Data Loader

Pulls top of book, l2Book depth, instrument metadata and candles from the
Hyperliquid Info endpoint. Read calls retry with backoff; payloads are
validated into typed records before they reach the engine.
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

import pandas as pd
from hyperliquid.info import Info

from adaptive_twap.core.config import Config
from adaptive_twap.core.exceptions import MarketDataError
from adaptive_twap.data.models import Bar, BestPrices, InstrumentMeta, OrderBookSnapshot

logger = logging.getLogger(__name__)

_CANDLE_COLUMNS = ["t", "h", "l", "c", "v"]
_FRAME_ALIASES = {
    "timestamp": "t",
    "time": "t",
    "open": "o",
    "high": "h",
    "low": "l",
    "close": "c",
    "volume": "v",
}


def interval_to_ms(interval: str) -> int:
    """
    Convert interval string to milliseconds (supports 1m..1d subset used here).
    """
    mapping = {
        "1m": 60_000,
        "3m": 3 * 60_000,
        "5m": 5 * 60_000,
        "15m": 15 * 60_000,
        "30m": 30 * 60_000,
        "1h": 60 * 60_000,
        "2h": 2 * 60 * 60_000,
        "4h": 4 * 60 * 60_000,
        "8h": 8 * 60 * 60_000,
        "12h": 12 * 60 * 60_000,
        "1d": 24 * 60 * 60_000,
    }
    if interval not in mapping:
        raise ValueError(f"Unsupported interval: {interval}")
    return mapping[interval]


def bars_from_frame(df: pd.DataFrame) -> List[Bar]:
    """
    Convert a candle DataFrame to bars.

    Accepts Hyperliquid column names (t, o, h, l, c, v) or long names
    (timestamp, open, high, low, close, volume). Rows with missing or
    non-numeric fields are dropped.
    """
    if df is None or df.empty:
        return []
    frame = df.rename(columns={k: v for k, v in _FRAME_ALIASES.items() if k in df.columns})
    missing = [c for c in _CANDLE_COLUMNS if c not in frame.columns]
    if missing:
        raise MarketDataError(f"candle frame missing columns {missing}")

    frame = frame.copy()
    for col in _CANDLE_COLUMNS + (["o"] if "o" in frame.columns else []):
        frame[col] = pd.to_numeric(frame[col], errors="coerce")
    bad = frame[_CANDLE_COLUMNS].isna().any(axis=1)
    if bad.any():
        logger.warning("[DataLoader] Dropping %d malformed candle rows", int(bad.sum()))
    frame = frame[~bad].sort_values("t", kind="stable").drop_duplicates(subset="t", keep="last")

    bars: List[Bar] = []
    for row in frame.itertuples(index=False):
        bars.append(Bar(
            timestamp=int(row.t),
            open=float(getattr(row, "o", 0.0) or 0.0),
            high=float(row.h),
            low=float(row.l),
            close=float(row.c),
            volume=float(row.v),
        ))
    return bars


class MarketDataLoader:
    """
    Fetches market data from Hyperliquid Info endpoint using SDK methods.

    Handles:
    - Top of book (bestBid / bestAsk)
    - L2 order book snapshot (fresh on every call, no caching)
    - Instrument metadata (szDecimals, asset index, 24h volume)
    - Candle snapshots
    """

    def __init__(self, config: Config, info: Optional[Info] = None):
        """
        Initialize data loader.

        Args:
            config: Engine configuration
            info: Pre-built Info client (built from config when omitted)
        """
        self.config = config
        self.info = info if info is not None else Info(config.hyperliquid.api_url, skip_ws=True)
        self.max_attempts = 3
        self.retry_delay = 0.5

    # ------------------------
    # Internal helpers
    # ------------------------

    def _with_retries(self, func, *args, **kwargs):
        """Call Info method with retries/backoff."""
        delay = self.retry_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if attempt == self.max_attempts:
                    raise MarketDataError(f"{getattr(func, '__name__', 'info call')} failed: {e}") from e
                logger.debug("[DataLoader] attempt %d failed: %s", attempt, e)
                time.sleep(delay)
                delay *= 2

    def get_meta_and_asset_ctxs(self) -> Tuple[Dict, List[Dict]]:
        """
        Fetch universe metadata and asset contexts using SDK.

        Returns:
            Tuple of (meta, asset_contexts)
        """
        resp = self._with_retries(self.info.meta_and_asset_ctxs)
        # Official shape: [meta, assetCtxs]
        if isinstance(resp, list) and len(resp) >= 2:
            meta = resp[0] or {}
            asset_ctxs = resp[1] or []
        elif isinstance(resp, dict):
            meta = resp.get("meta") or {}
            asset_ctxs = resp.get("assetCtxs") or []
        else:
            raise MarketDataError("Unexpected response for metaAndAssetCtxs")
        return meta, asset_ctxs

    # ------------------------
    # Collaborator interface
    # ------------------------

    def fetch_order_book(self, coin: str) -> Optional[OrderBookSnapshot]:
        """
        Fetch a fresh L2 snapshot.

        Returns:
            Snapshot, or None when the book is unavailable
        """
        try:
            resp = self._with_retries(self.info.l2_snapshot, coin)
            return OrderBookSnapshot.from_l2(coin, resp)
        except MarketDataError as e:
            logger.warning("[DataLoader] Order book unavailable for %s: %s", coin, e)
            return None

    def fetch_best_prices(self, coin: str) -> BestPrices:
        """
        Fetch top of book. An empty side is reported as 0.0; callers check
        the side they trade against.

        Raises:
            MarketDataError: book unavailable
        """
        resp = self._with_retries(self.info.l2_snapshot, coin)
        book = OrderBookSnapshot.from_l2(coin, resp)
        if book.is_empty:
            logger.warning("[DataLoader] Empty book for %s", coin)
        return BestPrices(bid=book.best_bid, ask=book.best_ask)

    def fetch_instrument_metadata(self, coin: str) -> InstrumentMeta:
        """
        Look up szDecimals, asset index and 24h volume.

        Missing instruments fall back to the configured default precision.
        """
        default = InstrumentMeta(coin=coin, sz_decimals=self.config.precision.default_sz_decimals)
        try:
            meta, asset_ctxs = self.get_meta_and_asset_ctxs()
        except MarketDataError as e:
            logger.warning("[DataLoader] Metadata unavailable for %s, using defaults: %s", coin, e)
            return default

        for i, u in enumerate(meta.get("universe", [])):
            if u.get("name") != coin:
                continue
            ctx = asset_ctxs[i] if i < len(asset_ctxs) else {}
            day_volume = None
            try:
                if ctx.get("dayBaseVlm") is not None:
                    day_volume = float(ctx["dayBaseVlm"])
            except (TypeError, ValueError):
                day_volume = None
            sz_dec = u.get("szDecimals")
            return InstrumentMeta(
                coin=coin,
                sz_decimals=int(sz_dec) if sz_dec is not None else default.sz_decimals,
                asset_index=i,
                day_volume=day_volume,
            )

        logger.warning("[DataLoader] %s not in universe, using default szDecimals=%d", coin, default.sz_decimals)
        return default

    def fetch_candles(self, coin: str, interval: str, count: int) -> List[Bar]:
        """
        Fetch the most recent `count` candles, oldest first.

        Args:
            coin: Asset name
            interval: Bar interval ("1m", "15m", "1h", ...)
            count: Number of bars wanted

        Returns:
            Bars (malformed rows dropped)
        """
        interval_ms = interval_to_ms(interval)
        end_ms = int(time.time() * 1000)
        start_ms = end_ms - max(1, count) * interval_ms
        resp = self._with_retries(self.info.candles_snapshot, coin, interval, start_ms, end_ms)
        candles = resp if isinstance(resp, list) else (resp or {}).get("candles", [])
        records = [c for c in candles if isinstance(c, dict)]
        if not records:
            return []
        bars = bars_from_frame(pd.DataFrame.from_records(records))
        return bars[-count:] if count > 0 else bars

    def fetch_latest_bar(self, coin: str, interval: str) -> Optional[Bar]:
        """Most recent candle, or None if none returned."""
        bars = self.fetch_candles(coin, interval, 2)
        return bars[-1] if bars else None
