"""
Market data records.

Typed, immutable records for the payloads that cross the exchange boundary.
Parsers validate field shape and reject malformed records with
MarketDataError before they reach the engine.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Optional, Tuple

from adaptive_twap.core.exceptions import MarketDataError


def _num(payload: Any, key: str, kind: str) -> float:
    try:
        raw = payload[key]
    except (KeyError, TypeError, IndexError):
        raise MarketDataError(f"{kind} missing field {key!r}: {payload!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise MarketDataError(f"{kind} field {key!r} is not numeric: {raw!r}")
    if math.isnan(value):
        raise MarketDataError(f"{kind} field {key!r} is NaN")
    return value


@dataclass(frozen=True)
class Bar:
    """One OHLCV candle. Timestamp is the bar open in epoch milliseconds."""

    timestamp: int
    high: float
    low: float
    close: float
    volume: float
    open: float = 0.0

    @property
    def typical_price(self) -> float:
        """HLC3."""
        return (self.high + self.low + self.close) / 3.0

    @property
    def is_valid(self) -> bool:
        """All of high/low/close/volume finite and positive."""
        return all(
            math.isfinite(v) and v > 0
            for v in (self.high, self.low, self.close, self.volume)
        )


@dataclass(frozen=True)
class PriceLevel:
    """Resting size at one price."""

    price: float
    size: float

    @classmethod
    def from_wire(cls, lvl: Any) -> "PriceLevel":
        """Parse {"px", "sz", "n"} dicts or [px, sz] pairs."""
        if isinstance(lvl, (list, tuple)) and len(lvl) >= 2:
            lvl = {"px": lvl[0], "sz": lvl[1]}
        px = _num(lvl, "px", "level")
        sz = _num(lvl, "sz", "level")
        if not math.isfinite(px) or px <= 0:
            raise MarketDataError(f"level price must be positive, got {px}")
        if not math.isfinite(sz) or sz < 0:
            raise MarketDataError(f"level size must be >= 0, got {sz}")
        return cls(price=px, size=sz)


@dataclass(frozen=True)
class OrderBookSnapshot:
    """
    Two-sided depth snapshot.

    Bids are held best (highest) first, asks best (lowest) first, regardless
    of the order they were supplied in.
    """

    coin: str
    bids: Tuple[PriceLevel, ...] = ()
    asks: Tuple[PriceLevel, ...] = ()
    captured_at: float = field(default_factory=time.time)

    def __post_init__(self):
        object.__setattr__(self, "bids", tuple(sorted(self.bids, key=lambda l: -l.price)))
        object.__setattr__(self, "asks", tuple(sorted(self.asks, key=lambda l: l.price)))

    @property
    def best_bid(self) -> float:
        return self.bids[0].price if self.bids else 0.0

    @property
    def best_ask(self) -> float:
        return self.asks[0].price if self.asks else 0.0

    @property
    def is_empty(self) -> bool:
        return not self.bids and not self.asks

    def side_levels(self, side: Literal["buy", "sell"]) -> Tuple[PriceLevel, ...]:
        """Levels a `side` order would consume: asks for buys, bids for sells."""
        return self.asks if side == "buy" else self.bids

    @classmethod
    def empty(cls, coin: str) -> "OrderBookSnapshot":
        return cls(coin=coin)

    @classmethod
    def from_levels(
        cls,
        coin: str,
        bids: Iterable[Any],
        asks: Iterable[Any],
        captured_at: Optional[float] = None,
    ) -> "OrderBookSnapshot":
        return cls(
            coin=coin,
            bids=tuple(PriceLevel.from_wire(b) for b in bids),
            asks=tuple(PriceLevel.from_wire(a) for a in asks),
            captured_at=time.time() if captured_at is None else captured_at,
        )

    @classmethod
    def from_l2(cls, coin: str, resp: Any) -> "OrderBookSnapshot":
        """
        Parse an l2Book response: {"coin", "levels": [[bids], [asks]], "time"}.
        """
        if not isinstance(resp, dict):
            raise MarketDataError(f"l2Book response must be a mapping, got {type(resp).__name__}")
        levels = resp.get("levels")
        if not isinstance(levels, (list, tuple)) or len(levels) < 2:
            raise MarketDataError(f"l2Book response for {coin} has no levels")
        bids, asks = levels[0] or [], levels[1] or []
        t = resp.get("time")
        captured = float(t) / 1000.0 if isinstance(t, (int, float)) and t > 0 else time.time()
        return cls.from_levels(resp.get("coin") or coin, bids, asks, captured)


@dataclass(frozen=True)
class BestPrices:
    """Top of book."""

    bid: float
    ask: float

    def for_side(self, side: Literal["buy", "sell"]) -> float:
        """Price a `side` order would trade against."""
        return self.ask if side == "buy" else self.bid

    @property
    def mid(self) -> float:
        if self.bid > 0 and self.ask > 0:
            return (self.bid + self.ask) / 2.0
        return 0.0


@dataclass(frozen=True)
class InstrumentMeta:
    """Venue metadata for one instrument."""

    coin: str
    sz_decimals: int
    asset_index: Optional[int] = None
    day_volume: Optional[float] = None  # 24h base volume, when reported
