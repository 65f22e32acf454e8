"""Market data: typed boundary records and the Hyperliquid loader."""

from adaptive_twap.data.models import Bar, BestPrices, InstrumentMeta, OrderBookSnapshot, PriceLevel
from adaptive_twap.data.loader import MarketDataLoader, bars_from_frame

__all__ = [
    "Bar",
    "BestPrices",
    "InstrumentMeta",
    "OrderBookSnapshot",
    "PriceLevel",
    "MarketDataLoader",
    "bars_from_frame",
]
