"""
Tests for the market data loader (Info client mocked).
"""

from unittest.mock import MagicMock

import pandas as pd
import pytest

from adaptive_twap.core.config import Config
from adaptive_twap.core.exceptions import MarketDataError
from adaptive_twap.data.loader import MarketDataLoader, bars_from_frame, interval_to_ms
from adaptive_twap.data.models import OrderBookSnapshot, PriceLevel

L2 = {
    "coin": "ETH",
    "time": 1_700_000_000_000,
    "levels": [
        [{"px": "99.8", "sz": "3", "n": 1}, {"px": "99.9", "sz": "2", "n": 1}],
        [{"px": "100.2", "sz": "4", "n": 2}, {"px": "100.0", "sz": "1", "n": 1}],
    ],
}

META = (
    {"universe": [{"name": "BTC", "szDecimals": 5}, {"name": "ETH", "szDecimals": 4}]},
    [{"dayBaseVlm": "1000"}, {"dayBaseVlm": "25000.5"}],
)


@pytest.fixture
def info():
    return MagicMock()


@pytest.fixture
def loader(info):
    ldr = MarketDataLoader(Config(), info=info)
    ldr.retry_delay = 0.0
    return ldr


class TestBook:

    def test_best_prices(self, loader, info):
        info.l2_snapshot.return_value = L2
        prices = loader.fetch_best_prices("ETH")
        assert prices.bid == 99.9
        assert prices.ask == 100.0
        assert prices.for_side("buy") == 100.0
        assert prices.for_side("sell") == 99.9

    def test_book_levels_sorted(self, loader, info):
        info.l2_snapshot.return_value = L2
        book = loader.fetch_order_book("ETH")
        assert [l.price for l in book.bids] == [99.9, 99.8]
        assert [l.price for l in book.asks] == [100.0, 100.2]
        assert book.captured_at == 1_700_000_000.0

    def test_one_sided_market_reports_missing_side_as_zero(self, loader, info):
        info.l2_snapshot.return_value = {"levels": [[], [{"px": "100", "sz": "5"}]]}
        prices = loader.fetch_best_prices("ETH")
        assert prices.for_side("buy") == 100.0
        assert prices.for_side("sell") == 0.0
        assert prices.mid == 0.0

    def test_missing_levels_raise(self, loader, info):
        info.l2_snapshot.return_value = {"coin": "ETH"}
        with pytest.raises(MarketDataError):
            loader.fetch_best_prices("ETH")

    def test_book_unavailable_after_retries(self, loader, info):
        info.l2_snapshot.side_effect = TimeoutError("timeout")
        assert loader.fetch_order_book("ETH") is None
        assert info.l2_snapshot.call_count == 3

    def test_transient_failure_retried(self, loader, info):
        info.l2_snapshot.side_effect = [TimeoutError("timeout"), L2]
        assert loader.fetch_best_prices("ETH").ask == 100.0

    def test_malformed_level_rejected(self):
        with pytest.raises(MarketDataError):
            PriceLevel.from_wire({"px": "abc", "sz": "1"})
        with pytest.raises(MarketDataError):
            PriceLevel.from_wire({"px": "1", "sz": "-1"})
        with pytest.raises(MarketDataError):
            OrderBookSnapshot.from_l2("ETH", {"levels": []})


class TestMetadata:

    def test_lookup(self, loader, info):
        info.meta_and_asset_ctxs.return_value = list(META)
        meta = loader.fetch_instrument_metadata("ETH")
        assert meta.sz_decimals == 4
        assert meta.asset_index == 1
        assert meta.day_volume == 25000.5

    def test_unknown_coin_uses_default(self, loader, info):
        info.meta_and_asset_ctxs.return_value = list(META)
        meta = loader.fetch_instrument_metadata("DOGE")
        assert meta.sz_decimals == 4
        assert meta.asset_index is None

    def test_endpoint_failure_uses_default(self, loader, info):
        info.meta_and_asset_ctxs.side_effect = RuntimeError("down")
        meta = loader.fetch_instrument_metadata("ETH")
        assert meta.sz_decimals == Config().precision.default_sz_decimals
        assert meta.day_volume is None


class TestCandles:

    def test_fetch_candles_drops_malformed(self, loader, info):
        info.candles_snapshot.return_value = [
            {"t": 2000, "o": "1", "h": "12", "l": "10", "c": "11", "v": "5"},
            {"t": 1000, "o": "1", "h": "11", "l": "9", "c": "10", "v": "4"},
            {"t": 3000, "o": "1", "h": "bad", "l": "9", "c": "10", "v": "4"},
        ]
        bars = loader.fetch_candles("ETH", "15m", 10)
        assert [b.timestamp for b in bars] == [1000, 2000]
        assert bars[1].typical_price == pytest.approx(11.0)

    def test_latest_bar(self, loader, info):
        info.candles_snapshot.return_value = [
            {"t": 1000, "h": "11", "l": "9", "c": "10", "v": "4"},
            {"t": 2000, "h": "12", "l": "10", "c": "11", "v": "5"},
        ]
        assert loader.fetch_latest_bar("ETH", "1m").timestamp == 2000

    def test_no_candles(self, loader, info):
        info.candles_snapshot.return_value = []
        assert loader.fetch_latest_bar("ETH", "1m") is None

    def test_frame_long_column_names(self):
        df = pd.DataFrame({
            "timestamp": [1, 1, 2],
            "high": [2.0, 3.0, 4.0],
            "low": [1.0, 1.0, 2.0],
            "close": [1.5, 2.0, 3.0],
            "volume": [10, 11, 12],
        })
        bars = bars_from_frame(df)
        assert len(bars) == 2
        assert bars[0].close == 2.0  # Duplicate timestamp keeps last

    def test_frame_missing_column(self):
        with pytest.raises(MarketDataError):
            bars_from_frame(pd.DataFrame({"t": [1], "h": [1.0]}))

    def test_interval_to_ms(self):
        assert interval_to_ms("15m") == 900_000
        with pytest.raises(ValueError):
            interval_to_ms("7m")
