"""
Pytest Configuration
====================

Shared fixtures and in-memory collaborators for testing.
"""

from typing import List, Optional

import pytest

from adaptive_twap.core.config import Config, TWAPConfig
from adaptive_twap.core.events import EventStream
from adaptive_twap.core.exceptions import MarketDataError
from adaptive_twap.data.models import Bar, BestPrices, InstrumentMeta, OrderBookSnapshot
from adaptive_twap.execution.orders import OrderRequest, OrderResult


def make_bars(typical: float, count: int = 20, volume: float = 1_000.0, start_ms: int = 1_700_000_000_000) -> List[Bar]:
    """Flat bars whose HLC3 equals `typical`."""
    return [
        Bar(timestamp=start_ms + i * 60_000, high=typical + 1, low=typical - 1, close=typical, volume=volume)
        for i in range(count)
    ]


def make_book(
    bids=((99.9, 1_000_000.0), (99.8, 1_000_000.0)),
    asks=((100.0, 1_000_000.0), (100.1, 1_000_000.0)),
    coin: str = "ETH",
) -> OrderBookSnapshot:
    return OrderBookSnapshot.from_levels(coin, [list(b) for b in bids], [list(a) for a in asks], captured_at=0.0)


class FakeDataLoader:
    """Scripted market data: fixed top of book and depth."""

    def __init__(self, bid: float = 99.9, ask: float = 100.0, book: Optional[OrderBookSnapshot] = None,
                 meta: Optional[InstrumentMeta] = None):
        self.bid = bid
        self.ask = ask
        self.book = book if book is not None else make_book()
        self.meta = meta or InstrumentMeta(coin="ETH", sz_decimals=2, asset_index=1, day_volume=1_000_000_000.0)
        self.latest_bar: Optional[Bar] = None
        self.fail_prices_on = set()  # Call indices that raise
        self.price_calls = 0

    def fetch_best_prices(self, coin: str) -> BestPrices:
        idx = self.price_calls
        self.price_calls += 1
        if idx in self.fail_prices_on:
            raise MarketDataError("l2Book request timed out")
        return BestPrices(bid=self.bid, ask=self.ask)

    def fetch_order_book(self, coin: str) -> Optional[OrderBookSnapshot]:
        return self.book

    def fetch_instrument_metadata(self, coin: str) -> InstrumentMeta:
        return self.meta

    def fetch_latest_bar(self, coin: str, interval: str) -> Optional[Bar]:
        return self.latest_bar


class FakeRouter:
    """Accepts every order; records what was sent."""

    def __init__(self):
        self.requests: List[OrderRequest] = []
        self.reject_on = set()  # Submission indices that fail

    def ensure_ready(self):
        pass

    def submit_order(self, request: OrderRequest) -> OrderResult:
        idx = len(self.requests)
        self.requests.append(request)
        if idx in self.reject_on:
            return OrderResult(success=False, error="Order could not immediately match")
        return OrderResult(success=True, order_id=f"oid-{idx}")


@pytest.fixture
def run_config():
    return TWAPConfig(coin="ETH", side="buy", total_size=100.0, slice_count=10, interval_sec=0)


@pytest.fixture
def config(run_config):
    cfg = Config()
    cfg.twap = run_config
    cfg.risk.halt_poll_sec = 0.01
    return cfg


@pytest.fixture
def loader():
    return FakeDataLoader()


@pytest.fixture
def router():
    return FakeRouter()


@pytest.fixture
def events():
    return EventStream()


@pytest.fixture
def bars():
    return make_bars(100.0)
