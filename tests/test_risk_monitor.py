"""
Tests for the risk monitor.
"""

from dataclasses import replace

import pytest

from adaptive_twap.core.config import RISK_PRESETS, RiskConfig
from adaptive_twap.core.events import EventStream
from adaptive_twap.risk.monitor import RiskMonitor

from conftest import make_book


class Clock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t


@pytest.fixture
def clock():
    return Clock(1_000.0)


@pytest.fixture
def book():
    return make_book()


def build(book, clock, risk_config=None, limits=None, events=None, side="buy"):
    monitor = RiskMonitor(
        "ETH", side, lambda coin: book,
        risk_config=risk_config, limits=limits, events=events, clock=clock,
    )
    monitor.initialize(100.0, market_volume_24h=1_440_000_000.0)
    return monitor


class TestChecks:

    def test_clean_check_proceeds(self, book, clock):
        monitor = build(book, clock)
        check = monitor.check_limits(10.0, 100.0, 0.0)
        assert check.can_proceed
        assert check.alerts == []
        assert check.book is book
        assert check.metrics.spread == pytest.approx(0.1 / 99.9)
        assert check.metrics.total_exposure == pytest.approx(1_000.0)

    def test_price_deviation_is_critical(self, book, clock):
        monitor = build(book, clock)
        check = monitor.check_limits(1.0, 104.0, 0.0)
        assert not check.can_proceed
        assert check.alerts[0].level == "critical"
        assert check.alerts[0].metric == "price_deviation_pct"
        assert monitor.is_halted
        assert "Price deviation" in monitor.halt_reason

    def test_estimated_slippage_is_critical(self, clock):
        thin = make_book(asks=((100.0, 1.0), (110.0, 100.0)))
        monitor = build(thin, clock)
        check = monitor.check_limits(2.0, 100.0, 0.0)
        assert not check.can_proceed
        assert any(a.metric == "estimated_slippage_pct" for a in check.alerts)

    def test_total_exposure_counts_prospective_slice(self, book, clock):
        limits = replace(RISK_PRESETS["balanced"], max_total_notional=1_500.0)
        monitor = build(book, clock, limits=limits)
        assert monitor.check_limits(5.0, 100.0, 9.0).can_proceed is True
        check = monitor.check_limits(7.0, 100.0, 9.0)
        assert not check.can_proceed
        assert check.alerts[-1].metric == "total_exposure"

    def test_warnings_do_not_block(self, clock):
        tight = make_book(bids=((100.0, 1e6),), asks=((100.001, 1e6),))
        limits = replace(RISK_PRESETS["balanced"], max_order_notional=10.0)
        monitor = build(tight, clock, limits=limits)
        check = monitor.check_limits(1.0, 100.0, 0.0)
        assert check.can_proceed
        metrics = {a.metric for a in check.alerts}
        assert metrics == {"spread", "order_notional"}
        assert all(a.level == "warning" for a in check.alerts)

    def test_volume_ratio_warning(self, book, clock):
        monitor = RiskMonitor("ETH", "buy", lambda coin: book, clock=clock)
        monitor.initialize(100.0, market_volume_24h=None)
        # Fallback 1,000,000 / 1440 ≈ 694 per minute
        check = monitor.check_limits(20.0, 100.0, 0.0)
        assert [a.metric for a in check.alerts] == ["order_size_ratio"]
        assert check.can_proceed

    def test_unavailable_book_warns_only(self, clock):
        monitor = build(None, clock)
        check = monitor.check_limits(10.0, 100.0, 0.0)
        assert check.can_proceed
        assert check.metrics.estimated_slippage_pct == 0.0
        assert [a.metric for a in check.alerts] == ["book_available"]

    def test_warning_escalation(self, book, clock):
        cfg = RiskConfig(warning_escalation_threshold=2)
        limits = replace(RISK_PRESETS["balanced"], max_order_notional=10.0)
        monitor = build(book, clock, risk_config=cfg, limits=limits)
        assert monitor.check_limits(1.0, 100.0, 0.0).can_proceed
        check = monitor.check_limits(1.0, 100.0, 0.0)
        assert not check.can_proceed
        assert check.alerts[-1].metric == "warning_escalation"


class TestHaltLifecycle:

    def test_halt_persists_until_resume(self, book, clock):
        monitor = build(book, clock)
        monitor.check_limits(1.0, 104.0, 0.0)
        assert monitor.is_halted

        # Condition cleared, still halted
        check = monitor.check_limits(1.0, 100.0, 0.0)
        assert not check.can_proceed
        assert check.alerts == []

        monitor.resume()
        assert not monitor.is_halted
        assert monitor.halt_reason is None
        assert monitor.check_limits(1.0, 100.0, 0.0).can_proceed

    def test_initialize_clears_session(self, book, clock):
        monitor = build(book, clock)
        monitor.check_limits(1.0, 104.0, 0.0)
        monitor.initialize(104.0)
        assert not monitor.is_halted
        assert monitor.alerts == []
        assert monitor.check_limits(1.0, 104.0, 0.0).can_proceed

    def test_reset_ends_session(self, book, clock):
        monitor = build(book, clock)
        monitor.check_limits(1.0, 104.0, 0.0)
        assert monitor.is_halted

        monitor.reset()
        assert not monitor.initialized
        assert not monitor.is_halted
        assert monitor.halt_reason is None
        assert monitor.alerts == []
        assert monitor.warning_count == 0


class TestAlerts:

    def test_active_alerts_expire_after_retention(self, book, clock):
        monitor = build(book, clock)
        monitor.check_limits(1.0, 104.0, 0.0)
        assert len(monitor.get_active_alerts()) == 1

        clock.t += 301.0
        assert monitor.get_active_alerts() == []
        assert len(monitor.alerts) == 1

    def test_alerts_published_as_events(self, book, clock):
        events = EventStream()
        monitor = build(book, clock, events=events)
        monitor.check_limits(1.0, 104.0, 0.0)
        published = [e for e in events.drain() if e.kind == "risk_alert"]
        assert len(published) == 1
        assert published[0].payload.metric == "price_deviation_pct"

    def test_clear_alerts(self, book, clock):
        monitor = build(book, clock)
        monitor.check_limits(1.0, 104.0, 0.0)
        monitor.clear_alerts()
        assert monitor.alerts == []
