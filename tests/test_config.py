"""
Tests for configuration loading and validation.
"""

import pytest

from adaptive_twap.core.config import RISK_PRESETS, Config, TWAPConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("HL_NETWORK", "HL_ADDRESS", "HL_SECRET_KEY"):
        monkeypatch.delenv(var, raising=False)


class TestTWAPConfig:

    def test_valid(self):
        cfg = TWAPConfig(coin="ETH", side="sell", total_size=5.0, slice_count=3, interval_sec=30)
        assert cfg.validate() == []
        assert not cfg.is_buy

    def test_collects_every_error(self):
        cfg = TWAPConfig(coin="", side="hold", total_size=-1, slice_count=0, interval_sec=-5)
        errors = cfg.validate()
        assert "coin is required" in errors
        assert "total_size must be > 0" in errors
        assert "slice_count must be a positive integer" in errors
        assert "interval_sec must be >= 0" in errors
        assert any("side" in e for e in errors)

    def test_multiplier_bounds(self):
        cfg = TWAPConfig(coin="ETH", total_size=1, min_multiplier=1.5, max_multiplier=5.0)
        assert any("multipliers" in e for e in cfg.validate())

    def test_negative_alpha(self):
        cfg = TWAPConfig(coin="ETH", total_size=1, vwap_alpha=-0.1)
        assert "vwap_alpha must be >= 0" in cfg.validate()


class TestConfig:

    def test_defaults(self):
        cfg = Config()
        assert cfg.hyperliquid.network == "testnet"
        assert cfg.hyperliquid.api_url.startswith("https://")
        assert cfg.risk.limits() is RISK_PRESETS["balanced"]
        assert cfg.precision.max_decimals == 6

    def test_from_dict_builds_nested_sections(self):
        cfg = Config.from_dict({
            "twap": {"coin": "BTC", "total_size": 2.5, "slice_count": 5},
            "risk": {"preset": "conservative", "overrides": {"max_total_notional": 1000.0}},
            "precision": {"is_spot": True},
        })
        assert isinstance(cfg.twap, TWAPConfig)
        assert cfg.twap.coin == "BTC"
        assert cfg.twap.vwap_alpha == 0.5
        assert cfg.risk.limits().max_total_notional == 1000.0
        assert cfg.risk.limits().max_price_deviation_pct == 2.0
        assert cfg.precision.max_decimals == 8

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "twap.yaml"
        path.write_text(
            "twap:\n"
            "  coin: SOL\n"
            "  side: sell\n"
            "  total_size: 100\n"
            "pricing:\n"
            "  slippage_buffer: 0.002\n"
        )
        cfg = Config.from_yaml(str(path))
        assert cfg.twap.coin == "SOL"
        assert cfg.twap.side == "sell"
        assert cfg.pricing.slippage_buffer == 0.002

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("HL_NETWORK", "mainnet")
        monkeypatch.setenv("HL_SECRET_KEY", "0xabc")
        cfg = Config()
        assert cfg.hyperliquid.network == "mainnet"
        assert cfg.hyperliquid.secret_key == "0xabc"
        assert "testnet" not in cfg.hyperliquid.api_url

    def test_validate_requires_credentials(self):
        cfg = Config(twap=TWAPConfig(coin="ETH", total_size=1.0))
        assert "HL_SECRET_KEY environment variable required" in cfg.validate()
        assert cfg.validate(require_credentials=False) == []

    def test_validate_pricing_and_overrides(self):
        cfg = Config.from_dict({
            "twap": {"coin": "ETH", "total_size": 1.0},
            "pricing": {"slippage_buffer": 0.9, "price_band": 0.5},
            "risk": {"overrides": {"not_a_limit": 1.0}},
        })
        errors = cfg.validate(require_credentials=False)
        assert any(e.startswith("pricing") for e in errors)
        assert any(e.startswith("risk.overrides") for e in errors)
