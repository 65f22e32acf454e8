"""
Configuration management for the adaptive TWAP engine.

Dataclass sections with defaults, loadable from YAML/dict, with environment
variable overrides for Hyperliquid credentials.
"""

import os
from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Dict, List, Literal


@dataclass
class TWAPConfig:
    """Run configuration: what to execute and how to slice it."""

    coin: str = ""
    side: Literal["buy", "sell"] = "buy"
    total_size: float = 0.0  # Target quantity (base units)
    slice_count: int = 10
    interval_sec: float = 60.0  # Wait between slices

    # VWAP sizing
    vwap_alpha: float = 0.5  # Sensitivity α (0.1 conservative .. 1.0 aggressive)
    min_multiplier: float = 0.1
    max_multiplier: float = 5.0
    vwap_period: int = 20  # Bars used to seed VWAP
    candle_interval: str = "15m"
    vwap_session_reset: bool = False  # Reset VWAP at UTC-day boundaries

    # Slippage protection
    max_slippage_pct: float = 1.0
    max_depth_pct: float = 10.0  # Max share of one book side per slice
    slippage_protection: bool = True

    # Order flags
    time_in_force: Literal["Ioc", "Gtc", "Alo"] = "Ioc"
    reduce_only: bool = False

    @property
    def is_buy(self) -> bool:
        return self.side == "buy"

    def validate(self) -> List[str]:
        """
        Validate run parameters.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.coin:
            errors.append("coin is required")

        if self.side not in ("buy", "sell"):
            errors.append(f"side must be 'buy' or 'sell', got {self.side!r}")

        if not (self.total_size > 0):
            errors.append("total_size must be > 0")

        if not isinstance(self.slice_count, int) or self.slice_count <= 0:
            errors.append("slice_count must be a positive integer")

        if self.interval_sec < 0:
            errors.append("interval_sec must be >= 0")

        if self.vwap_alpha < 0:
            errors.append("vwap_alpha must be >= 0")

        if not (0 < self.min_multiplier <= 1.0 <= self.max_multiplier):
            errors.append("multipliers must satisfy 0 < min_multiplier <= 1 <= max_multiplier")

        if not (self.max_slippage_pct > 0):
            errors.append("max_slippage_pct must be > 0")

        if not (self.max_depth_pct > 0):
            errors.append("max_depth_pct must be > 0")

        if self.vwap_period < 1:
            errors.append("vwap_period must be >= 1")

        if self.time_in_force not in ("Ioc", "Gtc", "Alo"):
            errors.append(f"unsupported time_in_force {self.time_in_force!r}")

        return errors


@dataclass
class PricingConfig:
    """Limit-price construction around the fetched market price."""

    slippage_buffer: float = 0.001  # 0.1% through the market in the order's favour
    price_band: float = 0.75  # Clamp limit to ±75% of market


@dataclass(frozen=True)
class RiskLimits:
    """Account-level limits evaluated per slice."""

    max_price_deviation_pct: float  # Move from session start price (%)
    max_volume_ratio: float  # Slice size / per-minute market volume
    max_slippage_pct: float  # Estimated book slippage (%)
    min_spread: float  # Relative bid-ask spread floor (fraction)
    max_order_notional: float  # USD per slice
    max_total_notional: float  # USD cumulative exposure


RISK_PRESETS: Dict[str, RiskLimits] = {
    "conservative": RiskLimits(
        max_price_deviation_pct=2.0,
        max_volume_ratio=0.01,
        max_slippage_pct=0.5,
        min_spread=0.0001,
        max_order_notional=10_000.0,
        max_total_notional=100_000.0,
    ),
    "balanced": RiskLimits(
        max_price_deviation_pct=3.0,
        max_volume_ratio=0.02,
        max_slippage_pct=1.0,
        min_spread=0.00008,
        max_order_notional=25_000.0,
        max_total_notional=250_000.0,
    ),
    "aggressive": RiskLimits(
        max_price_deviation_pct=5.0,
        max_volume_ratio=0.05,
        max_slippage_pct=2.0,
        min_spread=0.00005,
        max_order_notional=50_000.0,
        max_total_notional=500_000.0,
    ),
}


@dataclass
class RiskConfig:
    """Risk monitor parameters."""

    enabled: bool = True
    preset: Literal["conservative", "balanced", "aggressive"] = "balanced"
    overrides: Dict[str, float] = field(default_factory=dict)  # Per-field overrides of the preset

    alert_retention_sec: float = 300.0  # Active-alert window
    warning_escalation_threshold: int = 0  # 0 = warnings never halt
    fallback_market_volume_24h: float = 1_000_000.0
    halt_poll_sec: float = 1.0

    def limits(self) -> RiskLimits:
        """Preset values with overrides applied."""
        base = RISK_PRESETS[self.preset]
        return replace(base, **self.overrides) if self.overrides else base


@dataclass
class PrecisionConfig:
    """Tick/lot precision enforcement."""

    max_sig_figs: int = 5  # ≤5 significant figures for price
    max_decimals_perp: int = 6  # MAX_DECIMALS for perps
    max_decimals_spot: int = 8  # MAX_DECIMALS for spot
    is_spot: bool = False
    default_sz_decimals: int = 4  # When instrument metadata is unavailable

    @property
    def max_decimals(self) -> int:
        return self.max_decimals_spot if self.is_spot else self.max_decimals_perp


@dataclass
class MonitoringConfig:
    """Logging and event stream."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    event_queue_size: int = 0  # 0 = unbounded


@dataclass
class HyperliquidConfig:
    """Hyperliquid-specific settings."""

    network: Literal["testnet", "mainnet"] = "testnet"
    address: str = ""  # Main wallet address (from env)
    secret_key: str = ""  # API wallet private key (from env)

    # API endpoint (auto-set by network)
    api_url: str = ""

    def __post_init__(self):
        """Set API URL based on network."""
        from hyperliquid.utils import constants

        if self.network == "testnet":
            self.api_url = constants.TESTNET_API_URL
        else:
            self.api_url = constants.MAINNET_API_URL


@dataclass
class Config:
    """
    Complete engine configuration.

    Environment variables (override config file):
    - HL_NETWORK: "testnet" or "mainnet"
    - HL_ADDRESS: Main wallet address
    - HL_SECRET_KEY: API wallet private key
    """

    twap: TWAPConfig = field(default_factory=TWAPConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    precision: PrecisionConfig = field(default_factory=PrecisionConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    hyperliquid: HyperliquidConfig = field(default_factory=HyperliquidConfig)

    def __post_init__(self):
        """Load environment variable overrides."""
        if os.getenv("HL_NETWORK"):
            self.hyperliquid.network = os.getenv("HL_NETWORK", "testnet")

        if os.getenv("HL_ADDRESS"):
            self.hyperliquid.address = os.getenv("HL_ADDRESS", "")

        if os.getenv("HL_SECRET_KEY"):
            self.hyperliquid.secret_key = os.getenv("HL_SECRET_KEY", "")

        # Re-initialize to set API URL
        self.hyperliquid.__post_init__()

    @staticmethod
    def _build(dc_type, data):
        if not is_dataclass(dc_type) or not isinstance(data, dict):
            return data
        kwargs = {}
        for f in fields(dc_type):
            if f.name in data:
                val = data[f.name]
                if hasattr(f.type, "__dataclass_fields__"):
                    kwargs[f.name] = Config._build(f.type, val)
                else:
                    kwargs[f.name] = val
        return dc_type(**kwargs)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load config from YAML file."""
        import yaml

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Load config from dictionary."""
        return cls._build(cls, data)

    def validate(self, require_credentials: bool = True) -> List[str]:
        """
        Validate configuration parameters.

        Args:
            require_credentials: Check HL_ADDRESS / HL_SECRET_KEY (off for dry runs)

        Returns:
            List of validation errors (empty if valid)
        """
        errors = list(self.twap.validate())

        if require_credentials:
            if not self.hyperliquid.secret_key:
                errors.append("HL_SECRET_KEY environment variable required")

        if self.hyperliquid.network not in ("testnet", "mainnet"):
            errors.append(f"hyperliquid.network must be testnet or mainnet, got {self.hyperliquid.network!r}")

        if not (0 <= self.pricing.slippage_buffer < self.pricing.price_band < 1):
            errors.append("pricing must satisfy 0 <= slippage_buffer < price_band < 1")

        if self.risk.preset not in RISK_PRESETS:
            errors.append(f"risk.preset must be one of {sorted(RISK_PRESETS)}")
        else:
            try:
                self.risk.limits()
            except TypeError as e:
                errors.append(f"risk.overrides invalid: {e}")

        if self.risk.warning_escalation_threshold < 0:
            errors.append("risk.warning_escalation_threshold must be >= 0")

        if self.risk.alert_retention_sec <= 0:
            errors.append("risk.alert_retention_sec must be > 0")

        if self.precision.default_sz_decimals < 0:
            errors.append("precision.default_sz_decimals must be >= 0")

        return errors
