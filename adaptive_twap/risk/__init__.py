"""Risk: per-slice limit checks and halt control."""

from adaptive_twap.risk.monitor import RiskAlert, RiskCheck, RiskMetrics, RiskMonitor

__all__ = ["RiskAlert", "RiskCheck", "RiskMetrics", "RiskMonitor"]
