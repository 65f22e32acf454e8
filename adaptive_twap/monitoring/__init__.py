"""Monitoring: execution statistics."""

from adaptive_twap.monitoring.metrics import ExecutionMetrics

__all__ = ["ExecutionMetrics"]
