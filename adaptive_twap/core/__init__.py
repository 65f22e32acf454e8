"""Core components: config, scheduler, events, exceptions."""

from adaptive_twap.core.config import Config, RiskLimits, TWAPConfig
from adaptive_twap.core.events import EventStream, ExecutionEvent
from adaptive_twap.core.scheduler import SliceScheduler

__all__ = [
    "Config",
    "RiskLimits",
    "TWAPConfig",
    "EventStream",
    "ExecutionEvent",
    "SliceScheduler",
]
