"""
Slice scheduler: timing between slices.

Provides the inter-slice wait that stays responsive to a stop request, and
the estimated end time of a run.
"""

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class SliceScheduler:
    """
    Cancellable interval clock for a time-sliced run.

    `wait()` blocks for up to the requested duration and returns early once
    `stop()` has been called from any thread.
    """

    def __init__(self, interval_sec: float = 0.0):
        """
        Initialize scheduler.

        Args:
            interval_sec: Default wait between slices
        """
        self.interval_sec = max(0.0, float(interval_sec))
        self._stop_event = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def estimated_end(self, start_ts: float, slice_count: int) -> float:
        """Epoch seconds at which the last slice is due (no wait after it)."""
        return start_ts + max(0, slice_count - 1) * self.interval_sec

    def wait(self, seconds: Optional[float] = None) -> bool:
        """
        Sleep until the interval elapses or stop() is called.

        Returns:
            True if interrupted by stop()
        """
        duration = self.interval_sec if seconds is None else max(0.0, float(seconds))
        if self._stop_event.is_set():
            return True
        if duration <= 0:
            return False
        logger.debug("[Scheduler] Waiting %.1fs for next slice", duration)
        return self._stop_event.wait(timeout=duration)

    def stop(self):
        """Wake any pending wait and make future waits return immediately."""
        self._stop_event.set()

    def reset(self, interval_sec: Optional[float] = None):
        """Re-arm for a new run."""
        if interval_sec is not None:
            self.interval_sec = max(0.0, float(interval_sec))
        self._stop_event.clear()
