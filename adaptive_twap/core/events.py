"""
Execution event stream.

The executor publishes an ordered sequence of typed events (log lines, run
state snapshots, slice results, risk alerts). Callers either subscribe a
callback or poll the queue from another thread.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Literal, Optional

logger = logging.getLogger(__name__)

EventKind = Literal[
    "run_started",
    "log",
    "state",
    "slice_result",
    "risk_alert",
    "halted",
    "resumed",
    "error",
    "run_completed",
]


@dataclass(frozen=True)
class ExecutionEvent:
    """One entry in the event stream."""

    kind: EventKind
    message: str = ""
    payload: Any = None
    timestamp: float = field(default_factory=time.time)


class EventStream:
    """
    Thread-safe event channel.

    Subscribers are invoked synchronously on the publishing thread, in
    subscription order. Every event is also queued for pollers; with a bounded
    queue the oldest event is dropped to make room.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[ExecutionEvent]" = queue.Queue(maxsize=maxsize)
        self._subscribers: List[Callable[[ExecutionEvent], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[ExecutionEvent], None]) -> Callable[[], None]:
        """
        Register a callback.

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: ExecutionEvent):
        """Queue an event and notify subscribers."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                pass
            self._queue.put_nowait(event)

        with self._lock:
            subscribers = list(self._subscribers)
        for cb in subscribers:
            try:
                cb(event)
            except Exception:
                logger.exception("[EventStream] subscriber failed on %s event", event.kind)

    def emit(self, kind: EventKind, message: str = "", payload: Any = None) -> ExecutionEvent:
        """Build and publish an event."""
        event = ExecutionEvent(kind=kind, message=message, payload=payload)
        self.publish(event)
        return event

    def poll(self, timeout: Optional[float] = None) -> Optional[ExecutionEvent]:
        """Next queued event, or None if none arrives within `timeout`."""
        try:
            if timeout is None:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def empty(self) -> bool:
        return self._queue.empty()

    def drain(self) -> List[ExecutionEvent]:
        """All queued events, oldest first."""
        events: List[ExecutionEvent] = []
        while True:
            ev = self.poll()
            if ev is None:
                return events
            events.append(ev)
