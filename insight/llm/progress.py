"""
Progress Tracking

Tracks in-flight analyze() requests and notifies listeners as each one
moves from 0 to 100 percent.
"""

import time
import logging
import threading
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


ProgressListener = Callable[[dict], None]


@dataclass
class ProgressEvent:
    """Progress notification payload.

    Attributes:
        request_id: Request being reported on
        progress: Percent complete (0-100)
        elapsed: Seconds since the request started
        estimated_total: Projected total seconds, None before any progress
    """
    request_id: str
    progress: int
    elapsed: float
    estimated_total: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


class ProgressTracker:
    """Thread-safe registry of active requests and progress listeners."""

    EVENTS = ("progress",)

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started: Dict[str, float] = {}
        self._listeners: Dict[str, List[ProgressListener]] = {event: [] for event in self.EVENTS}
        self._lock = threading.Lock()

    def on(self, event: str, listener: ProgressListener):
        """Register a listener for an event.

        Raises:
            ValueError: For an unknown event name
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}. Valid events: {', '.join(self.EVENTS)}")
        with self._lock:
            self._listeners[event].append(listener)

    def start(self, request_id: str, callback: Optional[ProgressListener] = None) -> ProgressEvent:
        with self._lock:
            self._started[request_id] = self._clock()
        return self.update(request_id, 0, callback)

    def update(
        self,
        request_id: str,
        progress: int,
        callback: Optional[ProgressListener] = None
    ) -> ProgressEvent:
        """Record progress and notify the callback and registered listeners."""
        progress = max(0, min(100, int(progress)))
        with self._lock:
            started = self._started.get(request_id, self._clock())
            listeners = list(self._listeners["progress"])

        elapsed = max(0.0, self._clock() - started)
        estimated_total = elapsed * 100 / progress if progress > 0 else None
        event = ProgressEvent(request_id, progress, elapsed, estimated_total)

        payload = event.to_dict()
        for listener in ([callback] if callback else []) + listeners:
            try:
                listener(payload)
            except Exception as e:
                logger.warning(f"Progress listener failed for {request_id}: {e}")

        return event

    def finish(self, request_id: str, callback: Optional[ProgressListener] = None) -> ProgressEvent:
        event = self.update(request_id, 100, callback)
        self.discard(request_id)
        return event

    def discard(self, request_id: str):
        with self._lock:
            self._started.pop(request_id, None)

    def active_count(self) -> int:
        with self._lock:
            return len(self._started)
