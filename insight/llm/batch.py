"""
Batch Processor

Coalesces requests that share a model/options shape and arrive within a
short window into one dispatch cycle, then fans results back out to each
caller's Future.

Window lifecycle per group key: Idle -> Collecting -> Dispatching -> Idle.
The first request opens a window and starts a timer; the window is
dispatched when the timer fires or when it reaches max_batch_size,
whichever comes first. Both paths detach the window from the open set
under the same lock, so exactly one of them dispatches it and nothing
can join a window once dispatch has begun. Timer and size dispatch both
run on a timer thread, never on a submitting caller's thread, so every
caller can bound its own wait.
"""

import hashlib
import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from insight.llm.providers.base import Message, RequestOptions
from insight.llm.errors import BatchClosedError, DeadlineExceededError
from insight.llm.retry import Deadline


logger = logging.getLogger(__name__)


DispatchFunction = Callable[[Sequence[Message], RequestOptions], Any]


@dataclass
class PendingRequest:
    """One member of a batch window.

    The deadline starts when the caller submits, so time spent waiting in
    the window counts against the caller's budget.
    """
    messages: Tuple[Message, ...]
    options: RequestOptions
    future: Future
    deadline: Optional[Deadline] = None


@dataclass
class BatchWindow:
    """Open collection of pending requests for one group key."""
    key: str
    members: List[PendingRequest] = field(default_factory=list)
    timer: Optional[threading.Timer] = None


def batch_key(messages: Sequence[Message], options: RequestOptions) -> str:
    """Group key: model, format and a short hash of the system prompt.

    Requests are grouped by options shape, never by content.
    """
    system = next((m.content for m in messages if m.role == "system"), "")
    system_hash = hashlib.sha256(system.encode("utf-8")).hexdigest()[:8]
    return f"{options.model or 'default'}:{options.format}:{system_hash}"


class BatchProcessor:
    """Coalesces concurrent requests into per-key dispatch windows.

    Members of a window are dispatched one after another through the
    dispatch function. Each member's Future resolves with its own result
    or its own exception; one member failing never fails the others.

    Example:
        >>> processor = BatchProcessor(dispatch=call_upstream, max_batch_size=5)
        >>> future = processor.submit(messages, options)
        >>> result = future.result()
        >>> processor.close()
    """

    def __init__(
        self,
        dispatch: DispatchFunction,
        max_batch_size: int = 5,
        batch_window_ms: int = 200,
        enabled: bool = True,
        timer_factory: Callable[..., threading.Timer] = threading.Timer
    ):
        """Initialize the batch processor.

        Args:
            dispatch: Function executing one request against the upstream
            max_batch_size: Window size that triggers immediate dispatch
            batch_window_ms: Window lifetime in milliseconds
            enabled: When False, submit() dispatches inline
            timer_factory: Timer constructor (injectable for tests)
        """
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        if batch_window_ms < 0:
            raise ValueError("batch_window_ms must be non-negative")

        self.dispatch = dispatch
        self.max_batch_size = max_batch_size
        self.batch_window_ms = batch_window_ms
        self.enabled = enabled
        self._timer_factory = timer_factory

        self._windows: Dict[str, BatchWindow] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._total_batches = 0
        self._total_requests = 0

    def submit(
        self,
        messages: Sequence[Message],
        options: RequestOptions,
        deadline: Optional[Deadline] = None
    ) -> Future:
        """Submit a request and return a Future for its result.

        Args:
            messages: Ordered conversation
            options: Request options
            deadline: Caller budget, handed to the dispatch function

        Raises:
            BatchClosedError: If the processor has been closed
        """
        pending = PendingRequest(tuple(messages), options, Future(), deadline)

        if not self.enabled:
            if self._closed:
                raise BatchClosedError("Batch processor is closed")
            self._run_member(pending)
            return pending.future

        key = batch_key(messages, options)
        ready = None

        with self._lock:
            if self._closed:
                raise BatchClosedError("Batch processor is closed")

            window = self._windows.get(key)
            if window is None:
                window = BatchWindow(key=key)
                self._windows[key] = window
                window.timer = self._timer_factory(
                    self.batch_window_ms / 1000.0, self._on_timer, args=(key, window)
                )
                window.timer.daemon = True
                window.timer.start()
                logger.debug(f"Opened batch window {key}")

            window.members.append(pending)

            if len(window.members) >= self.max_batch_size:
                ready = self._detach(key)

        if ready is not None:
            dispatcher = self._timer_factory(0, self._dispatch_window, args=(ready,))
            dispatcher.daemon = True
            dispatcher.start()

        return pending.future

    def submit_and_wait(
        self,
        messages: Sequence[Message],
        options: RequestOptions,
        timeout: Optional[float] = None,
        deadline: Optional[Deadline] = None
    ) -> Any:
        """Submit a request and block until its result is available.

        With a deadline, the wait is capped at its remaining budget.

        Raises:
            DeadlineExceededError: If the deadline ran out while waiting
        """
        future = self.submit(messages, options, deadline)
        if deadline is not None and deadline.remaining() is not None:
            remaining = deadline.remaining()
            timeout = remaining if timeout is None else min(timeout, remaining)

        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            # Skipped at dispatch time if it has not started yet
            future.cancel()
            if deadline is None:
                raise
            raise DeadlineExceededError(
                f"Batched request exceeded timeout budget of {deadline.budget}s"
            )

    def flush(self) -> int:
        """Dispatch every open window now.

        Returns:
            Number of windows dispatched
        """
        with self._lock:
            windows = [self._detach(key) for key in list(self._windows)]

        for window in windows:
            self._dispatch_window(window)
        return len(windows)

    def close(self):
        """Flush open windows and reject further submissions."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        flushed = self.flush()
        logger.info(f"Batch processor closed ({flushed} windows flushed)")

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, Any]:
        """Get batching statistics."""
        with self._lock:
            return {
                "enabled": self.enabled,
                "total_batches": self._total_batches,
                "total_requests": self._total_requests,
                "average_batch_size": (
                    self._total_requests / self._total_batches
                    if self._total_batches else 0.0
                ),
                "open_windows": len(self._windows),
                "max_batch_size": self.max_batch_size,
                "batch_window_ms": self.batch_window_ms,
            }

    def _detach(self, key: str) -> BatchWindow:
        # Caller holds self._lock
        window = self._windows.pop(key)
        if window.timer is not None:
            window.timer.cancel()
        return window

    def _on_timer(self, key: str, window: BatchWindow):
        with self._lock:
            if self._windows.get(key) is not window:
                return
            self._windows.pop(key)
        self._dispatch_window(window)

    def _dispatch_window(self, window: BatchWindow):
        logger.debug(f"Dispatching batch {window.key} with {len(window.members)} requests")
        with self._lock:
            self._total_batches += 1
            self._total_requests += len(window.members)

        for member in window.members:
            self._run_member(member)

    def _run_member(self, member: PendingRequest):
        if not member.future.set_running_or_notify_cancel():
            return
        try:
            if member.deadline is None:
                result = self.dispatch(member.messages, member.options)
            else:
                result = self.dispatch(member.messages, member.options, deadline=member.deadline)
        except Exception as e:
            logger.debug(f"Batch member failed: {type(e).__name__}: {e}")
            member.future.set_exception(e)
        else:
            member.future.set_result(result)
