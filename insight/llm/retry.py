"""
Retry Logic with Exponential Backoff

Provides retry utilities for handling transient errors in LLM API calls.
Implements exponential backoff with configurable attempts, delays and a
caller-level deadline that caps the total time spent across retries.

Providers never retry on their own; the service facade drives the
transient-error loop through retry_llm_call(), and the format enforcer
runs its own bounded loop with the same backoff and deadline helpers.
"""

import time
import logging
from typing import Callable, Optional

from insight.llm.errors import (
    RateLimitError,
    TimeoutError,
    NetworkError,
    ServerError,
    AuthenticationError,
    InvalidRequestError,
    DeadlineExceededError,
)


logger = logging.getLogger(__name__)


# Transient errors that should trigger retry
TRANSIENT_ERRORS = (
    RateLimitError,
    TimeoutError,
    NetworkError,
    ServerError,
)

# Permanent errors that should NOT trigger retry
PERMANENT_ERRORS = (
    AuthenticationError,
    InvalidRequestError,
    DeadlineExceededError,
)


def is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and should be retried.

    Args:
        error: Exception to check

    Returns:
        True if error is transient, False otherwise
    """
    return isinstance(error, TRANSIENT_ERRORS) and not is_permanent_error(error)


def is_permanent_error(error: Exception) -> bool:
    """Check if an error is permanent and should NOT be retried.

    Args:
        error: Exception to check

    Returns:
        True if error is permanent, False otherwise
    """
    return isinstance(error, PERMANENT_ERRORS)


def calculate_backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Calculate exponential backoff delay before retry number ``attempt``.

    Uses exponential backoff: delay = base_delay * 2 ** (attempt - 1)
    - Retry 1: 1s
    - Retry 2: 2s
    - Retry 3: 4s

    Args:
        attempt: Retry number (1-indexed)
        base_delay: Base delay in seconds

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return base_delay * (2 ** (attempt - 1))


class Deadline:
    """Monotonic time budget shared by every attempt of one logical call.

    A Deadline created with ``budget=None`` never expires.

    Example:
        >>> deadline = Deadline(30.0)
        >>> deadline.check("openai call")
        >>> time.sleep(deadline.cap(4.0))
    """

    def __init__(self, budget: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.budget = budget
        self._clock = clock
        self._expires_at = None if budget is None else clock() + budget

    def remaining(self) -> Optional[float]:
        """Seconds left, or None for an unbounded deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self, operation: str = "LLM call") -> None:
        """Raise DeadlineExceededError if the budget is spent."""
        if self.expired():
            raise DeadlineExceededError(
                f"{operation} exceeded timeout budget of {self.budget}s"
            )

    def cap(self, delay: float) -> float:
        """Clamp a backoff delay to the remaining budget."""
        remaining = self.remaining()
        if remaining is None:
            return delay
        return min(delay, remaining)


class RetryContext:
    """Iterator-style retry helper with exponential backoff.

    Example:
        >>> retry_ctx = RetryContext(max_attempts=3, base_delay=1.0)
        >>> for attempt in retry_ctx:
        ...     try:
        ...         result = call_api()
        ...         break  # Success
        ...     except RateLimitError as e:
        ...         if not retry_ctx.should_retry(e):
        ...             raise
        ...         retry_ctx.wait()
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        log_retries: bool = True,
        deadline: Optional[Deadline] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize retry context.

        Args:
            max_attempts: Maximum number of attempts (including the first)
            base_delay: Base delay for exponential backoff
            log_retries: Whether to log retry attempts
            deadline: Optional caller-level budget across all attempts
            sleep: Sleep function (injectable for tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.log_retries = log_retries
        self.deadline = deadline or Deadline(None)
        self._sleep = sleep
        self.current_attempt = 0
        self.delays = []

    @property
    def retries(self) -> int:
        """Number of retries performed so far (attempts beyond the first)."""
        return max(0, self.current_attempt - 1)

    def __iter__(self):
        self.current_attempt = 0
        self.delays = []
        return self

    def __next__(self):
        if self.current_attempt >= self.max_attempts:
            raise StopIteration
        self.deadline.check()
        attempt = self.current_attempt
        self.current_attempt += 1
        return attempt

    def should_retry(self, error: Exception) -> bool:
        """Check if error should trigger retry.

        Args:
            error: Exception that occurred

        Returns:
            True if should retry, False otherwise
        """
        if is_permanent_error(error):
            return False

        if self.current_attempt >= self.max_attempts:
            return False

        if self.deadline.expired():
            return False

        return is_transient_error(error)

    def wait(self) -> float:
        """Wait with exponential backoff before next retry.

        Returns:
            The delay actually slept, in seconds
        """
        if self.current_attempt == 0:
            return 0.0

        delay = self.deadline.cap(
            calculate_backoff_delay(self.current_attempt, self.base_delay)
        )
        self.delays.append(delay)

        if self.log_retries:
            logger.info(f"Waiting {delay}s before retry...")

        self._sleep(delay)
        return delay


def retry_llm_call(
    func: Callable,
    *args,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    deadline: Optional[Deadline] = None,
    sleep: Callable[[float], None] = time.sleep,
    retry_ctx: Optional[RetryContext] = None,
    **kwargs
):
    """Retry an LLM API call with exponential backoff.

    Transient errors are retried until attempts or the deadline run
    out; permanent and unknown errors propagate immediately.

    Args:
        func: Function to call
        *args: Positional arguments for function
        max_attempts: Maximum number of attempts
        base_delay: Base delay for exponential backoff
        deadline: Optional caller-level budget across all attempts
        sleep: Sleep function (injectable for tests)
        retry_ctx: Pre-built context, useful to read ``retries`` afterwards
        **kwargs: Keyword arguments for function

    Returns:
        Result of successful function call

    Raises:
        Exception: The last error once retries are exhausted

    Example:
        >>> result = retry_llm_call(
        ...     provider.call,
        ...     messages,
        ...     options,
        ...     max_attempts=3,
        ...     base_delay=1.0
        ... )
    """
    retry_ctx = retry_ctx or RetryContext(
        max_attempts, base_delay, deadline=deadline, sleep=sleep
    )
    name = getattr(func, "__name__", repr(func))

    for attempt in retry_ctx:
        try:
            return func(*args, **kwargs)

        except Exception as e:
            if not retry_ctx.should_retry(e):
                if is_transient_error(e):
                    logger.error(
                        f"All {retry_ctx.current_attempt} attempts failed for {name}: "
                        f"{type(e).__name__}: {e}"
                    )
                raise

            logger.warning(
                f"Transient error in {name} "
                f"(attempt {attempt + 1}/{retry_ctx.max_attempts}): "
                f"{type(e).__name__}: {e}"
            )
            retry_ctx.wait()
