"""
Property-Based Tests for Retry Backoff and Deadlines

Property 3: Backoff delays grow exponentially with the retry number
Property 4: Total backoff never exceeds the timeout budget
"""

import pytest
from hypothesis import given, settings, strategies as st
from unittest.mock import Mock

from insight.llm.errors import ServerError, DeadlineExceededError
from insight.llm.retry import Deadline, RetryContext, calculate_backoff_delay, retry_llm_call
from tests.fixtures.providers import FakeClock, SleepRecorder


class TestBackoffProperties:
    """Property tests for exponential backoff."""

    @given(
        attempt=st.integers(min_value=1, max_value=20),
        base_delay=st.floats(min_value=0.0, max_value=10.0, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_property_each_retry_doubles(self, attempt, base_delay):
        """
        Property 3.1: delay(n + 1) == 2 * delay(n), and delay(1) == base_delay.
        """
        assert calculate_backoff_delay(1, base_delay) == base_delay
        assert calculate_backoff_delay(attempt + 1, base_delay) == pytest.approx(
            2 * calculate_backoff_delay(attempt, base_delay)
        )


class TestDeadlineProperties:
    """Property tests for timeout budgets."""

    @given(
        budget=st.floats(min_value=0.1, max_value=30.0, allow_nan=False),
        base_delay=st.floats(min_value=0.01, max_value=5.0, allow_nan=False),
        max_attempts=st.integers(min_value=1, max_value=8),
    )
    @settings(max_examples=100)
    def test_property_sleep_within_budget(self, budget, base_delay, max_attempts):
        """
        Property 4.1: However the retries play out, the time spent sleeping
        never exceeds the budget, and the call ends in the upstream error or
        a DeadlineExceededError.
        """
        clock = FakeClock()
        sleep = SleepRecorder(clock)
        ctx = RetryContext(max_attempts, base_delay, deadline=Deadline(budget, clock=clock), sleep=sleep)
        func = Mock(side_effect=ServerError("503"))

        with pytest.raises((ServerError, DeadlineExceededError)):
            retry_llm_call(func, retry_ctx=ctx)

        assert sum(sleep.delays) <= budget + 1e-9
        assert 1 <= func.call_count <= max_attempts
