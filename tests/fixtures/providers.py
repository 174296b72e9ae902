"""
Test doubles for providers, clocks and sleeping.
"""

import threading

from insight.llm.providers.base import BaseLLMProvider


class ScriptedProvider(BaseLLMProvider):
    """Provider replaying a script.

    Each call consumes the next script item; the last item repeats once
    the script runs out. Items may be strings (returned), exceptions
    (raised) or callables taking (messages, options).
    """

    def __init__(self, responses, name="scripted", endpoint="https://llm.test/v1/chat/completions"):
        if not responses:
            raise ValueError("ScriptedProvider needs at least one response")
        self.responses = list(responses)
        self.name = name
        self.endpoint = endpoint
        self.calls = []
        self._lock = threading.Lock()

    def call(self, messages, options):
        with self._lock:
            self.calls.append((list(messages), options))
            item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]

        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(messages, options)
        return item

    @property
    def call_count(self):
        return len(self.calls)

    def get_name(self):
        return self.name

    def get_endpoint(self):
        return self.endpoint


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class SleepRecorder:
    """Records requested delays and advances an optional FakeClock."""

    def __init__(self, clock=None):
        self.delays = []
        self.clock = clock

    def __call__(self, seconds):
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)
