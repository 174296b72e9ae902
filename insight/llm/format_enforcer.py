"""
Strict JSON Format Enforcement

JsonEnforcedProvider wraps any provider and guarantees that, for strict
JSON requests, the text it returns parses as JSON. Malformed output goes
through the repair chain first; if that fails the whole upstream call is
re-issued with exponential backoff until the attempt limit is reached.

Requests that are not strict JSON pass straight through.
"""

import json
import time
import logging
import threading
from typing import Callable, Optional, Sequence

from insight.llm.providers.base import (
    BaseLLMProvider,
    Message,
    RequestOptions,
    UnrecognizedEnvelope,
)
from insight.llm.json_repair import repair_json, is_valid_json, JSONRepairError
from insight.llm.retry import Deadline, calculate_backoff_delay
from insight.llm.errors import FormatValidationError


logger = logging.getLogger(__name__)


class JsonEnforcedProvider(BaseLLMProvider):
    """Decorator provider enforcing parseable JSON output.

    Transient upstream errors raised by the wrapped provider propagate
    unchanged; the caller's transient retry loop owns them.

    Attributes:
        provider: Wrapped provider
        max_json_retries: Total upstream calls allowed per request
        last_retry_count: Extra upstream calls used by the calling
            thread's most recent call()

    Example:
        >>> enforced = JsonEnforcedProvider(provider, max_json_retries=3)
        >>> text = enforced.call(messages, RequestOptions(format="json", strict_format=True))
        >>> json.loads(text)
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        max_json_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep
    ):
        if max_json_retries < 1:
            raise ValueError("max_json_retries must be >= 1")
        self.provider = provider
        self.max_json_retries = max_json_retries
        self._sleep = sleep
        self._local = threading.local()

    @property
    def supports_native_streaming(self) -> bool:
        return self.provider.supports_native_streaming

    @property
    def last_retry_count(self) -> int:
        return getattr(self._local, "retry_count", 0)

    def get_name(self) -> str:
        return self.provider.get_name()

    def get_endpoint(self) -> str:
        return self.provider.get_endpoint()

    def stream_call(self, messages, options, on_chunk):
        return self.provider.stream_call(messages, options, on_chunk)

    def call(
        self,
        messages: Sequence[Message],
        options: RequestOptions,
        deadline: Optional[Deadline] = None
    ) -> str:
        """Call the wrapped provider, enforcing JSON when strict.

        Args:
            messages: Ordered conversation
            options: Request options
            deadline: Shared time budget (built from options.timeout_budget
                when not given)

        Returns:
            Text that parses as JSON (strict mode), else the raw text

        Raises:
            FormatValidationError: If every attempt produced invalid JSON
            DeadlineExceededError: If the time budget ran out between attempts
        """
        self._local.retry_count = 0

        if not options.wants_strict_json:
            return self.provider.call(messages, options)

        deadline = deadline or Deadline(options.timeout_budget)
        raw = ""

        for attempt in range(1, self.max_json_retries + 1):
            deadline.check(f"{self.get_name()} JSON call")
            self._local.retry_count = attempt - 1

            raw = self.provider.call(messages, options)

            # Decoded envelopes are JSON already; raw non-JSON bodies are retried
            if isinstance(raw, UnrecognizedEnvelope) and isinstance(raw.envelope, (dict, list)):
                return raw

            text = self._coerce_json(raw)
            if text is not None:
                if attempt > 1:
                    logger.info(
                        f"Obtained valid JSON from {self.get_name()} "
                        f"after {attempt - 1} retries"
                    )
                return text

            logger.warning(
                f"Invalid JSON from {self.get_name()} "
                f"(attempt {attempt}/{self.max_json_retries}): {raw[:100]!r}"
            )

            if attempt < self.max_json_retries:
                self._sleep(deadline.cap(
                    calculate_backoff_delay(attempt, options.retry_delay)
                ))

        logger.error(
            f"Failed to obtain valid JSON from {self.get_name()} "
            f"after {self.max_json_retries} attempts"
        )
        raise FormatValidationError(
            f"Response is not valid JSON after {self.max_json_retries} attempts",
            raw_response=raw or "",
            attempts=self.max_json_retries
        )

    @staticmethod
    def _coerce_json(raw: str) -> Optional[str]:
        if raw is None:
            return None
        if is_valid_json(raw):
            return raw
        try:
            value = repair_json(raw)
        except JSONRepairError:
            return None
        return json.dumps(value, ensure_ascii=False)
