"""
Unit tests for strict JSON format enforcement.

**Test Coverage:**
- Passthrough for non-strict requests
- Repair without re-asking the model
- Re-issuing the call on invalid JSON, with backoff
- FormatValidationError after the attempt limit
- Deadline checks between attempts
- Retry count reporting
"""

import json
import pytest

from insight.llm.errors import FormatValidationError, DeadlineExceededError, ServerError
from insight.llm.format_enforcer import JsonEnforcedProvider
from insight.llm.providers.base import Message, RequestOptions, UnrecognizedEnvelope
from insight.llm.retry import Deadline
from tests.fixtures.mock_llm_responses import FENCED_JSON, MALFORMED_JSON, NOT_JSON


MESSAGES = [Message("user", "Return JSON")]
STRICT = RequestOptions(format="json", strict_format=True, retry_delay=1.0)


class TestPassthrough:
    """Test requests that are not strict JSON."""

    def test_text_request_untouched(self, scripted_provider, sleep_recorder):
        provider = scripted_provider(NOT_JSON)
        enforced = JsonEnforcedProvider(provider, sleep=sleep_recorder)

        assert enforced.call(MESSAGES, RequestOptions()) == NOT_JSON
        assert provider.call_count == 1
        assert enforced.last_retry_count == 0

    def test_non_strict_json_untouched(self, scripted_provider, sleep_recorder):
        provider = scripted_provider(MALFORMED_JSON)
        enforced = JsonEnforcedProvider(provider, sleep=sleep_recorder)
        options = RequestOptions(format="json", strict_format=False)

        assert enforced.call(MESSAGES, options) == MALFORMED_JSON
        assert provider.call_count == 1

    def test_delegates_name_and_endpoint(self, scripted_provider):
        enforced = JsonEnforcedProvider(scripted_provider("x", name="inner"))
        assert enforced.get_name() == "inner"
        assert enforced.get_endpoint() == "https://llm.test/v1/chat/completions"
        assert enforced.supports_native_streaming is False


class TestEnforcement:
    """Test strict JSON behaviour."""

    def test_valid_json_returned_verbatim(self, scripted_provider, sleep_recorder):
        enforced = JsonEnforcedProvider(scripted_provider('{"a": 1}'), sleep=sleep_recorder)
        assert enforced.call(MESSAGES, STRICT) == '{"a": 1}'
        assert enforced.last_retry_count == 0

    def test_fenced_json_repaired_without_retry(self, scripted_provider, sleep_recorder):
        provider = scripted_provider(FENCED_JSON)
        enforced = JsonEnforcedProvider(provider, sleep=sleep_recorder)

        text = enforced.call(MESSAGES, STRICT)

        assert json.loads(text) == {"a": 1}
        assert provider.call_count == 1
        assert enforced.last_retry_count == 0
        assert sleep_recorder.delays == []

    def test_malformed_twice_then_valid(self, scripted_provider, sleep_recorder):
        provider = scripted_provider(MALFORMED_JSON, NOT_JSON, '{"ok": true}')
        enforced = JsonEnforcedProvider(provider, max_json_retries=3, sleep=sleep_recorder)

        assert json.loads(enforced.call(MESSAGES, STRICT)) == {"ok": True}
        assert provider.call_count == 3
        assert enforced.last_retry_count == 2
        assert sleep_recorder.delays == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self, scripted_provider, sleep_recorder):
        provider = scripted_provider(MALFORMED_JSON)
        enforced = JsonEnforcedProvider(provider, max_json_retries=3, sleep=sleep_recorder)

        with pytest.raises(FormatValidationError) as exc_info:
            enforced.call(MESSAGES, STRICT)

        assert provider.call_count == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.raw_response == MALFORMED_JSON
        # No sleep after the final attempt
        assert sleep_recorder.delays == [1.0, 2.0]

    def test_unrecognized_envelope_passthrough(self, scripted_provider, sleep_recorder):
        envelope = UnrecognizedEnvelope({"output": "?"})
        provider = scripted_provider(envelope)
        enforced = JsonEnforcedProvider(provider, sleep=sleep_recorder)

        assert enforced.call(MESSAGES, STRICT) is envelope
        assert provider.call_count == 1

    def test_non_json_body_is_retried_not_returned(self, scripted_provider, sleep_recorder):
        gateway_page = UnrecognizedEnvelope("<html>Bad gateway</html>")
        provider = scripted_provider(gateway_page, '{"a": 1}')
        enforced = JsonEnforcedProvider(provider, sleep=sleep_recorder)

        assert json.loads(enforced.call(MESSAGES, STRICT)) == {"a": 1}
        assert provider.call_count == 2
        assert enforced.last_retry_count == 1

    def test_persistent_non_json_body_fails_loudly(self, scripted_provider, sleep_recorder):
        provider = scripted_provider(UnrecognizedEnvelope("<html>Bad gateway</html>"))
        enforced = JsonEnforcedProvider(provider, sleep=sleep_recorder)

        with pytest.raises(FormatValidationError) as exc_info:
            enforced.call(MESSAGES, STRICT)

        assert exc_info.value.attempts == 3
        assert provider.call_count == 3

    def test_transient_errors_propagate(self, scripted_provider, sleep_recorder):
        enforced = JsonEnforcedProvider(scripted_provider(ServerError("503")), sleep=sleep_recorder)
        with pytest.raises(ServerError):
            enforced.call(MESSAGES, STRICT)

    def test_deadline_checked_between_attempts(self, scripted_provider, fake_clock, sleep_recorder):
        provider = scripted_provider(MALFORMED_JSON)
        enforced = JsonEnforcedProvider(provider, max_json_retries=5, sleep=sleep_recorder)
        deadline = Deadline(2.0, clock=fake_clock)

        with pytest.raises(DeadlineExceededError):
            enforced.call(MESSAGES, STRICT, deadline=deadline)

        # 1s backoff, then 1s (capped from 2s) spends the budget
        assert sleep_recorder.delays == [1.0, 1.0]
        assert provider.call_count == 2

    def test_rejects_zero_retries(self, scripted_provider):
        with pytest.raises(ValueError):
            JsonEnforcedProvider(scripted_provider("x"), max_json_retries=0)
