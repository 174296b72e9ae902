"""
Unit tests for the Anthropic-compatible provider.

**Test Coverage:**
- System prompt lifted into the top-level system field
- Role mapping and headers
- Envelope extraction
- Anthropic error bodies
"""

import pytest
import requests
from unittest.mock import Mock

from insight.llm.config import ProviderSettings
from insight.llm.errors import ServerError, AuthenticationError
from insight.llm.providers.base import Message, RequestOptions, UnrecognizedEnvelope
from insight.llm.providers.cloud_anthropic import AnthropicCompatibleProvider, ANTHROPIC_VERSION
from tests.fixtures.mock_llm_responses import (
    anthropic_envelope,
    openai_envelope,
    ANTHROPIC_OVERLOADED_BODY,
    AUTHENTICATION_BODY,
)


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def provider(session):
    settings = ProviderSettings(model="claude-3-haiku-20240307", api_key="sk-ant")
    return AnthropicCompatibleProvider(settings, session=session)


def respond(session, data):
    response = Mock()
    response.status_code = 200
    response.json.return_value = data
    session.post.return_value = response


class TestAnthropicRequest:
    """Test the Messages API request shape."""

    def test_endpoint(self, provider):
        assert provider.get_endpoint() == "https://api.anthropic.com/v1/messages"
        assert provider.get_name() == "anthropic-claude-3-haiku-20240307"

    def test_system_lifted_and_roles_mapped(self, provider, session):
        respond(session, anthropic_envelope("ok"))

        provider.call([
            Message("system", "You are a market analyst."),
            Message("user", "First question"),
            Message("assistant", "First answer"),
            Message("function", "tool output", name="search"),
        ], RequestOptions(max_tokens=256))

        payload = session.post.call_args[1]["json"]
        assert payload["system"] == "You are a market analyst."
        assert payload["max_tokens"] == 256
        assert payload["messages"] == [
            {"role": "user", "content": "First question"},
            {"role": "assistant", "content": "First answer"},
            {"role": "user", "content": "tool output"},
        ]

    def test_headers(self, provider, session):
        respond(session, anthropic_envelope("ok"))
        provider.call([Message("user", "hi")], RequestOptions())
        headers = session.post.call_args[1]["headers"]
        assert headers["x-api-key"] == "sk-ant"
        assert headers["anthropic-version"] == ANTHROPIC_VERSION
        assert "Authorization" not in headers

    def test_default_system_prompt_when_absent(self, provider, session):
        respond(session, anthropic_envelope("ok"))
        provider.call([Message("user", "hi")], RequestOptions())
        assert "analyst" in session.post.call_args[1]["json"]["system"]


class TestAnthropicResponse:
    """Test envelope extraction and error bodies."""

    def test_extracts_first_text_block(self, provider, session):
        respond(session, anthropic_envelope("Demand is growing."))
        assert provider.call([Message("user", "hi")], RequestOptions()) == "Demand is growing."

    def test_openai_envelope_is_unrecognized(self, provider, session):
        respond(session, openai_envelope("wrong vendor"))
        result = provider.call([Message("user", "hi")], RequestOptions())
        assert isinstance(result, UnrecognizedEnvelope)

    def test_overloaded_is_server_error(self, provider, session):
        respond(session, ANTHROPIC_OVERLOADED_BODY)
        with pytest.raises(ServerError):
            provider.call([Message("user", "hi")], RequestOptions())

    def test_authentication_error_body(self, provider, session):
        respond(session, AUTHENTICATION_BODY)
        with pytest.raises(AuthenticationError):
            provider.call([Message("user", "hi")], RequestOptions())
