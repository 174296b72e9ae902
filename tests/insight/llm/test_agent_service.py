"""
Unit tests for AgentLLMService.

**Test Coverage:**
- Conversation flattening
- Text responses and forced text format
- Error results raised as AnalysisFailedError
- Unrecognized envelopes with and without require_text
"""

import json
import pytest
from unittest.mock import Mock

from insight.llm.agent_service import AgentLLMService, flatten_messages, to_message
from insight.llm.errors import AnalysisFailedError, UpstreamShapeError
from insight.llm.providers.base import Message, RequestOptions
from insight.llm.service import AnalysisError, EnhancedLLMService


CONVERSATION = [
    {"role": "system", "content": "You are a market analyst."},
    {"role": "user", "content": "Summarise demand for AI agents."},
]


@pytest.fixture
def service():
    mock_service = Mock(spec=EnhancedLLMService)
    mock_service.config = Mock()
    mock_service.config.provider.model = "gpt-4o"
    return mock_service


class TestFlattening:
    """Test conversation rendering."""

    def test_flatten_messages(self):
        assert flatten_messages(CONVERSATION) == (
            "SYSTEM: You are a market analyst.\n\nUSER: Summarise demand for AI agents."
        )

    def test_accepts_message_objects(self):
        text = flatten_messages([Message("user", "hi"), Message("assistant", "hello")])
        assert text == "USER: hi\n\nASSISTANT: hello"

    def test_unknown_role_becomes_user(self):
        assert to_message({"role": "tool", "content": "x"}) == Message("user", "x")


class TestGenerate:
    """Test text generation."""

    def test_returns_content(self, service):
        service.analyze.return_value = {"content": "Demand is rising."}
        agent = AgentLLMService(service)

        assert agent.generate(CONVERSATION) == "Demand is rising."

        prompt, analysis_type, options = service.analyze.call_args[0]
        assert prompt.startswith("SYSTEM: You are a market analyst.")
        assert analysis_type == "agent-request"
        assert options.format == "text"

    def test_forces_text_format(self, service):
        service.analyze.return_value = {"content": "ok"}
        AgentLLMService(service).generate(CONVERSATION, RequestOptions(format="json", temperature=0.3))

        options = service.analyze.call_args[0][2]
        assert options.format == "text"
        assert options.temperature == 0.3

    def test_passes_chunk_callback(self, service):
        service.analyze.return_value = {"content": "ok"}
        on_chunk = Mock()
        AgentLLMService(service).generate(CONVERSATION, on_chunk=on_chunk)
        assert service.analyze.call_args[1]["on_chunk"] is on_chunk

    def test_error_result_raises(self, service):
        error = AnalysisError(error="RateLimitError", message="429", retry_count=2)
        service.analyze.return_value = error

        with pytest.raises(AnalysisFailedError, match="RateLimitError") as exc_info:
            AgentLLMService(service).generate(CONVERSATION)

        assert exc_info.value.result is error

    def test_envelope_returned_as_json(self, service):
        service.analyze.return_value = {"output": {"text": "hello"}}
        text = AgentLLMService(service).generate(CONVERSATION)
        assert json.loads(text) == {"output": {"text": "hello"}}

    def test_require_text_rejects_envelope(self, service):
        service.analyze.return_value = {"output": {"text": "hello"}}
        with pytest.raises(UpstreamShapeError) as exc_info:
            AgentLLMService(service, require_text=True).generate(CONVERSATION)
        assert exc_info.value.envelope == {"output": {"text": "hello"}}


class TestIntegration:
    """Test against a real facade with a scripted provider."""

    def test_end_to_end(self, llm_config, scripted_provider, sleep_recorder):
        provider = scripted_provider("Three segments stand out.")
        with AgentLLMService(EnhancedLLMService(llm_config, provider=provider, sleep=sleep_recorder)) as agent:
            assert agent.generate(CONVERSATION) == "Three segments stand out."
            assert agent.get_name() == "AgentLLM-gpt-3.5-turbo"

        messages = provider.calls[0][0]
        assert messages[1].content == flatten_messages(CONVERSATION)
