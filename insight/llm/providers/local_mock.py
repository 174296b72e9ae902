"""
Local Mock LLM Provider

Offline provider used when mock mode is enabled (MOCK_LLM=true). Serves
canned JSON responses chosen by substring match on the last user message,
so the full analyze() path can run without network access or API keys.

File naming follows pattern: local_{service}.py
Provider ID: local-mock
"""

import json
import logging
import threading
from typing import Dict, Any, Optional, Sequence

from insight.llm.providers.base import BaseLLMProvider, Message, RequestOptions


logger = logging.getLogger(__name__)


KEYWORD_ANALYSIS_RESPONSE = {
    "potentialUnmetNeeds": [
        {"keyword": "example need 1", "confidence": 0.9, "reason": "Mock reason 1"},
        {"keyword": "example need 2", "confidence": 0.8, "reason": "Mock reason 2"},
    ],
    "insights": [
        {"title": "Insight 1", "description": "Mock insight description 1"},
        {"title": "Insight 2", "description": "Mock insight description 2"},
    ],
}

DEFAULT_RESPONSE = {
    "results": [
        {"title": "Mock Result 1", "description": "Mock description 1"},
        {"title": "Mock Result 2", "description": "Mock description 2"},
    ],
    "analysis": "This is a mock analysis for testing purposes.",
}


class MockProvider(BaseLLMProvider):
    """Canned-response provider.

    Custom responses are matched first, in insertion order, by substring
    on the last user message. Anything mentioning "keyword" gets the
    keyword analysis response; everything else gets DEFAULT_RESPONSE.

    Attributes:
        responses: Substring -> response (str, or JSON-serialisable value)
        call_count: Number of calls served
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None, model: str = "mock"):
        self.responses = dict(responses or {})
        self.model = model
        self.call_count = 0
        self._lock = threading.Lock()

    def call(self, messages: Sequence[Message], options: RequestOptions) -> str:
        with self._lock:
            self.call_count += 1

        prompt = ""
        for message in reversed(list(messages)):
            if message.role == "user":
                prompt = message.content
                break

        logger.info("Using mock mode for LLM")
        return _to_text(self._match(prompt))

    def _match(self, prompt: str) -> Any:
        for needle, response in self.responses.items():
            if needle in prompt:
                return response
        if "keyword" in prompt.lower():
            return KEYWORD_ANALYSIS_RESPONSE
        return DEFAULT_RESPONSE

    def get_name(self) -> str:
        return f"mock-{self.model}"


def _to_text(response: Any) -> str:
    if isinstance(response, str):
        return response
    return json.dumps(response, ensure_ascii=False)
