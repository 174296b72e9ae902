"""
Unit tests for the mock provider.
"""

import json

from insight.llm.providers.base import Message, RequestOptions
from insight.llm.providers.local_mock import (
    MockProvider,
    KEYWORD_ANALYSIS_RESPONSE,
    DEFAULT_RESPONSE,
)


def test_keyword_prompt_gets_keyword_analysis():
    provider = MockProvider()
    text = provider.call([Message("user", "keyword_analysis for ai agent")], RequestOptions())
    assert json.loads(text) == KEYWORD_ANALYSIS_RESPONSE


def test_other_prompt_gets_default_response():
    provider = MockProvider()
    text = provider.call([Message("user", "hello")], RequestOptions())
    assert json.loads(text) == DEFAULT_RESPONSE


def test_custom_responses_match_last_user_message():
    provider = MockProvider(responses={"pricing": {"tiers": 3}, "greet": "hi there"})
    messages = [
        Message("user", "greet me"),
        Message("assistant", "ok"),
        Message("user", "what about pricing?"),
    ]
    assert json.loads(provider.call(messages, RequestOptions())) == {"tiers": 3}
    assert provider.call([Message("user", "greet")], RequestOptions()) == "hi there"


def test_counts_calls_and_names_model():
    provider = MockProvider(model="gpt-4")
    provider.call([Message("user", "a")], RequestOptions())
    provider.call([Message("user", "b")], RequestOptions())
    assert provider.call_count == 2
    assert provider.get_name() == "mock-gpt-4"
    assert provider.get_endpoint() == ""
