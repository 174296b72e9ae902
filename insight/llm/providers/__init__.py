"""
LLM Providers

This module contains all LLM provider implementations following consistent
naming conventions: {deployment}_{service}.py pattern.

Available Providers:
    - OpenAICompatibleProvider: OpenAI chat completions API (cloud_openai.py)
    - AnthropicCompatibleProvider: Anthropic Messages API (cloud_anthropic.py)
    - QwenCompatibleProvider: DashScope Qwen, OpenAI wire format (cloud_qwen.py)
    - MockProvider: Canned offline responses (local_mock.py)

All providers implement the BaseLLMProvider interface defined in base.py.
"""

from insight.llm.providers.base import (
    BaseLLMProvider,
    Message,
    RequestOptions,
    UnrecognizedEnvelope,
)
from insight.llm.providers.http import HTTPChatProvider
from insight.llm.providers.cloud_openai import OpenAICompatibleProvider
from insight.llm.providers.cloud_anthropic import AnthropicCompatibleProvider
from insight.llm.providers.cloud_qwen import QwenCompatibleProvider
from insight.llm.providers.local_mock import MockProvider

__all__ = [
    "BaseLLMProvider",
    "Message",
    "RequestOptions",
    "UnrecognizedEnvelope",
    "HTTPChatProvider",
    "OpenAICompatibleProvider",
    "AnthropicCompatibleProvider",
    "QwenCompatibleProvider",
    "MockProvider",
]
