"""
Cloud Qwen LLM Provider

Provider for Alibaba DashScope's Qwen models through the OpenAI-compatible
endpoint. The wire format is the OpenAI one; only the vendor default URL
and the name differ.

File naming follows pattern: cloud_{service}.py
Provider ID: cloud-qwen
"""

from insight.llm.providers.cloud_openai import OpenAICompatibleProvider


class QwenCompatibleProvider(OpenAICompatibleProvider):
    """DashScope Qwen provider (OpenAI wire format)."""

    DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    VENDOR = "qwen"
