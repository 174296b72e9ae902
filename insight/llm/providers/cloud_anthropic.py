"""
Cloud Anthropic-Compatible LLM Provider

Provider for the Anthropic Messages API and compatible gateways.

The Messages API takes system instructions as a top-level ``system``
field rather than as a message, and authenticates with ``x-api-key``.

File naming follows pattern: cloud_{service}.py
Provider ID: cloud-anthropic
"""

from typing import Dict, Any, Optional, Sequence

from insight.llm.providers.base import Message, RequestOptions, ensure_system_message
from insight.llm.providers.http import HTTPChatProvider


ANTHROPIC_VERSION = "2023-06-01"


class AnthropicCompatibleProvider(HTTPChatProvider):
    """Anthropic Messages API provider.

    Request body: ``{model, system, messages, temperature, max_tokens}``
    Response envelope: ``content[0].text``
    """

    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
    REQUEST_PATH = "/messages"
    VENDOR = "anthropic"

    def build_payload(self, messages: Sequence[Message], options: RequestOptions) -> Dict[str, Any]:
        full = ensure_system_message(messages, options)
        system = "\n\n".join(m.content for m in full if m.role == "system")

        # The Messages API only knows user and assistant turns
        turns = [
            {"role": "assistant" if m.role == "assistant" else "user", "content": m.content}
            for m in full if m.role != "system"
        ]

        return {
            "model": self.resolve_model(options),
            "system": system,
            "messages": turns,
            "temperature": (
                options.temperature if options.temperature is not None
                else self.settings.temperature
            ),
            "max_tokens": options.max_tokens or self.settings.max_tokens,
        }

    def build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.settings.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            block = data["content"][0]
        except (KeyError, IndexError, TypeError):
            return None
        if not isinstance(block, dict) or not isinstance(block.get("text"), str):
            return None
        return block["text"]
