"""
Cloud OpenAI-Compatible LLM Provider

Provider for any backend that speaks the OpenAI chat completions protocol
(OpenAI itself, Azure-style proxies, self-hosted gateways).

File naming follows pattern: cloud_{service}.py
Provider ID: cloud-openai
"""

from typing import Dict, Any, Optional, Sequence

from insight.llm.providers.base import Message, RequestOptions, ensure_system_message
from insight.llm.providers.http import HTTPChatProvider


class OpenAICompatibleProvider(HTTPChatProvider):
    """OpenAI-compatible chat completions provider.

    Request body: ``{model, messages, temperature, max_tokens}``
    Response envelope: ``choices[0].message.content``

    Example:
        >>> from insight.llm.config import ProviderSettings
        >>> provider = OpenAICompatibleProvider(ProviderSettings(api_key="sk-..."))
        >>> text = provider.call([Message("user", "Summarise this")], RequestOptions())
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    REQUEST_PATH = "/chat/completions"
    VENDOR = "openai"

    def build_payload(self, messages: Sequence[Message], options: RequestOptions) -> Dict[str, Any]:
        return {
            "model": self.resolve_model(options),
            "messages": [m.to_dict() for m in ensure_system_message(messages, options)],
            "temperature": (
                options.temperature if options.temperature is not None
                else self.settings.temperature
            ),
            "max_tokens": options.max_tokens or self.settings.max_tokens,
        }

    def build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        return content if isinstance(content, str) else None
