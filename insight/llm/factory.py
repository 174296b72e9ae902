"""
LLM Provider Factory

Resolves the configured backend to a ProviderKind once and builds the
matching adapter. Adapters are cached per (kind, base_url) so every
service sharing a factory also shares HTTP connection pools.
"""

import logging
from enum import Enum
from dataclasses import replace
from typing import Dict, Optional, Tuple, List

import requests

from insight.llm.config import LLMConfig, infer_vendor
from insight.llm.providers.base import BaseLLMProvider
from insight.llm.providers.cloud_openai import OpenAICompatibleProvider
from insight.llm.providers.cloud_anthropic import AnthropicCompatibleProvider
from insight.llm.providers.cloud_qwen import QwenCompatibleProvider
from insight.llm.providers.local_mock import MockProvider
from insight.llm.errors import ConfigurationError
from insight.utils.logging_config import logging_config


logger = logging.getLogger(__name__)


class ProviderKind(Enum):
    """Tagged backend kinds. Values are the provider IDs."""
    OPENAI_COMPATIBLE = "cloud-openai"
    ANTHROPIC_COMPATIBLE = "cloud-anthropic"
    QWEN_COMPATIBLE = "cloud-qwen"
    MOCK = "local-mock"


# Map legacy provider names to provider IDs
LEGACY_NAMES = {
    "openai": ProviderKind.OPENAI_COMPATIBLE,
    "anthropic": ProviderKind.ANTHROPIC_COMPATIBLE,
    "claude": ProviderKind.ANTHROPIC_COMPATIBLE,
    "qwen": ProviderKind.QWEN_COMPATIBLE,
    "dashscope": ProviderKind.QWEN_COMPATIBLE,
    "mock": ProviderKind.MOCK,
}

_VENDOR_KINDS = {
    "openai": ProviderKind.OPENAI_COMPATIBLE,
    "anthropic": ProviderKind.ANTHROPIC_COMPATIBLE,
    "qwen": ProviderKind.QWEN_COMPATIBLE,
}

_PROVIDER_CLASSES = {
    ProviderKind.OPENAI_COMPATIBLE: OpenAICompatibleProvider,
    ProviderKind.ANTHROPIC_COMPATIBLE: AnthropicCompatibleProvider,
    ProviderKind.QWEN_COMPATIBLE: QwenCompatibleProvider,
}


def resolve_provider_kind(provider: Optional[str], model: str = "", mock_mode: bool = False) -> ProviderKind:
    """Resolve a provider name (or "auto") to a ProviderKind.

    Args:
        provider: Provider ID, legacy name, or "auto"
        model: Model identifier used for auto inference
        mock_mode: Force the mock provider

    Returns:
        Resolved ProviderKind

    Raises:
        ConfigurationError: If the provider name is unknown

    Example:
        >>> resolve_provider_kind("auto", "claude-3-haiku-20240307")
        <ProviderKind.ANTHROPIC_COMPATIBLE: 'cloud-anthropic'>
    """
    if mock_mode:
        return ProviderKind.MOCK

    name = (provider or "auto").strip().lower()
    if name == "auto":
        return _VENDOR_KINDS[infer_vendor(model, "auto")]

    if name in LEGACY_NAMES:
        return LEGACY_NAMES[name]

    for kind in ProviderKind:
        if kind.value == name:
            return kind

    valid = ", ".join(k.value for k in ProviderKind)
    raise ConfigurationError(
        f"Unknown provider: {provider}. Valid options: {valid}, auto"
    )


class LLMProviderFactory:
    """Factory for creating LLM providers.

    This factory handles:
    - Resolving the configured provider kind once
    - Provider instantiation per kind
    - Provider caching per (kind, base_url)

    Example:
        >>> from insight.llm.config import LLMConfig
        >>> llm_config = LLMConfig.load_from_yaml('.keyword-insight/config.yaml')
        >>> factory = LLMProviderFactory(llm_config)
        >>> provider = factory.create_provider()
    """

    def __init__(self, config: LLMConfig, session: Optional[requests.Session] = None):
        """Initialize LLM provider factory.

        Args:
            config: LLM configuration
            session: Optional requests session shared by HTTP providers

        Raises:
            ConfigurationError: If the configured provider name is unknown
        """
        self.config = config
        self.session = session
        self.kind = resolve_provider_kind(
            config.provider.provider,
            config.provider.model,
            config.provider.mock_mode
        )
        self._provider_cache: Dict[Tuple[ProviderKind, str], BaseLLMProvider] = {}
        logger.debug(f"Resolved provider kind {self.kind.value} for model {config.provider.model}")

    def create_provider(
        self,
        kind: Optional[ProviderKind] = None,
        base_url: Optional[str] = None
    ) -> BaseLLMProvider:
        """Create (or reuse) the provider for a kind and endpoint.

        Args:
            kind: Provider kind (defaults to the configured kind)
            base_url: Endpoint override (defaults to the configured base URL)

        Returns:
            Provider instance

        Raises:
            ConfigurationError: If the provider's API key is missing
        """
        kind = kind or self.kind
        base_url = self.config.provider.base_url if base_url is None else base_url
        cache_key = (kind, base_url)

        if cache_key in self._provider_cache:
            return self._provider_cache[cache_key]

        provider_instance = self._instantiate_provider(kind, base_url)
        self._provider_cache[cache_key] = provider_instance
        logging_config.log_provider_selection(
            provider_instance.get_name(), kind.value, provider_instance.get_endpoint()
        )
        return provider_instance

    def _instantiate_provider(self, kind: ProviderKind, base_url: str) -> BaseLLMProvider:
        if kind is ProviderKind.MOCK:
            return MockProvider(model=self.config.provider.model)

        settings = self.config.provider
        if base_url != settings.base_url:
            settings = replace(settings, base_url=base_url)

        return _PROVIDER_CLASSES[kind](settings, session=self.session)

    def get_cached_providers(self) -> List[str]:
        """Names of the providers instantiated so far."""
        return [p.get_name() for p in self._provider_cache.values()]

    def clear_cache(self):
        """Clear provider cache."""
        self._provider_cache.clear()
