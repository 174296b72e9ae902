"""
Unit tests for LLMProviderFactory.

**Test Coverage:**
- Provider kind resolution (auto, provider IDs, legacy names, mock mode)
- Provider instantiation per kind
- Provider caching per (kind, base_url)
- Configuration errors
"""

import pytest

from insight.llm.config import LLMConfig
from insight.llm.errors import ConfigurationError
from insight.llm.factory import LLMProviderFactory, ProviderKind, resolve_provider_kind
from insight.llm.providers import (
    OpenAICompatibleProvider,
    AnthropicCompatibleProvider,
    QwenCompatibleProvider,
    MockProvider,
)


def make_config(**provider):
    provider.setdefault("api_key", "sk-test")
    return LLMConfig.load_from_dict({"provider": provider})


# ============================================================================
# Kind Resolution
# ============================================================================

class TestResolveProviderKind:
    """Test provider name resolution."""

    @pytest.mark.parametrize("model,kind", [
        ("gpt-4-turbo", ProviderKind.OPENAI_COMPATIBLE),
        ("claude-3-haiku-20240307", ProviderKind.ANTHROPIC_COMPATIBLE),
        ("qwen-plus", ProviderKind.QWEN_COMPATIBLE),
        ("llama-3-70b", ProviderKind.OPENAI_COMPATIBLE),
    ])
    def test_auto_infers_from_model(self, model, kind):
        assert resolve_provider_kind("auto", model) is kind

    @pytest.mark.parametrize("name,kind", [
        ("cloud-openai", ProviderKind.OPENAI_COMPATIBLE),
        ("cloud-anthropic", ProviderKind.ANTHROPIC_COMPATIBLE),
        ("cloud-qwen", ProviderKind.QWEN_COMPATIBLE),
        ("local-mock", ProviderKind.MOCK),
        ("openai", ProviderKind.OPENAI_COMPATIBLE),
        ("claude", ProviderKind.ANTHROPIC_COMPATIBLE),
        ("DashScope", ProviderKind.QWEN_COMPATIBLE),
        ("mock", ProviderKind.MOCK),
    ])
    def test_named_providers(self, name, kind):
        assert resolve_provider_kind(name, "gpt-4") is kind

    def test_none_means_auto(self):
        assert resolve_provider_kind(None, "claude-3-opus-20240229") is ProviderKind.ANTHROPIC_COMPATIBLE

    def test_mock_mode_wins(self):
        assert resolve_provider_kind("cloud-openai", "gpt-4", mock_mode=True) is ProviderKind.MOCK

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown provider: bard"):
            resolve_provider_kind("bard", "gpt-4")


# ============================================================================
# Provider Creation
# ============================================================================

class TestCreateProvider:
    """Test provider instantiation."""

    @pytest.mark.parametrize("model,provider_class", [
        ("gpt-3.5-turbo", OpenAICompatibleProvider),
        ("claude-3-haiku-20240307", AnthropicCompatibleProvider),
        ("qwen-turbo", QwenCompatibleProvider),
    ])
    def test_creates_provider_for_model(self, model, provider_class):
        provider = LLMProviderFactory(make_config(model=model)).create_provider()
        assert type(provider) is provider_class

    def test_mock_mode_needs_no_key(self):
        config = LLMConfig.load_from_dict({"provider": {"mock_mode": True}})
        provider = LLMProviderFactory(config).create_provider()
        assert isinstance(provider, MockProvider)

    def test_missing_key_raises_configuration_error(self):
        config = LLMConfig.load_from_dict({"provider": {"model": "gpt-4"}})
        with pytest.raises(ConfigurationError):
            LLMProviderFactory(config).create_provider()

    def test_unknown_provider_fails_at_construction(self):
        with pytest.raises(ConfigurationError):
            LLMProviderFactory(make_config(provider="bard"))

    def test_configured_base_url_is_used(self):
        factory = LLMProviderFactory(make_config(base_url="https://gateway.local/v1"))
        assert factory.create_provider().get_endpoint() == "https://gateway.local/v1/chat/completions"

    def test_explicit_kind_and_base_url(self):
        factory = LLMProviderFactory(make_config())
        provider = factory.create_provider(ProviderKind.ANTHROPIC_COMPATIBLE, "https://relay.local")
        assert isinstance(provider, AnthropicCompatibleProvider)
        assert provider.get_endpoint() == "https://relay.local/v1/messages"

    def test_shared_session_is_passed_to_providers(self):
        session = object()
        factory = LLMProviderFactory(make_config(), session=session)
        assert factory.create_provider().session is session


# ============================================================================
# Caching
# ============================================================================

class TestProviderCaching:
    """Test provider instance reuse."""

    def test_same_kind_and_url_reuses_instance(self):
        factory = LLMProviderFactory(make_config())
        assert factory.create_provider() is factory.create_provider()
        assert factory.get_cached_providers() == ["openai-gpt-3.5-turbo"]

    def test_different_base_url_creates_new_instance(self):
        factory = LLMProviderFactory(make_config())
        first = factory.create_provider(base_url="https://a.local/v1")
        second = factory.create_provider(base_url="https://b.local/v1")
        assert first is not second
        assert len(factory.get_cached_providers()) == 2

    def test_clear_cache(self):
        factory = LLMProviderFactory(make_config())
        first = factory.create_provider()
        factory.clear_cache()
        assert factory.get_cached_providers() == []
        assert factory.create_provider() is not first
