"""
Pytest configuration and fixtures for test isolation.
"""
import pytest

from insight.llm.config import LLMConfig
from tests.fixtures.providers import ScriptedProvider, FakeClock, SleepRecorder


LLM_ENV_VARS = (
    "LLM_MODEL",
    "LLM_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "DASHSCOPE_API_KEY",
    "LLM_BASE_URL",
    "LLM_PROVIDER",
    "LLM_TIMEOUT",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "MOCK_LLM",
    "LLM_CACHE_ENABLED",
    "LLM_CACHE_SIZE",
    "LLM_CACHE_TTL",
    "LLM_BATCH_ENABLED",
    "LLM_BATCH_SIZE",
    "LLM_BATCH_WINDOW_MS",
)


@pytest.fixture(autouse=True)
def isolate_llm_environment(monkeypatch):
    """Remove LLM environment variables so defaults and config files apply."""
    for name in LLM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def fake_clock():
    """Manually advanced monotonic clock."""
    return FakeClock()


@pytest.fixture
def sleep_recorder(fake_clock):
    """Sleep replacement that records delays and advances the fake clock."""
    return SleepRecorder(fake_clock)


@pytest.fixture
def scripted_provider():
    """Factory for providers that replay a script of responses and errors."""
    def _make(*responses, **kwargs):
        return ScriptedProvider(list(responses), **kwargs)
    return _make


@pytest.fixture
def llm_config():
    """Configuration with batching off and an API key, built from defaults."""
    return LLMConfig.load_from_dict({
        "provider": {"model": "gpt-3.5-turbo", "api_key": "sk-test-key"},
        "batch": {"enabled": False},
    })
