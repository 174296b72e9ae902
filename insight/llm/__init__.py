"""
LLM Access Layer

Turns an application-level analyze(prompt, analysis_type, options) request
into a reliable call against one of several upstream LLM backends.

Architecture:
    EnhancedLLMService (service.py)
        ↓ cache check (cache.py) → model selection (model_selection.py)
        ↓ batch (batch.py) or direct dispatch, transient retries (retry.py)
    JsonEnforcedProvider (format_enforcer.py, json_repair.py)
        ↓
    Backend providers (providers/), built by LLMProviderFactory (factory.py)

Usage:
    >>> from insight.llm import EnhancedLLMService, LLMConfig, RequestOptions
    >>>
    >>> llm_config = LLMConfig.load_from_yaml('.keyword-insight/config.yaml')
    >>> with EnhancedLLMService(llm_config) as service:
    ...     result = service.analyze("AI agent", "keyword_analysis", RequestOptions(format="json"))
"""

# Export data structures and providers
from insight.llm.providers.base import BaseLLMProvider, Message, RequestOptions, UnrecognizedEnvelope

# Export factory
from insight.llm.factory import LLMProviderFactory, ProviderKind

# Export configuration classes
from insight.llm.config import (
    LLMConfig,
    ProviderSettings,
    CacheSettings,
    BatchSettings,
    ModelTierConfig,
    ServiceSettings,
)

# Export services
from insight.llm.service import EnhancedLLMService, AnalysisError, is_error
from insight.llm.agent_service import AgentLLMService

# Export error classes
from insight.llm.errors import (
    LLMError,
    ConfigurationError,
    ProviderError,
    NetworkError,
    TimeoutError,
    DeadlineExceededError,
    RateLimitError,
    ServerError,
    AuthenticationError,
    InvalidRequestError,
    UpstreamShapeError,
    FormatValidationError,
    BatchClosedError,
    AnalysisFailedError,
)

__all__ = [
    # Data structures
    "BaseLLMProvider",
    "Message",
    "RequestOptions",
    "UnrecognizedEnvelope",

    # Factory
    "LLMProviderFactory",
    "ProviderKind",

    # Configuration
    "LLMConfig",
    "ProviderSettings",
    "CacheSettings",
    "BatchSettings",
    "ModelTierConfig",
    "ServiceSettings",

    # Services
    "EnhancedLLMService",
    "AnalysisError",
    "is_error",
    "AgentLLMService",

    # Errors
    "LLMError",
    "ConfigurationError",
    "ProviderError",
    "NetworkError",
    "TimeoutError",
    "DeadlineExceededError",
    "RateLimitError",
    "ServerError",
    "AuthenticationError",
    "InvalidRequestError",
    "UpstreamShapeError",
    "FormatValidationError",
    "BatchClosedError",
    "AnalysisFailedError",
]
