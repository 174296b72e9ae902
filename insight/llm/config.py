"""
LLM Configuration Management

This module provides centralized configuration loading for the LLM access
layer. Configuration is loaded with the following precedence:
1. Environment variables (highest priority)
2. Config file values (.keyword-insight/config.yaml, ``llm`` section)
3. Default values (lowest priority)

Usage:
    >>> from insight.llm.config import LLMConfig
    >>>
    >>> # Load from config file (when llm section exists)
    >>> llm_config = LLMConfig.load_from_yaml('.keyword-insight/config.yaml')
    >>>
    >>> # Or create directly with defaults
    >>> llm_config = LLMConfig()
    >>>
    >>> print(llm_config.provider.model)
    >>> print(llm_config.cache.max_entries)
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Any, Dict
import os
import yaml
from pathlib import Path


DEFAULT_CONFIG_PATH = '.keyword-insight/config.yaml'

# Vendor-specific API key variables consulted after LLM_API_KEY
VENDOR_KEY_VARIABLES = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "qwen": "DASHSCOPE_API_KEY",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_TIERS = {
    "openai": {"simple": "gpt-3.5-turbo", "medium": "gpt-3.5-turbo-16k", "complex": "gpt-4-turbo"},
    "anthropic": {
        "simple": "claude-3-haiku-20240307",
        "medium": "claude-3-5-sonnet-20240620",
        "complex": "claude-3-opus-20240229",
    },
    "qwen": {"simple": "qwen-turbo", "medium": "qwen-plus", "complex": "qwen-max"},
}


@dataclass
class ModelTierConfig:
    """Model identifiers per complexity tier.

    Attributes:
        simple: Model for short, low-stakes prompts
        medium: Model for ordinary prompts
        complex: Model for long context or strict structured output
    """
    simple: str = "gpt-3.5-turbo"
    medium: str = "gpt-3.5-turbo-16k"
    complex: str = "gpt-4-turbo"

    @classmethod
    def for_vendor(cls, vendor: str) -> 'ModelTierConfig':
        """Default tiers for a vendor, so auto selection stays on that vendor."""
        return cls(**DEFAULT_TIERS.get(vendor, DEFAULT_TIERS["openai"]))

    def get(self, tier: str) -> str:
        if tier not in ("simple", "medium", "complex"):
            raise ValueError(f"Unknown complexity tier: {tier}")
        return getattr(self, tier)


@dataclass
class ProviderSettings:
    """Upstream backend configuration.

    Attributes:
        model: Default model identifier
        api_key: API key for the upstream vendor
        base_url: Explicit endpoint override (vendor default when empty)
        provider: Provider kind name, or "auto" to infer from the model
        timeout: Per-request HTTP timeout in seconds
        temperature: Default sampling temperature
        max_tokens: Default maximum tokens for responses
        mock_mode: Serve canned responses instead of calling upstream
    """
    model: str = "gpt-3.5-turbo"
    api_key: str = ""
    base_url: str = ""
    provider: str = "auto"
    timeout: int = 60
    temperature: float = 0.7
    max_tokens: int = 4000
    mock_mode: bool = False


@dataclass
class CacheSettings:
    """Response cache configuration.

    Attributes:
        enabled: Whether responses are cached
        max_entries: Capacity before LRU eviction
        ttl_seconds: Entry lifetime
    """
    enabled: bool = True
    max_entries: int = 1000
    ttl_seconds: float = 3600.0


@dataclass
class BatchSettings:
    """Request coalescing configuration.

    Attributes:
        enabled: Whether eligible requests are coalesced
        max_batch_size: Window size that triggers immediate dispatch
        batch_window_ms: Window lifetime before dispatch
    """
    enabled: bool = True
    max_batch_size: int = 5
    batch_window_ms: int = 200


@dataclass
class ServiceSettings:
    """Facade behaviour switches.

    Attributes:
        auto_model_selection: Pick a tier when the caller does not pin a model
        stream_by_default: Stream when the caller does not say otherwise
        stream_chunk_delay: Pause between simulated stream chunks (seconds)
        collect_feedback: Record every successful analysis for feedback
        self_optimize: Log tier-escalation hints on poor ratings
        feedback_capacity: Ring buffer size for feedback records
        max_json_retries: Upstream calls allowed for strict JSON
        fail_fast: Raise AnalysisFailedError instead of returning AnalysisError
        max_workers: Thread pool size for analyze_batch()
    """
    auto_model_selection: bool = True
    stream_by_default: bool = False
    stream_chunk_delay: float = 0.05
    collect_feedback: bool = False
    self_optimize: bool = False
    feedback_capacity: int = 1000
    max_json_retries: int = 3
    fail_fast: bool = False
    max_workers: int = 4


@dataclass
class LLMConfig:
    """Complete configuration for the LLM access layer.

    Attributes:
        provider: Upstream backend settings
        cache: Response cache settings
        batch: Request coalescing settings
        tiers: Model tier mapping for automatic selection
        service: Facade behaviour switches
    """
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    batch: BatchSettings = field(default_factory=BatchSettings)
    tiers: ModelTierConfig = field(default_factory=ModelTierConfig)
    service: ServiceSettings = field(default_factory=ServiceSettings)

    @classmethod
    def load_from_yaml(cls, config_path: Optional[str] = None) -> 'LLMConfig':
        """Load LLM configuration from YAML file.

        Args:
            config_path: Path to config YAML file (default: .keyword-insight/config.yaml)

        Returns:
            LLMConfig instance with environment overrides applied
        """
        llm_section = {}
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_file = Path(config_path)
        if config_file.exists():
            with open(config_file, 'r') as f:
                config_data = yaml.safe_load(f) or {}
                llm_section = config_data.get('llm', {}) or {}

        return cls.load_from_dict(llm_section)

    @classmethod
    def load_from_dict(cls, llm_section: Dict[str, Any]) -> 'LLMConfig':
        """Load LLM configuration from dictionary.

        Args:
            llm_section: Dictionary containing llm configuration

        Returns:
            LLMConfig instance with environment overrides applied

        Example:
            >>> llm_config = LLMConfig.load_from_dict({'provider': {'model': 'claude-3-haiku-20240307'}})
        """
        provider_section = llm_section.get('provider', {}) or {}
        cache_section = llm_section.get('cache', {}) or {}
        batch_section = llm_section.get('batch', {}) or {}
        tier_section = llm_section.get('tiers', {}) or {}
        service_section = llm_section.get('service', {}) or {}

        model = cls._resolve_value(provider_section.get('model'), 'LLM_MODEL', 'gpt-3.5-turbo')
        provider_kind = cls._resolve_value(provider_section.get('provider'), 'LLM_PROVIDER', 'auto')

        provider = ProviderSettings(
            model=model,
            api_key=cls._resolve_api_key(provider_section.get('api_key'), model, provider_kind),
            base_url=cls._resolve_value(provider_section.get('base_url'), 'LLM_BASE_URL', ''),
            provider=provider_kind,
            timeout=int(cls._resolve_value(provider_section.get('timeout'), 'LLM_TIMEOUT', 60)),
            temperature=float(cls._resolve_value(
                provider_section.get('temperature'), 'LLM_TEMPERATURE', 0.7
            )),
            max_tokens=int(cls._resolve_value(
                provider_section.get('max_tokens'), 'LLM_MAX_TOKENS', 4000
            )),
            mock_mode=_to_bool(cls._resolve_value(provider_section.get('mock_mode'), 'MOCK_LLM', False)),
        )

        cache = CacheSettings(
            enabled=_to_bool(cls._resolve_value(cache_section.get('enabled'), 'LLM_CACHE_ENABLED', True)),
            max_entries=int(cls._resolve_value(cache_section.get('max_entries'), 'LLM_CACHE_SIZE', 1000)),
            ttl_seconds=float(cls._resolve_value(cache_section.get('ttl_seconds'), 'LLM_CACHE_TTL', 3600.0)),
        )

        batch = BatchSettings(
            enabled=_to_bool(cls._resolve_value(batch_section.get('enabled'), 'LLM_BATCH_ENABLED', True)),
            max_batch_size=int(cls._resolve_value(batch_section.get('max_batch_size'), 'LLM_BATCH_SIZE', 5)),
            batch_window_ms=int(cls._resolve_value(
                batch_section.get('batch_window_ms'), 'LLM_BATCH_WINDOW_MS', 200
            )),
        )

        defaults = ModelTierConfig.for_vendor(infer_vendor(model, provider_kind))
        tiers = ModelTierConfig(
            simple=tier_section.get('simple', defaults.simple),
            medium=tier_section.get('medium', defaults.medium),
            complex=tier_section.get('complex', defaults.complex),
        )

        service_defaults = asdict(ServiceSettings())
        service = ServiceSettings(**{
            key: service_section.get(key, default)
            for key, default in service_defaults.items()
        })

        return cls(provider=provider, cache=cache, batch=batch, tiers=tiers, service=service)

    @staticmethod
    def _resolve_value(config_value: Any, env_var: str, default: Any) -> Any:
        """Resolve configuration value with precedence: ENV > Config > Default.

        Example:
            >>> # With LLM_MODEL="qwen-plus" in environment
            >>> _resolve_value(None, 'LLM_MODEL', 'gpt-3.5-turbo')
            'qwen-plus'
            >>>
            >>> # Without environment variable or config value
            >>> _resolve_value(None, 'LLM_MODEL', 'gpt-3.5-turbo')
            'gpt-3.5-turbo'
        """
        env_value = os.getenv(env_var)
        if env_value is not None:
            return env_value

        if config_value is not None:
            return config_value

        return default

    @classmethod
    def _resolve_api_key(cls, config_value: Optional[str], model: str, provider_kind: str) -> str:
        """Resolve the API key: LLM_API_KEY, then the vendor variable, then config."""
        env_value = os.getenv('LLM_API_KEY')
        if env_value:
            return env_value

        vendor = infer_vendor(model, provider_kind)
        vendor_value = os.getenv(VENDOR_KEY_VARIABLES[vendor])
        if vendor_value:
            return vendor_value

        return config_value or ''

    def masked(self) -> Dict[str, Any]:
        """Flattened configuration suitable for logging, secrets masked."""
        flat = {}
        for section, values in asdict(self).items():
            for key, value in values.items():
                if key == 'api_key':
                    value = '***MASKED***' if value else None
                flat[f"{section}.{key}"] = value
        return flat


def infer_vendor(model: str, provider_kind: str) -> str:
    kind = (provider_kind or 'auto').lower()
    if kind.startswith('cloud-'):
        kind = kind[len('cloud-'):]
    if kind.startswith(('anthropic', 'claude')):
        return 'anthropic'
    if kind.startswith(('qwen', 'dashscope')):
        return 'qwen'
    if kind.startswith('openai'):
        return 'openai'
    lowered = (model or '').lower()
    if 'claude' in lowered:
        return 'anthropic'
    if 'qwen' in lowered or 'dashscope' in lowered:
        return 'qwen'
    return 'openai'


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES
