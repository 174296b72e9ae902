"""
Base LLM Provider Protocol

Defines the abstract base class and the standardized message/options
formats shared by every backend adapter. This ensures a consistent
interface across OpenAI-compatible, Anthropic-compatible and
Qwen-compatible backends as well as the mock provider.

Providers are pure, stateless adapters: they turn a conversation into one
upstream request and the response envelope back into text. They never
retry; retries belong to the service facade and the format enforcer.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace, fields
from typing import Dict, Any, Optional, Sequence, Callable


VALID_ROLES = ("system", "user", "assistant", "function")
VALID_FORMATS = ("text", "json", "markdown")
VALID_TIERS = ("simple", "medium", "complex")

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert analyst specialising in market analysis and user research. "
    "Analyse the data you are given systematically and objectively, and surface "
    "deep insights and trends.\n"
    "When analysing:\n"
    "1. Focus on the user behaviour patterns and latent needs behind the data\n"
    "2. Identify market gaps and growth opportunities\n"
    "3. Break down key trends and provide in-depth insight\n"
    "4. Support every conclusion with clear facts and sound reasoning"
)

JSON_INSTRUCTION = (
    "Return the result strictly in the requested JSON format, with a complete, "
    "easily parsed structure. Every field must match its specified type and range."
)


@dataclass(frozen=True)
class Message:
    """One turn of a conversation.

    Attributes:
        role: One of system, user, assistant, function
        content: Message text
        name: Optional author name (function messages)
    """
    role: str
    content: str
    name: Optional[str] = None

    def __post_init__(self):
        if self.role not in VALID_ROLES:
            raise ValueError(f"Invalid message role: {self.role}. Must be one of: {VALID_ROLES}")
        if self.content is None:
            raise ValueError("Message content cannot be None")

    def to_dict(self) -> Dict[str, str]:
        data = {"role": self.role, "content": self.content}
        if self.name:
            data["name"] = self.name
        return data


@dataclass(frozen=True)
class RequestOptions:
    """Per-call request options.

    Immutable for the duration of a call; use ``with_overrides`` to derive
    a modified copy.

    Attributes:
        temperature: Sampling temperature (0.0 - 2.0)
        max_tokens: Maximum number of tokens to generate
        format: Desired output format (text, json, markdown)
        strict_format: Require valid JSON or fail (json format only)
        system_prompt: Caller-provided system prompt
        model: Pinned model identifier (overrides automatic selection)
        complexity_level: Explicit tier (simple, medium, complex)
        max_retries: Attempts allowed for transient upstream errors
        retry_delay: Backoff base in seconds
        timeout_budget: Hard cap in seconds across all retries
        stream: Deliver the response in chunks
        enable_cache: Consult and populate the response cache
        batch: Allow coalescing with concurrent requests
        auto_model_selection: Allow tier-based model selection
    """
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    format: str = "text"
    strict_format: Optional[bool] = None
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    complexity_level: Optional[str] = None
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout_budget: Optional[float] = None
    stream: Optional[bool] = None
    enable_cache: bool = True
    batch: bool = True
    auto_model_selection: bool = True

    def __post_init__(self):
        """Validate option values."""
        if self.format not in VALID_FORMATS:
            raise ValueError(f"format must be one of {VALID_FORMATS}, got {self.format!r}")
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if self.complexity_level is not None and self.complexity_level not in VALID_TIERS:
            raise ValueError(f"complexity_level must be one of {VALID_TIERS}")
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be non-negative")
        if self.timeout_budget is not None and self.timeout_budget <= 0:
            raise ValueError("timeout_budget must be positive")

    @property
    def wants_strict_json(self) -> bool:
        return self.format == "json" and self.strict_format is True

    def with_overrides(self, **overrides) -> 'RequestOptions':
        """Return a copy with the given fields replaced.

        Unknown keys are ignored so that A/B variants written for another
        version of the options do not break the call.
        """
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if k in known})


class UnrecognizedEnvelope(str):
    """Raw upstream body whose envelope shape no adapter understands.

    Behaves as a string (the JSON of the envelope) so the provider
    contract stays ``call() -> str``, while ``isinstance`` lets callers
    tell "got bytes, don't know meaning" apart from normal text.

    Attributes:
        envelope: The decoded response body
    """

    envelope: Any

    def __new__(cls, envelope: Any):
        text = envelope if isinstance(envelope, str) else json.dumps(envelope, ensure_ascii=False)
        instance = super().__new__(cls, text)
        instance.envelope = envelope
        return instance


def build_system_prompt(options: RequestOptions) -> str:
    """System prompt for a request: the caller's, or the analyst persona."""
    if options.system_prompt:
        return options.system_prompt
    prompt = DEFAULT_SYSTEM_PROMPT
    if options.format == "json":
        prompt += "\n" + JSON_INSTRUCTION
    return prompt


def ensure_system_message(messages: Sequence[Message], options: RequestOptions) -> list:
    """Prepend a synthesized system message unless one is already present."""
    messages = list(messages)
    if any(m.role == "system" for m in messages):
        return messages
    return [Message(role="system", content=build_system_prompt(options))] + messages


class BaseLLMProvider(ABC):
    """Abstract base class for LLM provider implementations.

    The provider is responsible for:
    - Building the vendor-specific request for a conversation
    - Making the upstream call
    - Extracting the generated text from the vendor envelope
    - Classifying failures into the LLM error hierarchy

    Attributes:
        supports_native_streaming: Whether stream_call() streams from the
            upstream; when False the facade simulates chunked delivery.
    """

    supports_native_streaming = False

    @abstractmethod
    def call(self, messages: Sequence[Message], options: RequestOptions) -> str:
        """Send a conversation upstream and return the generated text.

        Args:
            messages: Ordered conversation; order is preserved verbatim
            options: Request options

        Returns:
            Generated text, or an UnrecognizedEnvelope when the response
            shape is unknown

        Raises:
            NetworkError, TimeoutError, RateLimitError, ServerError:
                transient upstream failures
            AuthenticationError, InvalidRequestError: permanent failures
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Human-readable provider name, used in logs and error results."""
        pass

    def get_endpoint(self) -> str:
        """Endpoint URL this provider posts to ("" for local providers)."""
        return ""

    def stream_call(
        self,
        messages: Sequence[Message],
        options: RequestOptions,
        on_chunk: Callable[[str], None]
    ) -> str:
        """Stream a response, delivering chunks as they arrive.

        Only meaningful when ``supports_native_streaming`` is True.
        """
        raise NotImplementedError(f"{self.get_name()} does not support native streaming")
