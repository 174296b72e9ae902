"""
LLM Access Layer Error Classes

This module defines the exception hierarchy for the LLM access layer.
All LLM-related errors inherit from LLMError, enabling consistent error
handling across providers, the format enforcer and the service facade.

Error Hierarchy:
    LLMError (base)
    ├── ConfigurationError (invalid/missing configuration)
    ├── ProviderError (provider operation failures)
    │   ├── NetworkError (transient)
    │   ├── TimeoutError (transient)
    │   │   └── DeadlineExceededError (caller budget exhausted, terminal)
    │   ├── RateLimitError (HTTP 429, transient)
    │   ├── ServerError (HTTP 5xx, transient)
    │   ├── AuthenticationError (permanent)
    │   └── InvalidRequestError (permanent)
    ├── UpstreamShapeError (vendor envelope not recognized)
    ├── FormatValidationError (strict JSON unobtainable, terminal)
    ├── BatchClosedError (submission after shutdown)
    └── AnalysisFailedError (fail-fast surface for agents)

Usage:
    >>> from insight.llm.errors import ConfigurationError
    >>>
    >>> if not api_key:
    >>>     raise ConfigurationError(
    >>>         "LLM API key not configured. "
    >>>         "Set LLM_API_KEY environment variable."
    >>>     )
"""

from typing import Optional


class LLMError(Exception):
    """Base exception for all LLM access layer errors.

    Example:
        >>> try:
        >>>     service.analyze(prompt, "keyword")
        >>> except LLMError as e:
        >>>     logger.error(f"LLM operation failed: {e}")
    """
    pass


class ConfigurationError(LLMError):
    """Raised when LLM configuration is invalid or missing.

    Common scenarios:
    - Missing API keys
    - Unknown provider kind
    - Out-of-range parameter values (temperature, max_tokens)
    """
    pass


class ProviderError(LLMError):
    """Raised when a provider operation fails.

    Attributes:
        status_code: HTTP status returned by the upstream, if any
        endpoint: Endpoint URL the request was sent to, if known
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class NetworkError(ProviderError):
    """Raised when the connection fails or is reset.

    This is a transient error that should trigger retry logic with
    exponential backoff.
    """
    pass


class TimeoutError(ProviderError):
    """Raised when an upstream request times out.

    This is a transient error that should trigger retry logic with
    exponential backoff.
    """
    pass


class DeadlineExceededError(TimeoutError):
    """Raised when the caller-level timeout budget is exhausted.

    Unlike a single request timeout this is terminal: the budget spans
    every retry, so there is nothing left to retry with.
    """
    pass


class RateLimitError(ProviderError):
    """Raised when provider rate limit is exceeded (HTTP 429).

    Transient; retried with exponential backoff.
    """
    pass


class ServerError(ProviderError):
    """Raised when the upstream answers with a 5xx status.

    Transient; retried with exponential backoff.
    """
    pass


class AuthenticationError(ProviderError):
    """Raised when provider authentication fails (HTTP 401/403).

    This is a permanent error that should NOT trigger retry logic.
    """
    pass


class InvalidRequestError(ProviderError):
    """Raised when provider rejects the request (other HTTP 4xx).

    This is a permanent error that should NOT trigger retry logic.
    """
    pass


class UpstreamShapeError(LLMError):
    """Raised when a vendor response envelope is not recognized.

    Providers normally surface unknown envelopes as an
    UnrecognizedEnvelope passthrough instead of raising; this error is
    for callers that cannot proceed without text.

    Attributes:
        envelope: The raw decoded response body
    """

    def __init__(self, message: str, envelope: Optional[dict] = None):
        super().__init__(message)
        self.envelope = envelope


class FormatValidationError(LLMError):
    """Raised when strict JSON output could not be obtained.

    Terminal: the format enforcer already re-issued the upstream call
    the configured number of times.

    Attributes:
        raw_response: Last raw response, truncated for diagnostics
        attempts: Number of upstream calls made
    """

    MAX_PREVIEW = 200

    def __init__(self, message: str, raw_response: str = "", attempts: int = 0):
        super().__init__(message)
        self.raw_response = raw_response[:self.MAX_PREVIEW]
        self.attempts = attempts


class BatchClosedError(LLMError):
    """Raised when a request is submitted to a closed batch processor."""
    pass


class AnalysisFailedError(LLMError):
    """Raised by fail-fast callers when analyze() returned an error result.

    Attributes:
        result: The AnalysisError describing the failure
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
