"""
HTTP Chat Provider Base

Shared plumbing for the cloud adapters: endpoint resolution, the HTTP
POST via requests, and classification of transport and status failures
into the LLM error hierarchy. Vendor subclasses only describe their
payload, headers and response envelope.
"""

import logging
from abc import abstractmethod
from typing import Dict, Any, Optional, Sequence

import requests

from insight.llm.config import ProviderSettings
from insight.llm.providers.base import (
    BaseLLMProvider,
    Message,
    RequestOptions,
    UnrecognizedEnvelope,
)
from insight.llm.errors import (
    ConfigurationError,
    ProviderError,
    NetworkError,
    TimeoutError,
    RateLimitError,
    ServerError,
    AuthenticationError,
    InvalidRequestError,
)


logger = logging.getLogger(__name__)

ERROR_PREVIEW = 200


class HTTPChatProvider(BaseLLMProvider):
    """Base class for providers that speak JSON over HTTPS.

    Subclasses set DEFAULT_BASE_URL, REQUEST_PATH and VENDOR, and
    implement build_payload(), build_headers() and extract_text().

    Attributes:
        settings: Provider settings (model, key, base URL, timeout)
        endpoint: Fully resolved request URL, fixed at construction
    """

    DEFAULT_BASE_URL = ""
    REQUEST_PATH = ""
    VENDOR = ""

    def __init__(self, settings: ProviderSettings, session: Optional[requests.Session] = None):
        """Initialize the provider.

        Args:
            settings: Provider settings loaded from environment/config/defaults
            session: Optional requests session (shared connection pool)

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not settings.api_key:
            raise ConfigurationError(
                f"{self.VENDOR} API key not configured. "
                "Set LLM_API_KEY environment variable or add 'api_key' "
                "to config.yaml llm.provider section."
            )
        self.settings = settings
        self.endpoint = self.resolve_endpoint(settings.base_url)
        self.session = session or requests.Session()

    @classmethod
    def resolve_endpoint(cls, base_url: Optional[str] = None) -> str:
        """Resolve the request URL: explicit override, then vendor default.

        The vendor request path is appended unless already present; a base
        ending in /v1 gets only the path, anything else gets /v1 + path.

        Example:
            >>> OpenAICompatibleProvider.resolve_endpoint("https://proxy.local/v1")
            'https://proxy.local/v1/chat/completions'
        """
        url = (base_url or cls.DEFAULT_BASE_URL).rstrip("/")
        if url.endswith(cls.REQUEST_PATH):
            return url
        if url.endswith("/v1"):
            return url + cls.REQUEST_PATH
        return url + "/v1" + cls.REQUEST_PATH

    def get_name(self) -> str:
        return f"{self.VENDOR}-{self.settings.model}"

    def get_endpoint(self) -> str:
        return self.endpoint

    def resolve_model(self, options: RequestOptions) -> str:
        return options.model or self.settings.model

    def call(self, messages: Sequence[Message], options: RequestOptions) -> str:
        """Send the conversation and return the generated text.

        Args:
            messages: Ordered conversation
            options: Request options

        Returns:
            Generated text, or UnrecognizedEnvelope for unknown shapes
        """
        payload = self.build_payload(messages, options)
        logger.debug(
            f"{self.VENDOR} request",
            extra={"endpoint": self.endpoint, "model": payload.get("model")}
        )
        data = self._post(payload)
        if isinstance(data, UnrecognizedEnvelope):
            return data

        text = self.extract_text(data)
        if text is None:
            logger.warning(
                f"{self.VENDOR} returned an unrecognized response envelope: "
                f"{str(data)[:ERROR_PREVIEW]}"
            )
            return UnrecognizedEnvelope(data)
        return text

    def _post(self, payload: Dict[str, Any]):
        """POST the payload and return the decoded body.

        Raises:
            TimeoutError: If the request times out
            NetworkError: If the connection fails
            ProviderError subclass: For HTTP error statuses or error bodies
        """
        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers=self.build_headers(),
                timeout=self.settings.timeout
            )
        except requests.exceptions.Timeout as e:
            raise TimeoutError(
                f"{self.VENDOR} request timed out after {self.settings.timeout}s: {e}",
                endpoint=self.endpoint
            )
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(
                f"Network error connecting to {self.VENDOR} at {self.endpoint}: {e}",
                endpoint=self.endpoint
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                f"{self.VENDOR} request failed: {e}",
                endpoint=self.endpoint
            )

        if response.status_code >= 400:
            raise classify_http_error(
                response.status_code, response.text, self.VENDOR, self.endpoint
            )

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"{self.VENDOR} returned a non-JSON body")
            return UnrecognizedEnvelope(response.text)

        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            raise classify_error_body(data["error"], self.VENDOR, self.endpoint)

        return data

    @abstractmethod
    def build_payload(self, messages: Sequence[Message], options: RequestOptions) -> Dict[str, Any]:
        """Build the vendor-shaped JSON body."""
        pass

    @abstractmethod
    def build_headers(self) -> Dict[str, str]:
        """Build the vendor authentication and content headers."""
        pass

    @abstractmethod
    def extract_text(self, data: Any) -> Optional[str]:
        """Extract generated text from the envelope, or None if unknown."""
        pass


def classify_http_error(status_code: int, body: str, vendor: str, endpoint: str) -> ProviderError:
    """Map an HTTP error status to the matching ProviderError subclass."""
    preview = (body or "")[:ERROR_PREVIEW]
    message = f"{vendor} API responded with status {status_code}: {preview}"

    if status_code == 429:
        error_class = RateLimitError
    elif status_code >= 500:
        error_class = ServerError
    elif status_code in (401, 403):
        error_class = AuthenticationError
    elif status_code == 408:
        error_class = TimeoutError
    else:
        error_class = InvalidRequestError

    return error_class(message, status_code=status_code, endpoint=endpoint)


def classify_error_body(error: Dict[str, Any], vendor: str, endpoint: str) -> ProviderError:
    """Map a JSON ``error`` object returned with a 2xx status."""
    error_type = " ".join(str(error.get(key) or "") for key in ("type", "code")).lower()
    message = f"{vendor} API error: {error.get('message') or error}"

    if "rate_limit" in error_type or "429" in error_type:
        return RateLimitError(message, endpoint=endpoint)
    if "overloaded" in error_type or "server" in error_type or "api_error" in error_type.split():
        return ServerError(message, endpoint=endpoint)
    if "auth" in error_type or "permission" in error_type or "api_key" in error_type:
        return AuthenticationError(message, endpoint=endpoint)
    return InvalidRequestError(message, endpoint=endpoint)
