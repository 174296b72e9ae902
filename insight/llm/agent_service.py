"""
Agent LLM Service

Thin wrapper that lets agents hand over a role-tagged conversation and get
text back. The conversation is flattened into a single prompt
(``ROLE: content`` blocks separated by blank lines) and sent through
EnhancedLLMService.analyze() in text mode.

Agents want exceptions rather than error values, so an AnalysisError
result is raised as AnalysisFailedError here.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Sequence, Union

from insight.llm.errors import AnalysisFailedError, UpstreamShapeError
from insight.llm.providers.base import Message, RequestOptions
from insight.llm.service import EnhancedLLMService, is_error


logger = logging.getLogger(__name__)


AGENT_ANALYSIS_TYPE = "agent-request"

AgentMessage = Union[Message, Dict[str, str]]


def to_message(message: AgentMessage) -> Message:
    """Normalise a Message or a {role, content} dict.

    Unknown roles are treated as user turns.
    """
    if isinstance(message, Message):
        return message
    role = message.get("role", "user")
    if role not in ("system", "user", "assistant"):
        role = "user"
    return Message(role=role, content=message.get("content", ""))


def flatten_messages(messages: Sequence[AgentMessage]) -> str:
    """Render a conversation as ``ROLE: content`` blocks."""
    return "\n\n".join(
        f"{m.role.upper()}: {m.content}" for m in map(to_message, messages)
    )


class AgentLLMService:
    """Agent-facing text interface over EnhancedLLMService.

    Example:
        >>> agent_llm = AgentLLMService(service)
        >>> text = agent_llm.generate([
        ...     {"role": "system", "content": "You are a market analyst."},
        ...     {"role": "user", "content": "Summarise demand for AI agents."},
        ... ])
    """

    def __init__(self, service: Optional[EnhancedLLMService] = None, require_text: bool = False):
        """Initialize the wrapper.

        Args:
            service: Facade to forward to (built from environment when omitted)
            require_text: Raise UpstreamShapeError instead of returning the
                JSON of an unrecognized response envelope
        """
        self.service = service or EnhancedLLMService()
        self.require_text = require_text

    def generate(
        self,
        messages: Sequence[AgentMessage],
        options: Optional[RequestOptions] = None,
        on_chunk: Optional[Callable[[str], None]] = None
    ) -> str:
        """Generate a text response for a conversation.

        Raises:
            AnalysisFailedError: If the upstream call failed
            UpstreamShapeError: If require_text is set and the response
                envelope was not recognized
        """
        options = (options or RequestOptions()).with_overrides(format="text")
        prompt = flatten_messages(messages)
        logger.debug(f"Generating agent response ({len(messages)} messages)")

        result = self.service.analyze(
            prompt, AGENT_ANALYSIS_TYPE, options, on_chunk=on_chunk
        )

        if is_error(result):
            raise AnalysisFailedError(
                f"Agent LLM call failed: {result.error}: {result.message}",
                result=result
            )

        return self._to_text(result)

    def get_name(self) -> str:
        return f"AgentLLM-{self.service.config.provider.model}"

    def close(self):
        self.service.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _to_text(self, result: Any) -> str:
        if isinstance(result, dict) and isinstance(result.get("content"), str):
            return result["content"]
        if self.require_text:
            raise UpstreamShapeError(
                "Response envelope did not contain text",
                envelope=result if isinstance(result, dict) else None
            )
        return json.dumps(result, ensure_ascii=False)
