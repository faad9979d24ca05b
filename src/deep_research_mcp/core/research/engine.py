"""Research engine client.

Wraps the OpenAI Responses API as an opaque create/retrieve contract for
long-running deep research operations:

- ``start_background`` submits a request with ``background=True`` and
  returns as soon as the engine has accepted it.
- ``retrieve`` fetches the current state of an operation by its response ID.

Both return plain dict documents so that the lifecycle manager and the
result extraction never depend on SDK types.

Example:
    engine = OpenAIResearchEngine.from_config(config.engine)
    document = await engine.start_background(
        model="o3-deep-research-2025-06-26",
        input_messages=build_input_messages("What changed in ..."),
        tools=build_tools(include_code_interpreter=False),
    )
    response_id = document["id"]
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import openai

from deep_research_mcp.core.research.errors import (
    EngineError,
    EngineQueryError,
    EngineStartError,
)

if TYPE_CHECKING:
    from deep_research_mcp.config import EngineConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600.0
DEFAULT_REASONING = {"summary": "auto"}


# =============================================================================
# Request Builders
# =============================================================================


def _text_message(role: str, text: str) -> Dict[str, Any]:
    return {"role": role, "content": [{"type": "input_text", "text": text}]}


def build_input_messages(
    query: str,
    system_message: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Build the ordered input message list for a research request.

    The engine treats the first message as instruction context, so the
    optional developer message always precedes the user query.
    """
    messages: List[Dict[str, Any]] = []
    if system_message:
        messages.append(_text_message("developer", system_message))
    messages.append(_text_message("user", query))
    return messages


def build_tools(include_code_interpreter: bool = False) -> List[Dict[str, Any]]:
    """Build the engine tool list; web search is always enabled."""
    tools: List[Dict[str, Any]] = [{"type": "web_search_preview"}]
    if include_code_interpreter:
        tools.append({"type": "code_interpreter", "container": {"type": "auto"}})
    return tools


def to_document(response: Any) -> Dict[str, Any]:
    """Convert an SDK response object (or mapping) into a plain dict."""
    if isinstance(response, dict):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return dict(response)


# =============================================================================
# Engine Interface
# =============================================================================


class ResearchEngine(ABC):
    """Abstract create/retrieve contract for background research operations."""

    name: str = "engine"

    @abstractmethod
    async def start_background(
        self,
        *,
        model: str,
        input_messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        reasoning: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Start a background operation without waiting for it to finish.

        Returns:
            The engine's response document; ``id`` is the operation reference.

        Raises:
            EngineStartError: If the operation could not be started.
        """

    @abstractmethod
    async def retrieve(self, response_id: str) -> Dict[str, Any]:
        """Fetch the current document for an operation.

        Returns:
            Response document with at least ``status``; ``output`` once finished.

        Raises:
            EngineQueryError: If the engine could not be queried.
        """


# =============================================================================
# OpenAI Implementation
# =============================================================================


class OpenAIResearchEngine(ResearchEngine):
    """Research engine backed by the OpenAI Responses API.

    The underlying ``AsyncOpenAI`` client is created lazily on first use, so
    a missing API key only fails the calls that need the engine.

    Attributes:
        api_key: OpenAI API key
        timeout: Network timeout per call, in seconds
        base_url: Alternate API endpoint (None uses the SDK default)
        organization: Optional organization ID
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url
        self.organization = organization
        self._client: Optional[openai.AsyncOpenAI] = None

    @classmethod
    def from_config(cls, config: "EngineConfig") -> "OpenAIResearchEngine":
        """Build an engine from static engine configuration."""
        return cls(
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            base_url=config.base_url,
            organization=config.organization,
        )

    def _get_client(self) -> openai.AsyncOpenAI:
        """Get or create the OpenAI client (lazy initialization)."""
        if self._client is None:
            if not self.api_key:
                raise EngineError(
                    "OPENAI_API_KEY environment variable is required",
                    retryable=False,
                    status_code=401,
                )
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                organization=self.organization,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def start_background(
        self,
        *,
        model: str,
        input_messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        reasoning: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            client = self._get_client()
            response = await client.responses.create(
                model=model,
                input=input_messages,
                reasoning=reasoning or DEFAULT_REASONING,
                tools=tools,
                background=True,
            )
        except EngineError as e:
            raise EngineStartError(
                str(e), retryable=e.retryable, status_code=e.status_code
            ) from e
        except openai.OpenAIError as e:
            raise _map_openai_error(e, EngineStartError) from e

        document = to_document(response)
        logger.debug(
            "Engine accepted background request: response_id=%s status=%s",
            document.get("id"),
            document.get("status"),
        )
        return document

    async def retrieve(self, response_id: str) -> Dict[str, Any]:
        try:
            client = self._get_client()
            response = await client.responses.retrieve(response_id)
        except EngineError as e:
            raise EngineQueryError(
                str(e), retryable=e.retryable, status_code=e.status_code
            ) from e
        except openai.OpenAIError as e:
            raise _map_openai_error(e, EngineQueryError) from e

        return to_document(response)


def _map_openai_error(error: openai.OpenAIError, error_cls: type) -> EngineError:
    """Convert an OpenAI SDK error to an engine error of ``error_cls``."""
    if isinstance(error, openai.APITimeoutError):
        return error_cls(f"Request timed out: {error}", retryable=True)
    if isinstance(error, openai.APIConnectionError):
        return error_cls(f"Connection error: {error}", retryable=True)
    if isinstance(error, openai.APIStatusError):
        status_code = error.status_code
        retryable = status_code == 429 or status_code >= 500
        return error_cls(str(error), retryable=retryable, status_code=status_code)
    return error_cls(str(error), retryable=False)
