"""
Root pytest configuration and shared fixtures.

Provides a scriptable research engine double and helpers for reading
tool results.
"""

import json
from typing import Any, Dict, List, Optional, Union

import pytest
from mcp.types import TextContent

from deep_research_mcp.core.research.engine import ResearchEngine
from deep_research_mcp.core.research.registry import (
    InMemoryJobRegistry,
    reset_job_registry,
    set_job_registry,
)

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools wrapped with canonical_tool decorator return TextContent with
    minified JSON. This helper extracts the dict for test assertions.

    Raises:
        TypeError: If result is neither dict nor TextContent
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(
        f"Expected dict or TextContent, got {type(result).__name__}"
    )


def completed_document(
    response_id: str = "op_1",
    text: str = "The report.",
    annotations: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build a completed engine response document."""
    return {
        "id": response_id,
        "status": "completed",
        "output": [
            {"type": "reasoning", "summary": []},
            {
                "type": "message",
                "content": [
                    {
                        "type": "output_text",
                        "text": text,
                        "annotations": annotations or [],
                    }
                ],
            },
        ],
    }


class StubEngine(ResearchEngine):
    """In-process engine double.

    ``start_background`` hands out ``op_1``, ``op_2``, ... unless
    ``start_error`` is set. ``retrieve`` pops scripted results per response
    ID (an Exception instance is raised instead of returned); once a script
    runs out the last entry is repeated.
    """

    name = "stub"

    def __init__(self) -> None:
        self.start_calls: List[Dict[str, Any]] = []
        self.retrieve_calls: List[str] = []
        self.start_error: Optional[Exception] = None
        self.start_document: Optional[Dict[str, Any]] = None
        self.scripts: Dict[str, List[Any]] = {}
        self._counter = 0

    def script(self, response_id: str, *results: Any) -> None:
        self.scripts[response_id] = list(results)

    async def start_background(self, *, model, input_messages, tools, reasoning=None):
        self.start_calls.append(
            {
                "model": model,
                "input_messages": input_messages,
                "tools": tools,
                "reasoning": reasoning,
            }
        )
        if self.start_error is not None:
            raise self.start_error
        if self.start_document is not None:
            return self.start_document
        self._counter += 1
        return {"id": f"op_{self._counter}", "status": "queued"}

    async def retrieve(self, response_id):
        self.retrieve_calls.append(response_id)
        script = self.scripts.get(response_id) or [{"id": response_id, "status": "queued"}]
        result = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def stub_engine():
    """Fresh scriptable engine double."""
    return StubEngine()


@pytest.fixture
def registry():
    """Install a fresh in-memory registry as the process-wide one."""
    reg = InMemoryJobRegistry()
    set_job_registry(reg)
    yield reg
    reset_job_registry()
    set_job_registry(None)
