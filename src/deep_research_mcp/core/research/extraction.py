"""Normalization of completed engine responses into reports.

The engine's response document is externally owned and only loosely
specified, so it is treated as untrusted input. Expected shape::

    {
        "output": [
            {"type": "reasoning", ...},            # intermediate steps
            {"type": "web_search_call", ...},
            {
                "type": "message",
                "content": [
                    {
                        "type": "output_text",
                        "text": "...final report...",
                        "annotations": [
                            {"type": "url_citation", "title": "...", "url": "..."},
                        ],
                    }
                ],
            },
        ]
    }

The engine appends intermediate reasoning and tool-call items before the
final answer, so the last output item is taken as the report message.
"""

from typing import Any, Mapping, Optional

from deep_research_mcp.core.research.errors import MalformedResultError
from deep_research_mcp.core.research.models import Citation, ResearchReport

UNKNOWN_TITLE = "Unknown"


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def extract_citations(content_item: Any) -> list[Citation]:
    """Build citations from a content item's annotation list.

    Ordinals follow the annotation's position in the source list. Missing
    titles become "Unknown"; url and snippet pass through when present.
    """
    annotations = _get(content_item, "annotations")
    if not isinstance(annotations, list):
        return []

    citations: list[Citation] = []
    for index, annotation in enumerate(annotations, start=1):
        if not isinstance(annotation, Mapping):
            annotation = {}
        citations.append(
            Citation(
                id=index,
                title=_optional_str(annotation.get("title")) or UNKNOWN_TITLE,
                url=_optional_str(annotation.get("url")),
                snippet=_optional_str(annotation.get("snippet")),
            )
        )
    return citations


def extract_report(response: Any) -> ResearchReport:
    """Extract the final report and its citations from an engine response.

    Args:
        response: Engine response document (plain dict)

    Returns:
        ResearchReport with report text and ordered citations

    Raises:
        MalformedResultError: If the output list or the final message's
            content list is missing, not a list, or empty
    """
    output = _get(response, "output")
    if not isinstance(output, list) or not output:
        raise MalformedResultError("No results available")

    message = output[-1]
    content = _get(message, "content")
    if not isinstance(content, list) or not content:
        raise MalformedResultError("Unable to extract results from response")

    main_content = content[0]
    if main_content is None:
        raise MalformedResultError("Unable to extract results from response")

    text = _get(main_content, "text")
    report = text if isinstance(text, str) and text else str(main_content)

    return ResearchReport(report=report, citations=extract_citations(main_content))
