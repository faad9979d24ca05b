"""Deep research MCP tools.

Exposes the research job lifecycle as three tools:

- openai_deep_research_create: start a background research request
- openai_deep_research_check_status: poll a request's status
- openai_deep_research_get_results: fetch the report and citations

Every outcome, including unknown IDs, unfinished requests and engine
failures, is returned as a response envelope whose ``data.status`` carries
the status tag. Nothing raises out of a tool.
"""

import logging
from dataclasses import asdict
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from deep_research_mcp.config import ServerConfig
from deep_research_mcp.core.naming import canonical_tool
from deep_research_mcp.core.research.engine import OpenAIResearchEngine
from deep_research_mcp.core.research.errors import (
    EngineQueryError,
    EngineStartError,
    JobNotFoundError,
    JobNotReadyError,
    MalformedResultError,
    ValidationError,
)
from deep_research_mcp.core.research.lifecycle import ResearchJobManager
from deep_research_mcp.core.research.models import ResearchModel, ResearchStatus
from deep_research_mcp.core.research.registry import get_job_registry
from deep_research_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    engine_error_type,
    error_response,
    internal_error,
    not_found_error,
    sanitize_error_message,
    success_response,
    validation_error,
)

logger = logging.getLogger(__name__)

CREATE_TOOL = "openai_deep_research_create"
CHECK_STATUS_TOOL = "openai_deep_research_check_status"
GET_RESULTS_TOOL = "openai_deep_research_get_results"

STATUS_ERROR = "error"
STATUS_NOT_FOUND = "not_found"


# =============================================================================
# Module State
# =============================================================================

_config: Optional[ServerConfig] = None
_manager: Optional[ResearchJobManager] = None


def _get_config() -> ServerConfig:
    """Get the server config, creating a default one if unset."""
    global _config
    if _config is None:
        _config = ServerConfig()
    return _config


def _get_manager() -> ResearchJobManager:
    """Get or create the research job manager."""
    global _manager
    if _manager is None:
        config = _get_config()
        _manager = ResearchJobManager(
            engine=OpenAIResearchEngine.from_config(config.engine),
            registry=get_job_registry(),
            config=config.research,
        )
    return _manager


def set_research_manager(manager: Optional[ResearchJobManager]) -> None:
    """Install a specific manager (None rebuilds from config on next use)."""
    global _manager
    _manager = manager


# =============================================================================
# Validation Helpers
# =============================================================================


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    return value


def _parse_model(value: Optional[str]) -> ResearchModel:
    if value is None:
        value = _get_config().research.default_model
    try:
        return ResearchModel(value)
    except ValueError:
        valid = ", ".join(m.value for m in ResearchModel)
        raise ValidationError(
            f"Invalid model '{value}'. Valid: {valid}", field="model"
        ) from None


def _validation_response(tool: str, exc: ValidationError) -> dict:
    field = exc.field or "input"
    return asdict(
        validation_error(
            f"Invalid field '{field}' for {tool}: {exc}",
            field=field,
            data={"status": STATUS_ERROR},
            remediation=f"Provide a valid '{field}' value",
        )
    )


def _unexpected_error(action: str, exc: Exception) -> dict:
    logger.exception("Unexpected error during %s", action)
    message = sanitize_error_message(exc, context=action)
    return asdict(
        internal_error(
            f"Failed to {action}: {message}",
            data={"status": STATUS_ERROR},
        )
    )


def _not_found_response(exc: JobNotFoundError) -> dict:
    return asdict(
        not_found_error(
            "Research request",
            exc.request_id,
            message=str(exc),
            data={"status": STATUS_NOT_FOUND},
            remediation="Use the request_id returned by openai_deep_research_create",
        )
    )


# =============================================================================
# Action Handlers
# =============================================================================


async def _handle_create(
    *,
    query: Any = None,
    system_message: Optional[str] = None,
    model: Optional[str] = None,
    include_code_interpreter: Any = False,
) -> dict:
    """Handle research request creation."""
    try:
        query = _require_text(query, "query")
        research_model = _parse_model(model)
        if system_message is not None and not isinstance(system_message, str):
            raise ValidationError("system_message must be a string", field="system_message")
        if not isinstance(include_code_interpreter, bool):
            raise ValidationError(
                "include_code_interpreter must be a boolean",
                field="include_code_interpreter",
            )
    except ValidationError as e:
        return _validation_response(CREATE_TOOL, e)

    try:
        job = await _get_manager().create(
            query,
            system_message=system_message or None,
            model=research_model,
            include_code_interpreter=include_code_interpreter,
        )
    except EngineStartError as e:
        logger.warning("Failed to create research request: %s", e)
        return asdict(
            error_response(
                f"Failed to create research request: {e}",
                data={"status": ResearchStatus.FAILED.value, "retryable": e.retryable},
                error_code=ErrorCode.ENGINE_START_FAILED,
                error_type=engine_error_type(e.status_code, e.retryable),
                remediation=(
                    "Check OPENAI_API_KEY and engine availability, then retry"
                ),
            )
        )
    except Exception as e:
        return _unexpected_error("create research request", e)

    return asdict(
        success_response(
            data={
                "request_id": job.id,
                "status": job.status.value,
                "model": job.model.value,
                "message": "Research request created successfully",
            }
        )
    )


async def _handle_check_status(*, request_id: Any = None) -> dict:
    """Handle research status check."""
    try:
        request_id = _require_text(request_id, "request_id")
    except ValidationError as e:
        return _validation_response(CHECK_STATUS_TOOL, e)

    try:
        check = await _get_manager().check_status(request_id)
    except JobNotFoundError as e:
        return _not_found_response(e)
    except Exception as e:
        return _unexpected_error("check status", e)

    job = check.job
    data = job.status_payload()
    if job.error:
        data["failure_reason"] = job.error

    warnings = []
    if check.poll_error:
        warnings.append(
            f"Engine status query failed ({job.poll_failures} consecutive); "
            f"request remains {job.status.value}: {check.poll_error}"
        )
        data["poll_failures"] = job.poll_failures

    return asdict(success_response(data=data, warnings=warnings or None))


async def _handle_get_results(*, request_id: Any = None) -> dict:
    """Handle research results retrieval."""
    try:
        request_id = _require_text(request_id, "request_id")
    except ValidationError as e:
        return _validation_response(GET_RESULTS_TOOL, e)

    try:
        results = await _get_manager().get_results(request_id)
    except JobNotFoundError as e:
        return _not_found_response(e)
    except JobNotReadyError as e:
        if e.status == ResearchStatus.FAILED.value:
            remediation = "The request failed; create a new research request"
        else:
            remediation = f"Poll {CHECK_STATUS_TOOL} until status is 'completed'"
        return asdict(
            error_response(
                str(e),
                data={"status": e.status},
                error_code=ErrorCode.NOT_READY,
                error_type=ErrorType.NOT_READY,
                remediation=remediation,
            )
        )
    except EngineQueryError as e:
        logger.warning("Failed to fetch results for %s: %s", request_id, e)
        return asdict(
            error_response(
                f"Failed to get results: {e}",
                data={"status": STATUS_ERROR, "retryable": e.retryable},
                error_code=ErrorCode.ENGINE_QUERY_FAILED,
                error_type=engine_error_type(e.status_code, e.retryable),
                remediation="Retry later; the request itself is still completed",
            )
        )
    except MalformedResultError as e:
        logger.warning("Malformed engine result for %s: %s", request_id, e)
        return asdict(
            error_response(
                str(e),
                data={"status": STATUS_ERROR},
                error_code=ErrorCode.MALFORMED_RESULT,
                error_type=ErrorType.ENGINE,
                remediation="The engine returned no usable report for this request",
            )
        )
    except Exception as e:
        return _unexpected_error("get results", e)

    job = results.job
    return asdict(
        success_response(
            data={
                "request_id": job.id,
                "status": ResearchStatus.COMPLETED.value,
                "query": job.query,
                "model": job.model.value,
                "results": results.report.to_dict(),
            }
        )
    )


# =============================================================================
# Tool Registration
# =============================================================================


def register_research_tools(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the deep research tools.

    Args:
        mcp: FastMCP server instance
        config: Server configuration
    """
    global _config, _manager
    _config = config
    _manager = None  # Rebuild from the new config on first use

    @canonical_tool(
        mcp,
        canonical_name=CREATE_TOOL,
        title="Create OpenAI Deep Research Request",
        description=(
            "Create a new OpenAI Deep Research request. This initiates a "
            "comprehensive research task that can take 5-30 minutes to complete. "
            "The AI will decompose your query, perform web searches, and "
            "synthesize results into a detailed report with citations."
        ),
    )
    async def openai_deep_research_create(
        query: str,
        system_message: Optional[str] = None,
        model: Optional[str] = None,
        include_code_interpreter: bool = False,
    ) -> dict:
        """Create a deep research request.

        Args:
            query: The research question or topic to investigate
            system_message: Optional system message to guide the research approach
            model: o3-deep-research-2025-06-26 (in-depth, 5-30 minutes) or
                o4-mini-deep-research-2025-06-26 (lighter and faster).
                Defaults to the configured model (o3 unless overridden)
            include_code_interpreter: Include the code interpreter tool for
                data analysis and calculations

        Returns:
            Response envelope with request_id and status "pending"
        """
        return await _handle_create(
            query=query,
            system_message=system_message,
            model=model,
            include_code_interpreter=include_code_interpreter,
        )

    @canonical_tool(
        mcp,
        canonical_name=CHECK_STATUS_TOOL,
        title="Check Research Request Status",
        description="Check the status of an OpenAI Deep Research request",
    )
    async def openai_deep_research_check_status(request_id: str) -> dict:
        """Check the status of a research request.

        Args:
            request_id: The ID of the research request to check

        Returns:
            Response envelope with status, query, model, created_at and
            elapsed_minutes
        """
        return await _handle_check_status(request_id=request_id)

    @canonical_tool(
        mcp,
        canonical_name=GET_RESULTS_TOOL,
        title="Get Research Results",
        description="Get the results from a completed OpenAI Deep Research request",
    )
    async def openai_deep_research_get_results(request_id: str) -> dict:
        """Get the report and citations of a completed research request.

        Args:
            request_id: The ID of the research request

        Returns:
            Response envelope with results.report, results.citations and
            results.citation_count
        """
        return await _handle_get_results(request_id=request_id)

    logger.debug("Registered deep research tools")


__all__ = [
    "CREATE_TOOL",
    "CHECK_STATUS_TOOL",
    "GET_RESULTS_TOOL",
    "register_research_tools",
    "set_research_manager",
]
