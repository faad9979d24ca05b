"""Deep research job lifecycle.

Tracks research requests submitted to a background research engine,
reconciles their status on demand, and normalizes finished reports.
"""

from deep_research_mcp.core.research.engine import (
    OpenAIResearchEngine,
    ResearchEngine,
    build_input_messages,
    build_tools,
)
from deep_research_mcp.core.research.errors import (
    DuplicateJobError,
    EngineError,
    EngineQueryError,
    EngineStartError,
    InvalidTransitionError,
    JobNotFoundError,
    JobNotReadyError,
    MalformedResultError,
    ResearchError,
    ValidationError,
)
from deep_research_mcp.core.research.extraction import extract_citations, extract_report
from deep_research_mcp.core.research.lifecycle import (
    ResearchJobManager,
    ResearchResults,
    StatusCheck,
)
from deep_research_mcp.core.research.models import (
    DEFAULT_MODEL,
    Citation,
    ResearchJob,
    ResearchModel,
    ResearchReport,
    ResearchStatus,
)
from deep_research_mcp.core.research.registry import (
    InMemoryJobRegistry,
    JobRegistry,
    get_job_registry,
    reset_job_registry,
    set_job_registry,
)

__all__ = [
    # Engine
    "ResearchEngine",
    "OpenAIResearchEngine",
    "build_input_messages",
    "build_tools",
    # Errors
    "ResearchError",
    "ValidationError",
    "JobNotFoundError",
    "JobNotReadyError",
    "DuplicateJobError",
    "InvalidTransitionError",
    "EngineError",
    "EngineStartError",
    "EngineQueryError",
    "MalformedResultError",
    # Extraction
    "extract_report",
    "extract_citations",
    # Lifecycle
    "ResearchJobManager",
    "StatusCheck",
    "ResearchResults",
    # Models
    "DEFAULT_MODEL",
    "Citation",
    "ResearchJob",
    "ResearchModel",
    "ResearchReport",
    "ResearchStatus",
    # Registry
    "JobRegistry",
    "InMemoryJobRegistry",
    "get_job_registry",
    "set_job_registry",
    "reset_job_registry",
]
