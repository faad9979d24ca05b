"""Pydantic models for deep research jobs.

These models define the locally tracked research job, its status state
machine, and the normalized report returned to callers.
"""

import math
import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================


class ResearchModel(str, Enum):
    """Deep research models offered by the engine.

    O3: Full research model tuned for in-depth synthesis (5-30 minutes).
    O4_MINI: Lightweight, faster model for latency-sensitive research.
    """

    O3 = "o3-deep-research-2025-06-26"
    O4_MINI = "o4-mini-deep-research-2025-06-26"


DEFAULT_MODEL = ResearchModel.O3


class ResearchStatus(str, Enum):
    """Local status of a research job.

    Transitions are monotonic: PENDING -> COMPLETED or PENDING -> FAILED.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ResearchStatus.PENDING


class EngineStatus(str, Enum):
    """Status values reported by the engine for a background response."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"


_ENGINE_STATUS_MAP = {
    EngineStatus.QUEUED: ResearchStatus.PENDING,
    EngineStatus.IN_PROGRESS: ResearchStatus.PENDING,
    EngineStatus.COMPLETED: ResearchStatus.COMPLETED,
    EngineStatus.FAILED: ResearchStatus.FAILED,
    EngineStatus.CANCELLED: ResearchStatus.FAILED,
    EngineStatus.INCOMPLETE: ResearchStatus.FAILED,
}


def map_engine_status(raw_status: Optional[str]) -> ResearchStatus:
    """Map an engine-reported status onto the local state machine.

    Unknown or missing values map to PENDING so that a surprising engine
    answer never terminates a job.
    """
    try:
        return _ENGINE_STATUS_MAP[EngineStatus(raw_status)]
    except ValueError:
        return ResearchStatus.PENDING


def generate_request_id() -> str:
    """Generate a locally unique research request ID.

    Format: ``req_<epoch milliseconds>_<12 hex chars>``.
    """
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Job
# =============================================================================


class ResearchJob(BaseModel):
    """A locally tracked research request bound to one engine operation.

    ``id``, ``query``, ``system_message``, ``model`` and ``response_id`` are
    fixed at creation. Only the lifecycle manager mutates ``status``,
    ``result`` and ``error``, and only from PENDING to a terminal state.
    """

    id: str = Field(default_factory=generate_request_id)
    query: str
    system_message: Optional[str] = None
    model: ResearchModel = DEFAULT_MODEL
    include_code_interpreter: bool = False
    status: ResearchStatus = ResearchStatus.PENDING
    response_id: str = Field(..., description="Engine operation reference")
    result: Optional[dict[str, Any]] = Field(
        default=None, description="Raw engine response document"
    )
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    poll_failures: int = 0
    last_poll_error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def elapsed_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes of wall-clock time since creation, halves rounded up."""
        now = now or _utcnow()
        minutes = (now - self.created_at).total_seconds() / 60
        return math.floor(minutes + 0.5)

    def status_payload(self) -> dict[str, Any]:
        """Fields reported by the status check."""
        return {
            "request_id": self.id,
            "status": self.status.value,
            "query": self.query,
            "model": self.model.value,
            "created_at": self.created_at.isoformat(),
            "elapsed_minutes": self.elapsed_minutes(),
        }


# =============================================================================
# Report
# =============================================================================


class Citation(BaseModel):
    """One reference extracted from a completed report.

    ``id`` is the 1-based position in the engine's annotation list.
    """

    id: int
    title: str = "Unknown"
    url: Optional[str] = None
    snippet: Optional[str] = None


class ResearchReport(BaseModel):
    """Normalized research output: report text plus ordered citations."""

    report: str
    citations: list[Citation] = Field(default_factory=list)

    @property
    def citation_count(self) -> int:
        return len(self.citations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "report": self.report,
            "citations": [c.model_dump(exclude_none=True) for c in self.citations],
            "citation_count": self.citation_count,
        }
