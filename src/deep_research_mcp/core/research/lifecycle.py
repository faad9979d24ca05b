"""Research job lifecycle management.

``ResearchJobManager`` creates jobs backed by engine background operations,
reconciles local status against the engine on demand, and normalizes the
final engine document into a report.

Status lifecycle (local):

    pending --(engine completed)--> completed
    pending --(engine failed/cancelled/incomplete)--> failed

Terminal states have no outgoing transitions. There is no background
poller: status only advances when a caller checks status or asks for
results. Engine query errors while polling leave the job pending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from deep_research_mcp.core.research.engine import (
    ResearchEngine,
    build_input_messages,
    build_tools,
)
from deep_research_mcp.core.research.errors import (
    EngineQueryError,
    EngineStartError,
    JobNotFoundError,
    JobNotReadyError,
)
from deep_research_mcp.core.research.extraction import extract_report
from deep_research_mcp.core.research.models import (
    DEFAULT_MODEL,
    ResearchJob,
    ResearchModel,
    ResearchReport,
    ResearchStatus,
    map_engine_status,
)
from deep_research_mcp.core.research.registry import JobRegistry

if TYPE_CHECKING:
    from deep_research_mcp.config import ResearchConfig

logger = logging.getLogger(__name__)

ENGINE_FAILURE_MESSAGE = "Research request failed"


@dataclass(frozen=True)
class StatusCheck:
    """Outcome of a status check.

    Attributes:
        job: The job after reconciliation
        polled: Whether the engine was queried during this check
        poll_error: Engine query error swallowed during this check, if any
    """

    job: ResearchJob
    polled: bool = False
    poll_error: Optional[str] = None


@dataclass(frozen=True)
class ResearchResults:
    """A completed job together with its normalized report."""

    job: ResearchJob
    report: ResearchReport


class ResearchJobManager:
    """Creates, reconciles and reads research jobs.

    Args:
        engine: Engine used to start and query background operations
        registry: Store for tracked jobs
        config: Optional lifecycle settings (retention)
    """

    def __init__(
        self,
        engine: ResearchEngine,
        registry: JobRegistry,
        config: Optional["ResearchConfig"] = None,
    ) -> None:
        self.engine = engine
        self.registry = registry
        self.config = config

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(
        self,
        query: str,
        *,
        system_message: Optional[str] = None,
        model: ResearchModel = DEFAULT_MODEL,
        include_code_interpreter: bool = False,
    ) -> ResearchJob:
        """Start a research operation and track it as a pending job.

        Args:
            query: Research question (validated non-empty by the caller)
            system_message: Optional steering text sent ahead of the query
            model: Deep research model to run
            include_code_interpreter: Also give the engine a code interpreter

        Returns:
            The newly registered pending job

        Raises:
            EngineStartError: If the engine did not accept the request. No
                job is registered in that case.
        """
        self._evict_stale_jobs()

        document = await self.engine.start_background(
            model=model.value,
            input_messages=build_input_messages(query, system_message),
            tools=build_tools(include_code_interpreter),
        )

        response_id = document.get("id")
        if not response_id:
            raise EngineStartError("Engine did not return a response ID")

        job = ResearchJob(
            query=query,
            system_message=system_message,
            model=model,
            include_code_interpreter=include_code_interpreter,
            response_id=str(response_id),
        )
        self.registry.insert(job)

        logger.info(
            "Research request created: request_id=%s response_id=%s model=%s",
            job.id,
            job.response_id,
            job.model.value,
        )
        return job

    def _evict_stale_jobs(self) -> None:
        if self.config is None or self.config.retention_seconds <= 0:
            return
        removed = self.registry.cleanup_stale_jobs(self.config.retention_seconds)
        if removed:
            logger.info("Evicted %d finished research request(s)", removed)

    # -------------------------------------------------------------------------
    # Status reconciliation
    # -------------------------------------------------------------------------

    def _require(self, request_id: str) -> ResearchJob:
        job = self.registry.get(request_id)
        if job is None:
            raise JobNotFoundError(request_id)
        return job

    async def check_status(self, request_id: str) -> StatusCheck:
        """Reconcile a job's status with the engine and return it.

        Terminal jobs are returned as-is without contacting the engine.
        Pending jobs are re-checked under the job's lock, so concurrent
        checks on one ID query the engine at most once per transition.

        Raises:
            JobNotFoundError: If no job is tracked under ``request_id``.
        """
        job = self._require(request_id)
        if job.is_terminal:
            return StatusCheck(job=job)

        async with self.registry.lock(request_id):
            job = self._require(request_id)
            if job.is_terminal:
                return StatusCheck(job=job)

            try:
                document = await self.engine.retrieve(job.response_id)
            except EngineQueryError as e:
                failures = job.poll_failures + 1
                logger.warning(
                    "Status query failed for %s (attempt %d), keeping pending: %s",
                    request_id,
                    failures,
                    e,
                )
                job = self.registry.update(
                    request_id, poll_failures=failures, last_poll_error=str(e)
                )
                return StatusCheck(job=job, polled=True, poll_error=str(e))

            job = self._apply_engine_document(job, document)
            return StatusCheck(job=job, polled=True)

    def _apply_engine_document(self, job: ResearchJob, document: dict) -> ResearchJob:
        """Write the engine's reported status back to the registry."""
        raw_status = document.get("status")
        new_status = map_engine_status(raw_status)

        if new_status is ResearchStatus.PENDING:
            if job.poll_failures:
                return self.registry.update(
                    job.id, poll_failures=0, last_poll_error=None
                )
            return job

        now = datetime.now(timezone.utc)
        if new_status is ResearchStatus.COMPLETED:
            logger.info("Research request completed: request_id=%s", job.id)
            return self.registry.update(
                job.id,
                status=ResearchStatus.COMPLETED,
                result=document,
                completed_at=now,
                poll_failures=0,
                last_poll_error=None,
            )

        error = ENGINE_FAILURE_MESSAGE
        engine_error = document.get("error")
        if isinstance(engine_error, dict) and engine_error.get("message"):
            error = f"{ENGINE_FAILURE_MESSAGE}: {engine_error['message']}"
        logger.warning(
            "Research request failed: request_id=%s engine_status=%s",
            job.id,
            raw_status,
        )
        return self.registry.update(
            job.id,
            status=ResearchStatus.FAILED,
            error=error,
            completed_at=now,
            poll_failures=0,
            last_poll_error=None,
        )

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    async def get_results(self, request_id: str) -> ResearchResults:
        """Return the normalized report for a completed job.

        Fetches the engine document once if the job reached ``completed``
        without it being cached; the fetched document is then cached.

        Raises:
            JobNotFoundError: If no job is tracked under ``request_id``.
            JobNotReadyError: If the job is not completed.
            EngineQueryError: If fetching the missing document failed. The
                job's status is left unchanged.
            MalformedResultError: If the document cannot be normalized.
        """
        job = self._require(request_id)
        if job.status is not ResearchStatus.COMPLETED:
            raise JobNotReadyError(request_id, job.status.value)

        if job.result is None:
            async with self.registry.lock(request_id):
                job = self._require(request_id)
                if job.result is None:
                    document = await self.engine.retrieve(job.response_id)
                    job = self.registry.update(request_id, result=document)
                    logger.debug("Cached engine result for %s", request_id)

        return ResearchResults(job=job, report=extract_report(job.result))
