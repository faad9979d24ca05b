"""Job registry for tracking research requests.

The registry is the single source of truth for local job status. The
lifecycle manager depends only on the ``JobRegistry`` interface so the
in-memory store used here can be swapped for a persistent one without
changing the manager.

A module-level default registry lives for the lifetime of the process and
is shared by the MCP tools.
"""

from __future__ import annotations

import asyncio
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from deep_research_mcp.core.research.errors import (
    DuplicateJobError,
    InvalidTransitionError,
    JobNotFoundError,
)
from deep_research_mcp.core.research.models import ResearchJob, ResearchStatus

_IMMUTABLE_FIELDS = frozenset(
    {"id", "query", "system_message", "model", "response_id", "created_at"}
)


class JobRegistry(ABC):
    """Storage interface for research jobs."""

    @abstractmethod
    def insert(self, job: ResearchJob) -> None:
        """Store a new job.

        Raises:
            DuplicateJobError: If a job with the same ID exists.
        """

    @abstractmethod
    def get(self, job_id: str) -> Optional[ResearchJob]:
        """Return the job for ``job_id``, or None if unknown."""

    @abstractmethod
    def update(self, job_id: str, **fields: Any) -> ResearchJob:
        """Apply field updates to a job and return the updated job.

        Raises:
            JobNotFoundError: If the job is unknown.
            InvalidTransitionError: If the update would leave a terminal status.
            ValueError: If an immutable field is targeted.
        """

    @abstractmethod
    def lock(self, job_id: str) -> asyncio.Lock:
        """Return the lock that serializes reconciliation of one job."""

    @abstractmethod
    def list_jobs(self) -> list[ResearchJob]:
        """Return all tracked jobs, oldest first."""

    @abstractmethod
    def cleanup_stale_jobs(self, max_age_seconds: float) -> int:
        """Evict terminal jobs finished more than ``max_age_seconds`` ago.

        Returns:
            Number of jobs removed.
        """

    @abstractmethod
    def reset(self) -> None:
        """Remove every job (for testing)."""

    def __contains__(self, job_id: object) -> bool:
        return isinstance(job_id, str) and self.get(job_id) is not None

    def __len__(self) -> int:
        return len(self.list_jobs())


def _check_update(job: ResearchJob, fields: Dict[str, Any]) -> None:
    immutable = _IMMUTABLE_FIELDS.intersection(fields)
    if immutable:
        raise ValueError(
            f"Cannot modify immutable field(s) on {job.id}: {sorted(immutable)}"
        )

    new_status = fields.get("status")
    if new_status is None:
        return
    new_status = ResearchStatus(new_status)
    if job.status.is_terminal and new_status != job.status:
        raise InvalidTransitionError(job.id, job.status.value, new_status.value)


class InMemoryJobRegistry(JobRegistry):
    """Process-lifetime registry backed by a dict.

    Map access is guarded by a threading lock. Reconciliation of a single
    job is serialized by a per-job asyncio lock handed out by ``lock()``.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, ResearchJob] = {}
        self._job_locks: Dict[str, asyncio.Lock] = {}
        self._registry_lock = threading.Lock()

    def insert(self, job: ResearchJob) -> None:
        with self._registry_lock:
            if job.id in self._jobs:
                raise DuplicateJobError(job.id)
            self._jobs[job.id] = job

    def get(self, job_id: str) -> Optional[ResearchJob]:
        with self._registry_lock:
            return self._jobs.get(job_id)

    def update(self, job_id: str, **fields: Any) -> ResearchJob:
        with self._registry_lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            _check_update(job, fields)
            if "status" in fields:
                fields["status"] = ResearchStatus(fields["status"])
            for name, value in fields.items():
                setattr(job, name, value)
            return job

    def lock(self, job_id: str) -> asyncio.Lock:
        with self._registry_lock:
            job_lock = self._job_locks.get(job_id)
            if job_lock is None:
                job_lock = asyncio.Lock()
                self._job_locks[job_id] = job_lock
            return job_lock

    def list_jobs(self) -> list[ResearchJob]:
        with self._registry_lock:
            return sorted(self._jobs.values(), key=lambda job: job.created_at)

    def cleanup_stale_jobs(self, max_age_seconds: float) -> int:
        now = datetime.now(timezone.utc)
        with self._registry_lock:
            stale_ids = [
                job_id
                for job_id, job in self._jobs.items()
                if job.is_terminal
                and job.completed_at is not None
                and (now - job.completed_at).total_seconds() > max_age_seconds
            ]
            for job_id in stale_ids:
                del self._jobs[job_id]
                self._job_locks.pop(job_id, None)
            return len(stale_ids)

    def reset(self) -> None:
        with self._registry_lock:
            self._jobs.clear()
            self._job_locks.clear()


# Global registry instance
_registry: Optional[JobRegistry] = None
_global_lock = threading.Lock()


def get_job_registry() -> JobRegistry:
    """Get the process-wide job registry, creating it on first use."""
    global _registry
    with _global_lock:
        if _registry is None:
            _registry = InMemoryJobRegistry()
        return _registry


def set_job_registry(registry: Optional[JobRegistry]) -> None:
    """Replace the process-wide registry (None restores the default)."""
    global _registry
    with _global_lock:
        _registry = registry


def reset_job_registry() -> None:
    """Clear all jobs from the process-wide registry (for testing)."""
    get_job_registry().reset()
