"""Exceptions raised by the research job lifecycle.

The tool layer catches every ResearchError at the tool boundary and turns
it into an error envelope, so none of these reach the MCP transport.
"""

from typing import Optional


class ResearchError(Exception):
    """Base exception for research job operations."""


class ValidationError(ResearchError):
    """Caller input was rejected before any engine call.

    Attributes:
        field: Name of the offending argument
    """

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class JobNotFoundError(ResearchError):
    """No job is tracked under the given request ID."""

    def __init__(self, request_id: str):
        super().__init__(f"Request ID {request_id} not found")
        self.request_id = request_id


class JobNotReadyError(ResearchError):
    """The job exists but has not completed.

    Attributes:
        request_id: The job's ID
        status: The job's current status value
    """

    def __init__(self, request_id: str, status: str):
        super().__init__(f"Request {request_id} is not completed. Status: {status}")
        self.request_id = request_id
        self.status = status


class DuplicateJobError(ResearchError):
    """A job with the same request ID is already registered."""

    def __init__(self, request_id: str):
        super().__init__(f"Request ID {request_id} already exists")
        self.request_id = request_id


class InvalidTransitionError(ResearchError):
    """An update would move a job out of a terminal status."""

    def __init__(self, request_id: str, current: str, requested: str):
        super().__init__(
            f"Request {request_id} cannot move from {current} to {requested}"
        )
        self.request_id = request_id
        self.current = current
        self.requested = requested


class EngineError(ResearchError):
    """Base exception for research engine calls.

    Attributes:
        retryable: Whether the same call may succeed later
        status_code: HTTP status code if the engine returned one
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class EngineStartError(EngineError):
    """The engine refused or failed to start a background operation."""


class EngineQueryError(EngineError):
    """Retrieving an engine operation failed."""


class MalformedResultError(ResearchError):
    """A completed engine response could not be normalized into a report."""
