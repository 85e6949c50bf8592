"""Job lifecycle primitives for asynchronous generation."""

from .errors import (  # noqa: F401
    DuplicateJobError,
    JobError,
    JobStateError,
    NotFoundError,
    SubmissionError,
    TransientCheckError,
    ValidationError,
)
from .models import Job, JobMode, JobStatus, TerminalResult  # noqa: F401
from .store import JobStore  # noqa: F401
from .projector import project  # noqa: F401
from .driver import LifecycleDriver  # noqa: F401
from .submission import SubmissionService  # noqa: F401
from .poller import JobPoller, PollerState  # noqa: F401

__all__ = [
    "DuplicateJobError",
    "Job",
    "JobError",
    "JobMode",
    "JobPoller",
    "JobStateError",
    "JobStatus",
    "JobStore",
    "LifecycleDriver",
    "NotFoundError",
    "PollerState",
    "SubmissionError",
    "SubmissionService",
    "TerminalResult",
    "TransientCheckError",
    "ValidationError",
    "project",
]
