"""Error taxonomy for submissions and status checks."""
from __future__ import annotations


class JobError(Exception):
    """Base class for job engine errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(JobError):
    """Submission rejected before any job was created."""


class NotFoundError(JobError):
    """Status check for an id the store has never seen (or has evicted)."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class TransientCheckError(JobError):
    """The provider could not be queried; the job stays processing."""

    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(message)
        self.job_id = job_id


class SubmissionError(JobError):
    """The provider refused or failed a delegated submission."""


class DuplicateJobError(JobError):
    """Generated id collided with an existing record."""


class JobStateError(JobError):
    """Mutation not allowed in the record's current state."""


__all__ = [
    "DuplicateJobError",
    "JobError",
    "JobStateError",
    "NotFoundError",
    "SubmissionError",
    "TransientCheckError",
    "ValidationError",
]
