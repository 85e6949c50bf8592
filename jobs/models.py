"""Data models describing asynchronous generation jobs."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .errors import JobStateError

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utcnow() -> datetime:
    """Return a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


class JobMode(str, Enum):
    """How a job advances: fabricated from elapsed time, or relayed from the provider."""

    SIMULATED = "simulated"
    DELEGATED = "delegated"


class JobStatus(str, Enum):
    """Client-visible lifecycle states."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class TerminalResult:
    """Final outcome of a job, written once."""

    outcome: Outcome
    result_reference: Optional[str] = None
    error: Optional[str] = None
    finished_at: datetime = field(default_factory=utcnow)

    @classmethod
    def success(cls, reference: str) -> "TerminalResult":
        return cls(outcome=Outcome.SUCCESS, result_reference=reference)

    @classmethod
    def failure(cls, error: str) -> "TerminalResult":
        return cls(outcome=Outcome.FAILURE, error=error)

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "result_reference": self.result_reference,
            "error": self.error,
            "finished_at": self.finished_at.strftime(ISO_FORMAT),
        }


@dataclass
class Job:
    """Representation of a long-running generation request.

    ``mode`` is fixed at creation. Simulated jobs never carry an
    ``external_handle``; delegated jobs always do until they finish.
    """

    id: str
    mode: JobMode
    prompt: str = ""
    kind: str = "video"
    params: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    external_handle: Optional[Any] = None
    terminal_result: Optional[TerminalResult] = None
    trace_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.mode = JobMode(self.mode)
        if self.mode is JobMode.SIMULATED and self.external_handle is not None:
            raise JobStateError("simulated jobs cannot hold an external handle")
        if self.mode is JobMode.DELEGATED and self.external_handle is None:
            raise JobStateError("delegated jobs require an external handle")

    @property
    def is_terminal(self) -> bool:
        return self.terminal_result is not None

    def elapsed_seconds(self, now: datetime) -> float:
        return max(0.0, (now - self.created_at).total_seconds())

    def refresh_handle(self, handle: Any) -> None:
        if self.mode is not JobMode.DELEGATED:
            raise JobStateError(f"job {self.id} has no external operation")
        if self.is_terminal:
            raise JobStateError(f"job {self.id} is already finished")
        self.external_handle = handle

    def complete(self, reference: str) -> bool:
        """Record success; returns False if the job was already terminal."""

        if self.is_terminal:
            return False
        self.terminal_result = TerminalResult.success(reference)
        return True

    def fail(self, error: str) -> bool:
        """Record a permanent failure; returns False if the job was already terminal."""

        if self.is_terminal:
            return False
        self.terminal_result = TerminalResult.failure(error)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "mode": self.mode.value,
            "kind": self.kind,
            "prompt": self.prompt,
            "params": self.params or None,
            "created_at": self.created_at.strftime(ISO_FORMAT),
            "terminal_result": self.terminal_result.to_dict() if self.terminal_result else None,
            "trace_id": self.trace_id,
        }


__all__ = ["ISO_FORMAT", "Job", "JobMode", "JobStatus", "Outcome", "TerminalResult", "utcnow"]
