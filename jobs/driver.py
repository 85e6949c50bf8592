"""Advances jobs toward a terminal state on each status check."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from config import DELEGATED_PROGRESS, SIMULATED_DURATION_S, SIMULATED_VIDEO_URL
from observability.logger import get_logger, log_transition
from observability.metrics import get_registry
from services.operations import OperationProvider, ProviderError

from .errors import TransientCheckError
from .models import Job, JobMode, utcnow
from .projector import project
from .store import JobStore

LOGGER = get_logger("genstudio.jobs.driver")
REGISTRY = get_registry()
COMPLETED_COUNTER = REGISTRY.counter("jobs.completed_total")
FAILED_COUNTER = REGISTRY.counter("jobs.failed_total")

MISSING_RESULT = "missing result"


class LifecycleDriver:
    """Runs one lifecycle step per status check and returns the projected view.

    Checks for the same id are serialised on the record's lock, so a
    delegated job has at most one provider poll in flight and its terminal
    result is written exactly once. Terminal jobs short-circuit without
    touching the provider.
    """

    def __init__(
        self,
        store: JobStore,
        provider: Optional[OperationProvider] = None,
        *,
        duration_s: float = SIMULATED_DURATION_S,
        delegated_progress: int = DELEGATED_PROGRESS,
        simulated_result: str = SIMULATED_VIDEO_URL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._provider = provider
        self._duration_s = duration_s
        self._delegated_progress = delegated_progress
        self._simulated_result = simulated_result
        self._clock = clock

    @property
    def duration_s(self) -> float:
        return self._duration_s

    def check_status(self, job_id: str) -> Dict[str, Any]:
        record_lock = self._store.lock(job_id)
        with record_lock:
            job = self._store.require(job_id)
            # One reading per check so completion and projected progress agree.
            now = self._clock()
            if not job.is_terminal:
                if job.mode is JobMode.SIMULATED:
                    self._advance_simulated(job, now)
                else:
                    self._advance_delegated(job)
            return project(
                job,
                now,
                duration_s=self._duration_s,
                delegated_progress=self._delegated_progress,
            )

    def _advance_simulated(self, job: Job, now: datetime) -> None:
        if job.elapsed_seconds(now) < self._duration_s:
            return
        if job.complete(self._simulated_result):
            self._store.replace(job)
            COMPLETED_COUNTER.inc()
            log_transition(
                LOGGER, job_id=job.id, mode=job.mode.value, status="completed", **job.terminal_result.to_dict()
            )

    def _advance_delegated(self, job: Job) -> None:
        if self._provider is None:
            raise TransientCheckError(job.id, "no provider configured for delegated job")
        try:
            result = self._provider.poll(job.external_handle)
        except ProviderError as exc:
            LOGGER.warning("status_check_failed", extra={"job_id": job.id, "error": str(exc)})
            raise TransientCheckError(job.id, "Failed to retrieve job status from provider") from exc

        stored_name, polled_name = _operation_name(job.external_handle), _operation_name(result.handle)
        if stored_name != polled_name:
            LOGGER.warning(
                "operation_handle_mismatch",
                extra={"job_id": job.id, "stored": stored_name, "polled": polled_name},
            )
            raise TransientCheckError(job.id, "Provider returned a different operation")

        job.refresh_handle(result.handle)
        if result.done:
            if result.result_reference:
                transitioned = job.complete(result.result_reference)
                counter, status = COMPLETED_COUNTER, "completed"
            else:
                transitioned = job.fail(result.error or MISSING_RESULT)
                counter, status = FAILED_COUNTER, "failed"
            if transitioned:
                counter.inc()
                log_transition(
                    LOGGER, job_id=job.id, mode=job.mode.value, status=status, **job.terminal_result.to_dict()
                )
        self._store.replace(job)


def _operation_name(handle: Any) -> Optional[str]:
    if isinstance(handle, dict):
        return handle.get("name")
    return getattr(handle, "name", None)


__all__ = ["LifecycleDriver", "MISSING_RESULT"]
