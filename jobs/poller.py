"""Client-side polling loop following one job until it finishes."""
from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Dict, Optional

from config import POLL_INTERVAL_S
from observability.logger import get_logger
from observability.metrics import get_registry

from .errors import TransientCheckError
from .models import JobStatus

LOGGER = get_logger("genstudio.jobs.poller")
REGISTRY = get_registry()
ACTIVE_GAUGE = REGISTRY.gauge("pollers.active")

TERMINAL_STATUSES = {JobStatus.COMPLETED.value, JobStatus.FAILED.value}


class PollerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


class _Run:
    """One polling session for a single job id."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self.cancelled = threading.Event()
        self.finished = threading.Event()


class JobPoller:
    """Polls ``check_status`` for the current job id on a fixed interval.

    Checks run sequentially on a background thread: the next check is
    scheduled only after the previous one has settled, so snapshots are
    applied in order. Starting a new job id, ``reset`` and ``close`` cancel
    the live run; a check already in flight finishes but its result is
    dropped.
    """

    def __init__(
        self,
        check_status: Callable[[str], Dict[str, Any]],
        *,
        interval_s: float = POLL_INTERVAL_S,
        on_update: Optional[Callable[["JobPoller"], None]] = None,
    ) -> None:
        self._check_status = check_status
        self._interval_s = interval_s
        self._on_update = on_update
        self._lock = threading.Lock()
        self._run: Optional[_Run] = None
        self._state = PollerState.IDLE
        self._job_id: Optional[str] = None
        self._snapshot: Optional[Dict[str, Any]] = None
        self._error: Optional[str] = None

    @property
    def state(self) -> PollerState:
        with self._lock:
            return self._state

    @property
    def job_id(self) -> Optional[str]:
        with self._lock:
            return self._job_id

    @property
    def snapshot(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return dict(self._snapshot) if self._snapshot is not None else None

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return (
                self._job_id is not None
                and self._snapshot is not None
                and self._snapshot.get("status") == JobStatus.PROCESSING.value
            )

    def start(self, job_id: str) -> None:
        run = _Run(job_id)
        with self._lock:
            self._cancel_locked()
            self._run = run
            self._job_id = job_id
            self._snapshot = None
            self._error = None
            self._state = PollerState.ACTIVE
        thread = threading.Thread(target=self._loop, args=(run,), name=f"job-poller-{job_id[:8]}", daemon=True)
        thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._cancel_locked() and self._state is PollerState.ACTIVE:
                self._state = PollerState.STOPPED

    def reset(self) -> None:
        with self._lock:
            self._cancel_locked()
            self._run = None
            self._job_id = None
            self._snapshot = None
            self._error = None
            self._state = PollerState.IDLE

    def close(self) -> None:
        self.stop()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run has exited; True if it did."""

        with self._lock:
            run = self._run
        if run is None:
            return True
        return run.finished.wait(timeout)

    def __enter__(self) -> "JobPoller":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _cancel_locked(self) -> bool:
        run = self._run
        if run is None or run.cancelled.is_set():
            return False
        run.cancelled.set()
        return True

    def _loop(self, run: _Run) -> None:
        ACTIVE_GAUGE.inc()
        try:
            while not run.cancelled.is_set():
                if not self._check_once(run):
                    break
                if run.cancelled.wait(self._interval_s):
                    break
        finally:
            ACTIVE_GAUGE.dec()
            run.finished.set()

    def _check_once(self, run: _Run) -> bool:
        try:
            snapshot = self._check_status(run.job_id)
        except TransientCheckError as exc:
            LOGGER.info("poll_transient_error", extra={"job_id": run.job_id, "error": exc.message})
            return self._apply(run, error=exc.message, stop=False)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("poll_failed", extra={"job_id": run.job_id, "error": str(exc)})
            return self._apply(run, error=str(exc) or type(exc).__name__, stop=True)

        status = snapshot.get("status") if isinstance(snapshot, dict) else None
        return self._apply(run, snapshot=snapshot, stop=status in TERMINAL_STATUSES)

    def _apply(
        self,
        run: _Run,
        *,
        snapshot: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        stop: bool,
    ) -> bool:
        with self._lock:
            if run is not self._run or run.cancelled.is_set():
                return False
            if snapshot is not None:
                self._snapshot = dict(snapshot)
            self._error = error
            if stop:
                run.cancelled.set()
                self._state = PollerState.STOPPED
        self._notify()
        return not stop

    def _notify(self) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(self)
        except Exception:  # noqa: BLE001
            LOGGER.exception("poller_callback_failed")


__all__ = ["JobPoller", "PollerState", "TERMINAL_STATUSES"]
