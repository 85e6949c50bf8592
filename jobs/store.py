"""In-memory job store with optional TTL semantics."""
from __future__ import annotations

import threading
import time
from typing import Dict, Optional

from .errors import DuplicateJobError, NotFoundError
from .models import Job


class JobStore:
    """Thread-safe in-memory storage for jobs.

    Records live for the process lifetime unless ``ttl_seconds`` is given,
    in which case a record is evicted once it has not been touched for that
    long. Each record also owns a lock that callers use to serialise status
    checks for one id; a record whose lock is held is never evicted.
    """

    def __init__(self, *, ttl_seconds: Optional[int] = None) -> None:
        self._ttl_seconds = int(ttl_seconds) if ttl_seconds and ttl_seconds > 0 else None
        self._jobs: Dict[str, Job] = {}
        self._record_locks: Dict[str, threading.Lock] = {}
        self._expiry: Dict[str, float] = {}
        self._lock = threading.RLock()

    def create(self, job: Job) -> Job:
        with self._lock:
            self._purge_expired_locked()
            if job.id in self._jobs:
                raise DuplicateJobError(f"job id collision: {job.id}")
            self._store_locked(job)
            return job

    def put(self, job: Job) -> Job:
        with self._lock:
            self._store_locked(job)
            return job

    def replace(self, job: Job) -> Job:
        """Overwrite an existing record; evicted or unknown ids raise NotFoundError."""

        with self._lock:
            self._purge_expired_locked()
            if job.id not in self._jobs:
                raise NotFoundError(job.id)
            self._store_locked(job)
            return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            self._purge_expired_locked()
            job = self._jobs.get(job_id)
            if job is not None:
                self._touch_locked(job_id)
            return job

    def require(self, job_id: str) -> Job:
        job = self.get(job_id)
        if job is None:
            raise NotFoundError(job_id)
        return job

    def lock(self, job_id: str) -> threading.Lock:
        """Return the per-record lock, raising NotFoundError for unknown ids."""

        with self._lock:
            self._purge_expired_locked()
            record_lock = self._record_locks.get(job_id)
            if record_lock is None:
                raise NotFoundError(job_id)
            self._touch_locked(job_id)
            return record_lock

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            self._purge_expired_locked()
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired_locked()
            return len(self._jobs)

    def _store_locked(self, job: Job) -> None:
        self._jobs[job.id] = job
        self._record_locks.setdefault(job.id, threading.Lock())
        self._touch_locked(job.id)

    def _touch_locked(self, job_id: str) -> None:
        if self._ttl_seconds is not None:
            self._expiry[job_id] = time.monotonic() + self._ttl_seconds

    def _purge_expired_locked(self) -> None:
        if self._ttl_seconds is None or not self._expiry:
            return
        now = time.monotonic()
        expired = [job_id for job_id, deadline in self._expiry.items() if deadline <= now]
        for job_id in expired:
            if self._record_locks[job_id].locked():
                continue
            self._jobs.pop(job_id, None)
            self._record_locks.pop(job_id, None)
            self._expiry.pop(job_id, None)
