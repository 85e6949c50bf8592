"""Client-visible view of a job computed from its stored fields."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict

from config import DELEGATED_PROGRESS, SIMULATED_DURATION_S

from .models import Job, JobMode, JobStatus


def simulated_progress(elapsed_s: float, duration_s: float) -> int:
    if duration_s <= 0:
        return 100
    return min(100, int(math.floor(100 * max(0.0, elapsed_s) / duration_s)))


def project(
    job: Job,
    now: datetime,
    *,
    duration_s: float = SIMULATED_DURATION_S,
    delegated_progress: int = DELEGATED_PROGRESS,
) -> Dict[str, Any]:
    """Return ``{status, progress, result|error}`` for ``job`` at ``now``.

    Never mutates ``job``. Failed jobs carry no ``progress`` key.
    """

    terminal = job.terminal_result
    if terminal is not None:
        if terminal.succeeded:
            return {
                "status": JobStatus.COMPLETED.value,
                "progress": 100,
                "result": terminal.result_reference,
            }
        return {"status": JobStatus.FAILED.value, "error": terminal.error}

    if job.mode is JobMode.SIMULATED:
        progress = simulated_progress(job.elapsed_seconds(now), duration_s)
    else:
        progress = delegated_progress
    return {"status": JobStatus.PROCESSING.value, "progress": progress}


__all__ = ["project", "simulated_progress"]
