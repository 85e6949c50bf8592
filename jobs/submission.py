"""Accepts generation requests and creates job records."""
from __future__ import annotations

import random
import secrets
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from jsonschema import Draft7Validator

from config import IMAGE_MOCK_DELAY_S
from observability.logger import current_trace_id, get_logger, log_transition
from observability.metrics import get_registry
from services.operations import OperationProvider, ProviderError

from .errors import SubmissionError, ValidationError
from .models import Job, JobMode, utcnow
from .store import JobStore

LOGGER = get_logger("genstudio.jobs.submission")
REGISTRY = get_registry()
SUBMITTED_COUNTER = REGISTRY.counter("jobs.submitted_total")

REQUEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["prompt"],
    "properties": {
        "prompt": {"type": "string", "minLength": 1, "pattern": r"\S"},
        "params": {"type": "object"},
    },
}
_VALIDATOR = Draft7Validator(REQUEST_SCHEMA)

JOB_ID_BYTES = 16
IMAGE_ID_BYTES = 8


def new_job_id() -> str:
    return secrets.token_hex(JOB_ID_BYTES)


def placeholder_image_url() -> str:
    return f"https://picsum.photos/id/{random.randrange(500)}/1024/1024"


def validate_request(payload: Any) -> Dict[str, Any]:
    """Return ``{"prompt", "params"}`` or raise ValidationError."""

    errors = sorted(_VALIDATOR.iter_errors(payload), key=lambda err: list(err.absolute_path))
    if errors:
        error = errors[0]
        field_name = ".".join(str(part) for part in error.absolute_path)
        if field_name == "prompt" or "'prompt' is a required property" in error.message:
            raise ValidationError("Prompt is required")
        if field_name:
            raise ValidationError(f"Invalid field '{field_name}': {error.message}")
        raise ValidationError(error.message)
    return {"prompt": payload["prompt"].strip(), "params": dict(payload.get("params") or {})}


class SubmissionService:
    """Creates simulated or delegated jobs depending on the configured provider.

    The mode is decided once, when the service is built.
    """

    def __init__(
        self,
        store: JobStore,
        provider: Optional[OperationProvider] = None,
        *,
        image_delay_s: float = IMAGE_MOCK_DELAY_S,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._provider = provider
        self._image_delay_s = image_delay_s
        self._sleep = sleep
        self._clock = clock

    @property
    def mode(self) -> JobMode:
        return JobMode.DELEGATED if self._provider is not None else JobMode.SIMULATED

    def submit(self, payload: Any) -> str:
        request = validate_request(payload)
        prompt, params = request["prompt"], request["params"]
        job_id = new_job_id()
        handle = None
        if self.mode is JobMode.DELEGATED:
            try:
                handle = self._provider.submit_video(prompt, params)
            except ProviderError as exc:
                LOGGER.warning("video_submission_failed", extra={"error": str(exc)})
                raise SubmissionError("Failed to submit video job to provider") from exc

        job = Job(
            id=job_id,
            mode=self.mode,
            prompt=prompt,
            params=params,
            created_at=self._clock(),
            external_handle=handle,
            trace_id=current_trace_id(),
        )
        self._store.create(job)
        SUBMITTED_COUNTER.inc()
        log_transition(LOGGER, job_id=job.id, mode=job.mode.value, status="processing", record=job.to_dict())
        return job.id

    def generate_images(self, payload: Any) -> List[Dict[str, str]]:
        request = validate_request(payload)
        prompt = request["prompt"]
        if self._provider is None:
            if self._image_delay_s:
                self._sleep(self._image_delay_s)
            url = placeholder_image_url()
        else:
            try:
                url = self._provider.generate_image(prompt)
            except ProviderError as exc:
                LOGGER.warning("image_generation_failed", extra={"error": str(exc)})
                raise SubmissionError("Failed to generate image via provider") from exc
        LOGGER.info("image_generated", extra={"mode": self.mode.value})
        return [{"id": secrets.token_hex(IMAGE_ID_BYTES), "url": url, "prompt": prompt}]


__all__ = ["REQUEST_SCHEMA", "SubmissionService", "new_job_id", "validate_request"]
