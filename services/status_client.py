"""HTTP client for the generation API, used by pollers and the CLI."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from config import STATUS_CLIENT_BASE_URL, STATUS_CLIENT_TIMEOUT_S
from jobs.errors import NotFoundError, TransientCheckError, ValidationError


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {response.status_code}"


def _is_retryable(response: httpx.Response) -> bool:
    try:
        payload = response.json()
    except ValueError:
        return False
    return isinstance(payload, dict) and bool(payload.get("retryable"))


class StatusClient:
    """Talks to ``/api/generate-*`` and ``/api/job-status`` over httpx."""

    def __init__(
        self,
        base_url: str = STATUS_CLIENT_BASE_URL,
        *,
        timeout_s: float = STATUS_CLIENT_TIMEOUT_S,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(timeout_s))

    def __enter__(self) -> "StatusClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def submit_video(self, prompt: str, params: Optional[Dict[str, Any]] = None) -> str:
        body: Dict[str, Any] = {"prompt": prompt}
        if params:
            body["params"] = params
        payload = self._send("POST", "/generate-video", json=body)
        job_id = payload.get("jobId")
        if not isinstance(job_id, str) or not job_id:
            raise ValueError("submission response carried no jobId")
        return job_id

    def generate_images(self, prompt: str) -> List[Dict[str, str]]:
        payload = self._send("POST", "/generate-image", json={"prompt": prompt})
        return list(payload.get("images") or [])

    def check_status(self, job_id: str) -> Dict[str, Any]:
        return self._send("GET", f"/job-status/{job_id}", job_id=job_id)

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        job_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        response = self._http.request(method, f"{self._base_url}{path}", json=json)
        if response.status_code == 404 and job_id is not None:
            raise NotFoundError(job_id)
        if response.status_code == 400:
            raise ValidationError(_error_message(response))
        if response.status_code == 503 and job_id is not None and _is_retryable(response):
            raise TransientCheckError(job_id, _error_message(response))
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("unexpected response payload")
        return payload


__all__ = ["StatusClient"]
