"""Flask application exposing image and video generation over HTTP."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import JOB_STORE_TTL_S
from jobs import (
    JobStore,
    LifecycleDriver,
    NotFoundError,
    SubmissionError,
    SubmissionService,
    TransientCheckError,
    ValidationError,
)
from observability.logger import bind_trace_id, clear_trace_id, get_logger
from observability.metrics import get_registry
from services.gemini_client import build_default_provider
from services.operations import OperationProvider

LOGGER = get_logger("genstudio.api")

_DEFAULT_PROVIDER: Any = object()


class ApiError(Exception):
    """Exception translated into an HTTP error response."""

    def __init__(self, message: str, status_code: int = 400, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.retryable = retryable


def create_app(
    *,
    store: Optional[JobStore] = None,
    provider: Optional[OperationProvider] = _DEFAULT_PROVIDER,
    driver: Optional[LifecycleDriver] = None,
    service: Optional[SubmissionService] = None,
) -> Flask:
    """Build the app around one job store.

    ``provider`` defaults to the configured Gemini client; pass ``None`` to
    force simulated mode.
    """

    if provider is _DEFAULT_PROVIDER:
        provider = build_default_provider()
    store = store if store is not None else JobStore(ttl_seconds=JOB_STORE_TTL_S or None)
    driver = driver or LifecycleDriver(store, provider)
    service = service or SubmissionService(store, provider)

    app = Flask(__name__)
    if hasattr(app, "json"):
        app.json.ensure_ascii = False
    CORS(app, resources={r"/api/*": {"origins": "*"}})
    app.extensions["genstudio"] = {"store": store, "driver": driver, "service": service}

    @app.before_request
    def _bind_request_trace() -> None:
        trace_id = request.headers.get("X-Trace-Id") or uuid.uuid4().hex
        g.trace_id = trace_id
        bind_trace_id(trace_id)

    @app.after_request
    def _append_trace(response):  # type: ignore[override]
        trace_id = getattr(g, "trace_id", None)
        if trace_id:
            response.headers.setdefault("X-Trace-Id", trace_id)
        clear_trace_id()
        return response

    @app.teardown_request
    def _teardown_trace(_exc):  # type: ignore[override]
        clear_trace_id()

    @app.errorhandler(ApiError)
    def _handle_api_error(exc: ApiError):  # type: ignore[override]
        LOGGER.warning("API error", extra={"error_message": exc.message, "code": exc.status_code})
        payload: Dict[str, Any] = {
            "success": False,
            "error": {
                "message": exc.message,
                "code": exc.status_code,
                "trace_id": getattr(g, "trace_id", None),
            },
        }
        if exc.retryable:
            payload["retryable"] = True
        return jsonify(payload), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):  # type: ignore[override]
        return _handle_api_error(ApiError(exc.description or exc.name, status_code=exc.code or 500))

    @app.errorhandler(Exception)
    def _handle_generic_error(exc: Exception):  # type: ignore[override]
        LOGGER.exception("Unhandled error")
        return (
            jsonify(
                {
                    "success": False,
                    "error": {
                        "message": "Internal server error",
                        "trace_id": getattr(g, "trace_id", None),
                    },
                }
            ),
            500,
        )

    @app.post("/api/generate-image")
    def generate_image():
        payload = _require_json(request)
        LOGGER.info("image_request", extra={"mode": service.mode.value})
        try:
            images = service.generate_images(payload)
        except ValidationError as exc:
            raise ApiError(exc.message) from exc
        except SubmissionError as exc:
            raise ApiError(exc.message, status_code=502) from exc
        return jsonify({"success": True, "images": images})

    @app.post("/api/generate-video")
    def generate_video():
        payload = _require_json(request)
        LOGGER.info("video_request", extra={"mode": service.mode.value})
        try:
            job_id = service.submit(payload)
        except ValidationError as exc:
            raise ApiError(exc.message) from exc
        except SubmissionError as exc:
            raise ApiError(exc.message, status_code=502) from exc
        return jsonify({"success": True, "jobId": job_id}), 202

    @app.get("/api/job-status/<job_id>")
    def job_status(job_id: str):
        try:
            view = driver.check_status(job_id)
        except NotFoundError as exc:
            raise ApiError("Job not found", status_code=404) from exc
        except TransientCheckError as exc:
            raise ApiError(exc.message, status_code=503, retryable=True) from exc
        return jsonify(_format_status(job_id, view))

    @app.get("/api/health")
    def health():
        return jsonify(
            {
                "ok": True,
                "mode": service.mode.value,
                "jobs": len(store),
                "simulated_duration_s": driver.duration_s,
                "metrics": get_registry().snapshot(),
            }
        )

    return app


def _format_status(job_id: str, view: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": True, "jobId": job_id, "status": view["status"]}
    if "progress" in view:
        payload["progress"] = view["progress"]
    if view.get("result"):
        payload["video"] = {"url": view["result"]}
    if view.get("error"):
        payload["error"] = view["error"]
    return payload


def _require_json(req) -> Dict[str, Any]:
    data = req.get_json(force=True, silent=True)
    if data is None:
        raise ApiError("Invalid JSON body")
    if not isinstance(data, dict):
        raise ApiError("Expected a JSON object")
    return data


__all__ = ["ApiError", "create_app"]
