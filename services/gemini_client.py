"""Gemini REST client implementing the operation provider contract."""
from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from config import (
    API_KEY,
    FORCE_SIMULATED,
    GEMINI_API_BASE,
    IMAGE_MODEL,
    PROVIDER_TIMEOUT_S,
    VIDEO_MODEL,
)
from observability.logger import get_logger
from observability.metrics import get_registry

from .operations import OperationProvider, PollResult, ProviderError

LOGGER = get_logger("genstudio.provider.gemini")
REGISTRY = get_registry()
POLL_COUNTER = REGISTRY.counter("provider.polls_total")
ERROR_COUNTER = REGISTRY.counter("provider.errors_total")

_HTTP_CLIENT_LIMITS = httpx.Limits(
    max_connections=16,
    max_keepalive_connections=8,
    keepalive_expiry=120.0,
)


def _dig(payload: Any, *path: Any) -> Any:
    current = payload
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
    return current


def extract_video_uri(operation: Dict[str, Any]) -> Optional[str]:
    """Return the first generated video URI of a finished operation, if any."""

    candidates = (
        ("response", "generateVideoResponse", "generatedSamples", 0, "video", "uri"),
        ("response", "generatedVideos", 0, "video", "uri"),
    )
    for path in candidates:
        uri = _dig(operation, *path)
        if isinstance(uri, str) and uri.strip():
            return uri.strip()
    return None


def _operation_error(operation: Dict[str, Any]) -> Optional[str]:
    error = operation.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        message = str(error.get("message") or "").strip()
        code = error.get("code")
        if message and code is not None:
            return f"{message} (code {code})"
        return message or f"operation error (code {code})"
    return str(error)


class GeminiClient(OperationProvider):
    """Thin wrapper over the Veo and Imagen REST endpoints."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = GEMINI_API_BASE,
        video_model: str = VIDEO_MODEL,
        image_model: str = IMAGE_MODEL,
        timeout_s: float = PROVIDER_TIMEOUT_S,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._video_model = video_model
        self._image_model = image_model
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout_s, connect=min(20.0, timeout_s)),
            limits=_HTTP_CLIENT_LIMITS,
        )

    def close(self) -> None:
        self._http.close()

    def submit_video(self, prompt: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        parameters: Dict[str, Any] = {"sampleCount": 1}
        if params:
            parameters.update(params)
        body = {"instances": [{"prompt": prompt}], "parameters": parameters}
        operation = self._request("POST", f"models/{self._video_model}:predictLongRunning", json=body)
        if not isinstance(operation.get("name"), str) or not operation["name"]:
            ERROR_COUNTER.inc()
            raise ProviderError("video submission returned no operation name")
        LOGGER.info("video_operation_started", extra={"operation": operation["name"]})
        return operation

    def poll(self, handle: Any) -> PollResult:
        name = handle.get("name") if isinstance(handle, dict) else None
        if not isinstance(name, str) or not name:
            raise ProviderError("operation handle has no name")
        POLL_COUNTER.inc()
        operation = self._request("GET", name)
        operation.setdefault("name", name)
        if not operation.get("done"):
            return PollResult(done=False, handle=operation)

        uri = extract_video_uri(operation)
        if uri is None:
            LOGGER.error("operation_done_without_video", extra={"operation": name})
            return PollResult(done=True, handle=operation, error=_operation_error(operation))
        return PollResult(done=True, handle=operation, result_reference=self._with_key(uri))

    def generate_image(self, prompt: str) -> str:
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": 1, "outputMimeType": "image/jpeg"},
        }
        payload = self._request("POST", f"models/{self._image_model}:predict", json=body)
        prediction = _dig(payload, "predictions", 0)
        image_bytes = _dig(prediction, "bytesBase64Encoded")
        if not isinstance(image_bytes, str) or not image_bytes:
            ERROR_COUNTER.inc()
            raise ProviderError("image generation returned no image bytes")
        mime_type = _dig(prediction, "mimeType") or "image/jpeg"
        return f"data:{mime_type};base64,{image_bytes}"

    def _with_key(self, uri: str) -> str:
        # Download links are only served with the API key attached.
        separator = "&" if "?" in uri else "?"
        return f"{uri}{separator}{urlencode({'key': self._api_key})}"

    def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = self._http.request(
                method,
                url,
                json=json,
                headers={"x-goog-api-key": self._api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            ERROR_COUNTER.inc()
            LOGGER.warning(
                "provider_http_error",
                extra={"path": path, "status_code": exc.response.status_code},
            )
            raise ProviderError(f"HTTP {exc.response.status_code} from provider") from exc
        except httpx.HTTPError as exc:
            ERROR_COUNTER.inc()
            LOGGER.warning("provider_transport_error", extra={"path": path, "error": str(exc)})
            raise ProviderError(f"provider request failed: {exc}") from exc
        except ValueError as exc:
            ERROR_COUNTER.inc()
            raise ProviderError("provider returned invalid JSON") from exc
        if not isinstance(payload, dict):
            ERROR_COUNTER.inc()
            raise ProviderError("provider returned an unexpected payload")
        return payload


def build_default_provider() -> Optional[OperationProvider]:
    """Return the configured provider, or None to run in simulated mode."""

    if FORCE_SIMULATED:
        LOGGER.info("FORCE_SIMULATED is set; running in simulated mode")
        return None
    if not API_KEY:
        LOGGER.info("API_KEY not configured; running in simulated mode")
        return None
    try:
        client = GeminiClient(API_KEY)
    except Exception:  # noqa: BLE001
        LOGGER.exception("Failed to initialise Gemini client; running in simulated mode")
        return None
    LOGGER.info("Gemini integration enabled", extra={"video_model": VIDEO_MODEL, "image_model": IMAGE_MODEL})
    return client


__all__ = ["GeminiClient", "build_default_provider", "extract_video_uri"]
