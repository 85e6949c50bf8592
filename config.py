# -*- coding: utf-8 -*-

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = str(os.getenv(name, "")).strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = str(os.getenv(name, "")).strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = str(os.getenv(name, "")).strip().lower()
    if not raw:
        return default
    return raw not in {"0", "false", "off", "no"}


# Gemini credentials; an empty key keeps the server in simulated mode.
API_KEY = str(os.getenv("API_KEY", "") or os.getenv("GEMINI_API_KEY", "")).strip()
GEMINI_API_BASE = (
    str(os.getenv("GEMINI_API_BASE", "")).strip() or "https://generativelanguage.googleapis.com/v1beta"
)
VIDEO_MODEL = str(os.getenv("VIDEO_MODEL", "")).strip() or "veo-2.0-generate-001"
IMAGE_MODEL = str(os.getenv("IMAGE_MODEL", "")).strip() or "imagen-4.0-generate-001"
PROVIDER_TIMEOUT_S = max(1.0, _env_float("PROVIDER_TIMEOUT_S", 60.0))
FORCE_SIMULATED = _env_bool("FORCE_SIMULATED", False)

# Simulated jobs
SIMULATED_DURATION_S = max(1.0, _env_float("SIMULATED_DURATION_S", 15.0))
SIMULATED_VIDEO_URL = (
    str(os.getenv("SIMULATED_VIDEO_URL", "")).strip()
    or "https://storage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4"
)
IMAGE_MOCK_DELAY_S = max(0.0, _env_float("IMAGE_MOCK_DELAY_S", 2.0))

# The provider exposes no fine-grained progress, so delegated jobs report a constant.
DELEGATED_PROGRESS = min(99, max(0, _env_int("DELEGATED_PROGRESS", 50)))

POLL_INTERVAL_S = max(0.1, _env_float("POLL_INTERVAL_S", 3.0))
JOB_STORE_TTL_S = max(0, _env_int("JOB_STORE_TTL_S", 0))

SERVER_PORT = _env_int("SERVER_PORT", 3001)
STATUS_CLIENT_BASE_URL = (
    str(os.getenv("STATUS_CLIENT_BASE_URL", "")).strip() or f"http://localhost:{SERVER_PORT}/api"
)
STATUS_CLIENT_TIMEOUT_S = max(1.0, _env_float("STATUS_CLIENT_TIMEOUT_S", 30.0))
