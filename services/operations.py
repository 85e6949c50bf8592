"""Contract for the external long-running-operation provider."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


class ProviderError(RuntimeError):
    """Raised when the provider call fails or returns an unusable body."""


@dataclass
class PollResult:
    """One observation of an in-flight operation.

    ``handle`` is the refreshed operation state that replaces the stored one.
    """

    done: bool
    handle: Any
    result_reference: Optional[str] = None
    error: Optional[str] = None


class OperationProvider(ABC):
    """Delegated backend for video jobs and synchronous image generation."""

    name = "provider"

    @abstractmethod
    def submit_video(self, prompt: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Start a video operation and return its handle."""

    @abstractmethod
    def poll(self, handle: Any) -> PollResult:
        """Query the operation referenced by ``handle`` once."""

    @abstractmethod
    def generate_image(self, prompt: str) -> str:
        """Generate one image and return a URL (``data:`` URLs allowed)."""


__all__ = ["OperationProvider", "PollResult", "ProviderError"]
