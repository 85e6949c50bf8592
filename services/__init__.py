"""External collaborators: generation provider and HTTP status client."""

from .operations import OperationProvider, PollResult, ProviderError  # noqa: F401

__all__ = [
    "OperationProvider",
    "PollResult",
    "ProviderError",
]
