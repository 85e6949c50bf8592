from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from jobs.store import JobStore
from services.operations import OperationProvider, PollResult


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeProvider(OperationProvider):
    """Scripted provider: ``polls`` is consumed in order, the last entry repeats."""

    name = "fake"

    def __init__(self) -> None:
        self.polls: List[Any] = []
        self.poll_calls = 0
        self.polled_handles: List[Any] = []
        self.submitted: List[tuple] = []
        self.submit_error: Optional[Exception] = None
        self.image_url = "data:image/jpeg;base64,AAAA"
        self.image_error: Optional[Exception] = None

    def submit_video(self, prompt: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append((prompt, params))
        return {"name": f"operations/op-{len(self.submitted)}", "done": False}

    def poll(self, handle: Any) -> PollResult:
        self.poll_calls += 1
        self.polled_handles.append(handle)
        if not self.polls:
            return PollResult(done=False, handle=handle)
        outcome = self.polls[min(self.poll_calls, len(self.polls)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def generate_image(self, prompt: str) -> str:
        if self.image_error is not None:
            raise self.image_error
        return self.image_url


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def job_store() -> JobStore:
    return JobStore()
