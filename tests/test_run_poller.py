from __future__ import annotations

import httpx

import run_poller
from jobs.driver import LifecycleDriver
from jobs.submission import SubmissionService
from server import create_app
from services.operations import PollResult
from services.status_client import StatusClient


def _patch_client(monkeypatch, job_store, provider):
    app = create_app(
        store=job_store,
        provider=provider,
        driver=LifecycleDriver(job_store, provider),
        service=SubmissionService(job_store, provider),
    )

    def _factory(base_url, **_kwargs):
        http_client = httpx.Client(transport=httpx.WSGITransport(app=app))
        return StatusClient(base_url, http_client=http_client)

    monkeypatch.setattr(run_poller, "StatusClient", _factory)


def test_cli_exits_zero_on_completion(monkeypatch, capsys, job_store, provider):
    provider.polls = [
        PollResult(done=False, handle={"name": "operations/op-1"}),
        PollResult(done=True, handle={"name": "operations/op-1", "done": True}, result_reference="r1"),
    ]
    _patch_client(monkeypatch, job_store, provider)

    exit_code = run_poller.main(["a fox", "--base-url", "http://testserver/api", "--interval", "0.01", "--timeout", "5"])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Submitted job" in output
    assert '"status": "completed"' in output
    assert '"video": "r1"' in output


def test_cli_exits_nonzero_on_failure(monkeypatch, job_store, provider):
    provider.polls = [PollResult(done=True, handle={"name": "operations/op-1", "done": True})]
    _patch_client(monkeypatch, job_store, provider)

    exit_code = run_poller.main(["a fox", "--base-url", "http://testserver/api", "--interval", "0.01", "--timeout", "5"])

    assert exit_code == 1
