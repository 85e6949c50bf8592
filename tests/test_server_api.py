from __future__ import annotations

import pytest

from jobs.driver import LifecycleDriver
from jobs.submission import SubmissionService
from server import create_app
from services.operations import PollResult, ProviderError

SIMULATED_URL = "https://example.test/sample.mp4"


def _make_client(job_store, clock, provider=None):
    driver = LifecycleDriver(job_store, provider, duration_s=15, simulated_result=SIMULATED_URL, clock=clock)
    service = SubmissionService(job_store, provider, image_delay_s=0, clock=clock)
    app = create_app(store=job_store, provider=provider, driver=driver, service=service)
    app.config.update(TESTING=True)
    return app.test_client()


@pytest.fixture()
def client(job_store, clock):
    return _make_client(job_store, clock)


@pytest.fixture()
def delegated_client(job_store, clock, provider):
    return _make_client(job_store, clock, provider)


def test_simulated_video_lifecycle(client, clock):
    response = client.post("/api/generate-video", json={"prompt": "x"})
    assert response.status_code == 202
    job_id = response.get_json()["jobId"]
    assert response.get_json()["success"] is True

    status = client.get(f"/api/job-status/{job_id}").get_json()
    assert status == {"success": True, "jobId": job_id, "status": "processing", "progress": 0}

    clock.advance(7.5)
    assert client.get(f"/api/job-status/{job_id}").get_json()["progress"] == 50

    clock.advance(7.5)
    status = client.get(f"/api/job-status/{job_id}").get_json()
    assert status == {
        "success": True,
        "jobId": job_id,
        "status": "completed",
        "progress": 100,
        "video": {"url": SIMULATED_URL},
    }


def test_delegated_video_lifecycle(delegated_client, provider):
    provider.polls = [
        PollResult(done=False, handle={"name": "operations/op-1"}),
        PollResult(done=True, handle={"name": "operations/op-1", "done": True}, result_reference="r1"),
    ]
    job_id = delegated_client.post("/api/generate-video", json={"prompt": "a fox"}).get_json()["jobId"]

    first = delegated_client.get(f"/api/job-status/{job_id}").get_json()
    assert first["status"] == "processing"
    assert first["progress"] == 50

    for _ in range(2):
        done = delegated_client.get(f"/api/job-status/{job_id}").get_json()
        assert done["status"] == "completed"
        assert done["video"] == {"url": "r1"}
    assert provider.poll_calls == 2


def test_delegated_missing_result_reports_failed(delegated_client, provider):
    provider.polls = [PollResult(done=True, handle={"name": "operations/op-1", "done": True})]
    job_id = delegated_client.post("/api/generate-video", json={"prompt": "x"}).get_json()["jobId"]

    status = delegated_client.get(f"/api/job-status/{job_id}").get_json()
    assert status["status"] == "failed"
    assert status["error"] == "missing result"
    assert "progress" not in status
    assert "video" not in status


def test_transient_provider_failure_returns_503(delegated_client, provider, job_store):
    provider.polls = [ProviderError("boom")]
    job_id = delegated_client.post("/api/generate-video", json={"prompt": "x"}).get_json()["jobId"]

    response = delegated_client.get(f"/api/job-status/{job_id}")
    assert response.status_code == 503
    payload = response.get_json()
    assert payload["success"] is False
    assert payload["retryable"] is True
    assert job_store.get(job_id).terminal_result is None


def test_unknown_job_returns_404(client):
    response = client.get("/api/job-status/does-not-exist")
    assert response.status_code == 404
    payload = response.get_json()
    assert payload["success"] is False
    assert payload["error"]["message"] == "Job not found"
    assert payload["error"]["code"] == 404


@pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "  "}])
def test_empty_prompt_rejected_without_creating_job(client, job_store, body):
    response = client.post("/api/generate-video", json=body)
    assert response.status_code == 400
    assert response.get_json()["error"]["message"] == "Prompt is required"
    assert len(job_store) == 0


def test_non_json_body_rejected(client, job_store):
    response = client.post("/api/generate-video", data="not json", content_type="text/plain")
    assert response.status_code == 400
    assert len(job_store) == 0


def test_provider_submission_failure_returns_502(delegated_client, provider, job_store):
    provider.submit_error = ProviderError("HTTP 500 from provider")
    response = delegated_client.post("/api/generate-video", json={"prompt": "x"})
    assert response.status_code == 502
    assert len(job_store) == 0


def test_generate_image_simulated(client):
    response = client.post("/api/generate-image", json={"prompt": "sunset"})
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["success"] is True
    assert payload["images"][0]["prompt"] == "sunset"
    assert payload["images"][0]["url"].startswith("https://picsum.photos/id/")


def test_generate_image_delegated(delegated_client, provider):
    payload = delegated_client.post("/api/generate-image", json={"prompt": "sunset"}).get_json()
    assert payload["images"][0]["url"] == provider.image_url


def test_generate_image_requires_prompt(client):
    response = client.post("/api/generate-image", json={"prompt": ""})
    assert response.status_code == 400


def test_trace_id_is_echoed(client):
    response = client.get("/api/health", headers={"X-Trace-Id": "trace-123"})
    assert response.headers["X-Trace-Id"] == "trace-123"
    missing = client.get("/api/job-status/nope", headers={"X-Trace-Id": "trace-404"})
    assert missing.get_json()["error"]["trace_id"] == "trace-404"


def test_health_reports_mode_and_jobs(client, delegated_client):
    client.post("/api/generate-video", json={"prompt": "x"})
    payload = client.get("/api/health").get_json()
    assert payload["ok"] is True
    assert payload["mode"] == "simulated"
    assert payload["jobs"] == 1
    assert "jobs.submitted_total" in payload["metrics"]
    assert delegated_client.get("/api/health").get_json()["mode"] == "delegated"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_default_app_runs_simulated_without_api_key(monkeypatch):
    monkeypatch.setattr("services.gemini_client.API_KEY", "")
    app = create_app()
    assert app.extensions["genstudio"]["service"].mode.value == "simulated"


def test_cors_enabled_for_api(client):
    response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    assert response.headers["Access-Control-Allow-Origin"] == "*"
