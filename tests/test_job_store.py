from __future__ import annotations

import threading

import pytest

from jobs.errors import DuplicateJobError, JobStateError, NotFoundError
from jobs.models import Job, JobMode
from jobs.store import JobStore


def _simulated(job_id: str = "job-1") -> Job:
    return Job(id=job_id, mode=JobMode.SIMULATED, prompt="x")


def test_create_and_get_roundtrip(job_store):
    job = job_store.create(_simulated())
    assert job_store.get("job-1") is job
    assert "job-1" in job_store
    assert len(job_store) == 1


def test_get_unknown_returns_none_and_require_raises(job_store):
    assert job_store.get("missing") is None
    with pytest.raises(NotFoundError) as excinfo:
        job_store.require("missing")
    assert excinfo.value.job_id == "missing"


def test_create_rejects_id_collision(job_store):
    job_store.create(_simulated())
    with pytest.raises(DuplicateJobError):
        job_store.create(_simulated())
    assert len(job_store) == 1


def test_put_overwrites_existing_record(job_store):
    job_store.create(_simulated())
    replacement = _simulated()
    job_store.put(replacement)
    assert job_store.get("job-1") is replacement


def test_lock_is_per_record_and_unknown_id_raises(job_store):
    job_store.create(_simulated("a"))
    job_store.create(_simulated("b"))
    assert job_store.lock("a") is job_store.lock("a")
    assert job_store.lock("a") is not job_store.lock("b")
    with pytest.raises(NotFoundError):
        job_store.lock("missing")


def test_ttl_evicts_untouched_records(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("jobs.store.time.monotonic", lambda: now[0])
    store = JobStore(ttl_seconds=10)
    store.create(_simulated())
    now[0] += 5
    assert store.get("job-1") is not None
    now[0] += 9
    assert store.get("job-1") is not None
    now[0] += 11
    assert store.get("job-1") is None
    assert len(store) == 0


def test_default_store_keeps_records(monkeypatch):
    now = [0.0]
    monkeypatch.setattr("jobs.store.time.monotonic", lambda: now[0])
    store = JobStore()
    store.create(_simulated())
    now[0] += 10 ** 6
    assert store.get("job-1") is not None


def test_concurrent_creates_for_distinct_ids(job_store):
    def _worker(prefix: str) -> None:
        for index in range(200):
            job_store.create(_simulated(f"{prefix}-{index}"))
            assert job_store.get(f"{prefix}-{index}") is not None

    threads = [threading.Thread(target=_worker, args=(f"t{n}",)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(job_store) == 8 * 200


def test_mode_invariants_enforced_on_record():
    with pytest.raises(JobStateError):
        Job(id="s", mode=JobMode.SIMULATED, external_handle={"name": "op"})
    with pytest.raises(JobStateError):
        Job(id="d", mode=JobMode.DELEGATED)


def test_terminal_result_written_once():
    job = Job(id="d", mode=JobMode.DELEGATED, external_handle={"name": "op"})
    assert job.complete("r1") is True
    assert job.fail("late failure") is False
    assert job.complete("r2") is False
    assert job.terminal_result.result_reference == "r1"
    with pytest.raises(JobStateError):
        job.refresh_handle({"name": "op", "done": True})
    assert job.to_dict()["terminal_result"]["outcome"] == "success"


def test_taking_the_lock_refreshes_ttl(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("jobs.store.time.monotonic", lambda: now[0])
    store = JobStore(ttl_seconds=10)
    store.create(_simulated())
    now[0] += 8
    store.lock("job-1")
    now[0] += 8
    assert "job-1" in store


def test_record_is_not_evicted_while_its_lock_is_held(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("jobs.store.time.monotonic", lambda: now[0])
    store = JobStore(ttl_seconds=10)
    store.create(_simulated())
    record_lock = store.lock("job-1")
    with record_lock:
        now[0] += 60
        assert len(store) == 1
        assert store.lock("job-1") is record_lock
    now[0] += 11
    assert store.get("job-1") is None


def test_replace_refuses_evicted_records(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("jobs.store.time.monotonic", lambda: now[0])
    store = JobStore(ttl_seconds=10)
    job = store.create(_simulated())
    now[0] += 11
    with pytest.raises(NotFoundError):
        store.replace(job)
    assert len(store) == 0
    with pytest.raises(NotFoundError):
        store.lock("job-1")


def test_replace_overwrites_live_record(job_store):
    job_store.create(_simulated())
    replacement = _simulated()
    assert job_store.replace(replacement) is replacement
    assert job_store.get("job-1") is replacement
    with pytest.raises(NotFoundError):
        job_store.replace(_simulated("never-created"))
