from datetime import datetime
from types import SimpleNamespace

from interview_coach.services.job_status import describe_job_status


def _session(status, last_job_id=None):
    return SimpleNamespace(status=status, last_job_id=last_job_id)


def test_unknown_session():
    assert describe_job_status("x", None, None) == {"sessionId": "x", "status": "NOT_FOUND", "progress": 0}


def test_no_job_completed_is_full_progress():
    out = describe_job_status("x", _session("COMPLETED"), None)
    assert out == {"sessionId": "x", "status": "COMPLETED", "progress": 100}


def test_no_job_otherwise_zero():
    assert describe_job_status("x", _session("CREATED"), None)["progress"] == 0
    assert describe_job_status("x", _session("FAILED"), None)["progress"] == 0


def test_with_job():
    job = SimpleNamespace(
        id="job-9",
        meta={"progress": 60, "attempts": 2},
        exc_info="Traceback (most recent call last):\n  ...\nEngineUnavailable: stt down\n",
        created_at=datetime(2026, 1, 2, 3, 4, 5),
        get_status=lambda: "failed",
    )
    out = describe_job_status("x", _session("FAILED", "job-9"), job)
    assert out["jobId"] == "job-9"
    assert out["jobState"] == "failed"
    assert out["progress"] == 60
    assert out["attemptsMade"] == 2
    assert out["failedReason"] == "EngineUnavailable: stt down"
    assert out["timestamp"] == "2026-01-02T03:04:05"


def test_with_job_without_progress():
    job = SimpleNamespace(id="j", meta={}, exc_info=None, created_at=None, get_status=lambda: "queued")
    out = describe_job_status("x", _session("UPLOADING", "j"), job)
    assert out["progress"] == 0
    assert out["failedReason"] is None
    assert out["attemptsMade"] == 0
