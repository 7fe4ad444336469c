from ..lifecycle import SessionStatus


def _failed_reason(job):
    exc_info = job.exc_info
    if not exc_info:
        return None
    # last line of the traceback is "ExcType: message"
    lines = [line for line in exc_info.strip().splitlines() if line.strip()]
    return lines[-1] if lines else None


def describe_job_status(session_id, session, job):
    """Combine a session row and its most recent queue job into one view.

    `session` may be None (unknown id) and `job` may be None (never enqueued,
    or already expired from the queue).
    """
    if session is None:
        return {"sessionId": session_id, "status": "NOT_FOUND", "progress": 0}

    status = str(session.status)
    if job is None:
        return {
            "sessionId": session_id,
            "status": status,
            "progress": 100 if session.status == SessionStatus.COMPLETED else 0,
        }

    meta = job.meta or {}
    job_state = job.get_status()
    return {
        "sessionId": session_id,
        "status": status,
        "jobId": job.id,
        "jobState": str(getattr(job_state, "value", job_state)) if job_state is not None else None,
        "progress": meta.get("progress") or 0,
        "failedReason": _failed_reason(job),
        "attemptsMade": int(meta.get("attempts") or 0),
        "timestamp": job.created_at.isoformat() if job.created_at else None,
    }
