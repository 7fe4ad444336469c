from flask import Blueprint, current_app, jsonify, request

from ..errors import InvalidRequest
from ..extensions import audio_queue, db
from ..services.admission import UploadGate
from ..services.audio_stream import stream_audio
from ..services.job_status import describe_job_status
from ..services.sessions import SessionStore
from ..services.storage import discard, save_upload

bp = Blueprint("sessions", __name__)


def _store():
    return SessionStore(db.session)


def _languages():
    raw = current_app.config.get("SESSION_LANGUAGES", "ja,ko")
    return [x.strip() for x in raw.split(",") if x.strip()]


@bp.post("/sessions")
def create_session():
    data = request.get_json(silent=True) or {}
    language = data.get("language")
    allowed = _languages()
    if language not in allowed:
        raise InvalidRequest(f"language must be one of: {', '.join(allowed)}")
    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise InvalidRequest("description must be a string")
    s = _store().create(
        language=language,
        description=description,
        delete_after_analysis=bool(data.get("deleteAfterAnalysis", False)),
    )
    return jsonify(s.to_dict()), 201


@bp.get("/sessions")
def list_sessions():
    return jsonify([s.to_dict() for s in _store().list()])


@bp.get("/sessions/<session_id>")
def get_session(session_id):
    return jsonify(_store().require(session_id).to_dict(with_results=True))


@bp.delete("/sessions/<session_id>")
def delete_session(session_id):
    path = _store().delete(session_id)
    discard(path)
    return jsonify({"message": "Session deleted", "sessionId": session_id})


@bp.post("/sessions/<session_id>/upload")
def upload_audio(session_id):
    store = _store()
    # fail before writing anything to disk when the id is unknown
    store.require(session_id)
    f = request.files.get("audio")
    path = save_upload(f, current_app.config["UPLOAD_DIR"], session_id)
    gate = UploadGate(store, audio_queue, discard, current_app.logger)
    job_id = gate.admit(session_id, path, f.filename)
    return jsonify({
        "message": "Audio upload accepted, processing queued",
        "sessionId": session_id,
        "jobId": job_id,
        "status": "QUEUED",
    }), 202


@bp.get("/sessions/<session_id>/job-status")
def job_status(session_id):
    session = _store().get(session_id)
    job = audio_queue.fetch(session.last_job_id) if session is not None else None
    return jsonify(describe_job_status(session_id, session, job))


@bp.get("/sessions/<session_id>/audio")
def get_audio(session_id):
    session = _store().require(session_id)
    return stream_audio(session, request.headers.get("Range"))


@bp.get("/engines")
def engines():
    e = current_app.extensions["engines"]
    return jsonify({
        "transcription": {
            "name": e.transcriber.name,
            "languages": sorted(e.transcriber.supported_languages()),
        },
        "analysis": {"name": e.analyzer.name},
    })
