"""Error taxonomy shared by the HTTP layer, the upload gate and the worker.

Every error carries the HTTP status it maps to so the Flask handlers in
`register_error_handlers` can render it without a lookup table.
"""
from flask import jsonify


class CoachError(Exception):
    status_code = 500

    def __init__(self, message, session_id=None):
        self.session_id = session_id
        super().__init__(message)

    def to_dict(self):
        return {"error": type(self).__name__, "message": str(self)}


class SessionNotFound(CoachError):
    status_code = 404

    def __init__(self, session_id):
        super().__init__(f"Session not found: {session_id}", session_id)


class AudioNotFound(CoachError):
    status_code = 404

    def __init__(self, session_id):
        super().__init__(f"Audio file not found for session: {session_id}", session_id)


class StateConflict(CoachError):
    """The session is not in a state that allows the requested operation."""

    status_code = 409

    def __init__(self, message, session_id=None, current_status=None):
        self.current_status = current_status
        super().__init__(message, session_id)

    def to_dict(self):
        out = super().to_dict()
        if self.current_status is not None:
            out["currentStatus"] = str(self.current_status)
        return out


class IllegalTransition(StateConflict):
    def __init__(self, src, dst, session_id=None):
        self.src = src
        self.dst = dst
        super().__init__(
            f"Illegal status transition {src} -> {dst}",
            session_id=session_id,
            current_status=src,
        )


class InvalidRequest(CoachError):
    status_code = 400


class InvalidUpload(InvalidRequest):
    pass


class RangeNotSatisfiable(CoachError):
    status_code = 416

    def __init__(self, file_size, header=None):
        self.file_size = file_size
        self.header = header
        super().__init__(f"Range not satisfiable: {header!r} for {file_size} bytes")


class AudioIOError(CoachError):
    """Reading or deleting a stored recording failed."""

    def __init__(self, message, path=None):
        self.path = path
        super().__init__(message)


class EngineError(CoachError):
    """A transcription or analysis backend reported a failure."""

    status_code = 502

    def __init__(self, message, engine=None):
        self.engine = engine
        super().__init__(message)


class EngineUnavailable(EngineError):
    status_code = 503


class UnsupportedInput(EngineError):
    status_code = 422


def register_error_handlers(app):
    @app.errorhandler(CoachError)
    def _handle_coach_error(err):
        if err.status_code >= 500:
            app.logger.error("%s: %s", type(err).__name__, err)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(RangeNotSatisfiable)
    def _handle_range(err):
        return "", 416, {
            "Content-Range": f"bytes */{err.file_size}",
            "Accept-Ranges": "bytes",
        }

    @app.errorhandler(413)
    def _handle_too_large(err):
        return jsonify({
            "error": "InvalidUpload",
            "message": f"File exceeds the {app.config.get('MAX_CONTENT_LENGTH')} byte limit",
        }), 413
