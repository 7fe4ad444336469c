import logging

from ..errors import SessionNotFound, StateConflict
from ..jobs.process_audio import AudioJob
from ..lifecycle import UPLOADABLE, SessionStatus

logger = logging.getLogger(__name__)


class UploadGate:
    """Admit a stored upload into processing.

    The file is already on disk when `admit` is called. If the session cannot
    accept it, the file is discarded before the error propagates, so rejected
    uploads leave nothing behind.
    """

    def __init__(self, store, queue, discard, logger=logger):
        self.store = store
        self.queue = queue
        self.discard = discard
        self.logger = logger

    def admit(self, session_id, audio_path, original_file_name=None):
        session = self.store.get(session_id)
        if session is None:
            self.discard(audio_path)
            raise SessionNotFound(session_id)

        status = session.status
        if status not in UPLOADABLE:
            self.discard(audio_path)
            raise StateConflict(
                f"Session {session_id} cannot accept an upload while {status}",
                session_id=session_id,
                current_status=status,
            )

        try:
            self.store.transition(
                session_id, status, SessionStatus.UPLOADING,
                original_audio_path=audio_path,
                original_file_name=original_file_name,
                error_message=None,
            )
        except (StateConflict, SessionNotFound):
            self.discard(audio_path)
            raise

        job = AudioJob(session_id, audio_path, original_file_name)
        try:
            job_id = self.queue.enqueue_audio(job)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            self.logger.exception("Failed to enqueue audio job for session %s", session_id)
            self.store.mark_failed(session_id, f"enqueue failed: {message}")
            raise

        self.store.record_job(session_id, job_id)
        self.logger.info("Queued job %s for session %s", job_id, session_id)
        return job_id
