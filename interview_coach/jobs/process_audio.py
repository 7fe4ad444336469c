"""Audio processing job: transcribe, analyze, persist.

`process_audio` is the function RQ executes. It builds an `AudioPipeline`
from the app's configured engines and runs one job through it. The pipeline
itself has no Flask or RQ dependencies; everything it touches is passed in.
"""
import math
from dataclasses import dataclass

from flask import current_app, has_app_context
from rq import get_current_job

from ..engines import TranscriptionOptions
from ..errors import StateConflict
from ..extensions import db
from ..lifecycle import SessionStatus
from ..services.sessions import SessionStore
from ..services.storage import delete_audio, read_audio


@dataclass(frozen=True)
class AudioJob:
    session_id: str
    audio_file_path: str
    original_file_name: str | None = None


class JobSuperseded(Exception):
    """Another upload or another run owns the session; this job has nothing to do."""


def round_half_up(seconds):
    return int(math.floor(seconds + 0.5))


class AudioPipeline:
    def __init__(self, store, transcriber, analyzer, read_audio, delete_audio, logger):
        self.store = store
        self.transcriber = transcriber
        self.analyzer = analyzer
        self.read_audio = read_audio
        self.delete_audio = delete_audio
        self.logger = logger

    def run(self, job, report_progress=None):
        """Process one job; returns the job result dict.

        Progress goes 10, 50, 60, 90, 100. Any failure marks the session
        FAILED with the error text and is re-raised so the queue can retry.
        """
        report = report_progress or (lambda progress: None)
        sid = job.session_id
        self.logger.info("Processing audio for session %s: %s", sid, job.audio_file_path)
        try:
            session = self.store.require(sid)
            language = session.language
            delete_after = bool(session.delete_after_analysis)
            try:
                self._claim(session, job)
            except JobSuperseded as e:
                self.logger.warning("Skipping job for session %s: %s", sid, e)
                return {"sessionId": sid, "status": "SKIPPED", "reason": str(e)}
            report(10)

            audio = self.read_audio(job.audio_file_path)
            transcript = self.transcriber.transcribe(
                audio,
                TranscriptionOptions(
                    language=language,
                    filename=job.original_file_name,
                    speaker_split=True,
                    word_timestamps=True,
                ),
            )
            report(50)
            self.logger.info(
                "Session %s transcribed by %s: %d segments, %.1fs",
                sid, self.transcriber.name, len(transcript.segments), transcript.duration,
            )

            self.store.save_transcript(sid, transcript)
            self.store.transition(
                sid, SessionStatus.TRANSCRIBING, SessionStatus.ANALYZING,
                audio_duration=round_half_up(transcript.duration),
            )
            report(60)

            analysis = self.analyzer.analyze(transcript)
            report(90)

            self.store.save_analysis(sid, analysis, self.analyzer.name)
            self.store.transition(sid, SessionStatus.ANALYZING, SessionStatus.COMPLETED)
            report(100)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            self.logger.exception("Audio processing failed for session %s: %s", sid, message)
            try:
                self.store.mark_failed(sid, message)
            except Exception:
                # keep the original error for the queue
                self.logger.exception("Could not record failure for session %s", sid)
            raise

        self.logger.info("Session %s completed, score %.1f", sid, analysis.overall_score)
        return {
            "sessionId": sid,
            "status": "COMPLETED",
            "sttDuration": transcript.duration,
            "analysisScore": analysis.overall_score,
            "cleanup": self._cleanup(sid, job.audio_file_path) if delete_after else None,
        }

    def _claim(self, session, job):
        """Move the session into TRANSCRIBING for this job, or raise JobSuperseded.

        A FAILED session that still references this job's file is a retried
        delivery; it goes back through UPLOADING first.
        """
        sid = session.id
        if session.original_audio_path != job.audio_file_path:
            raise JobSuperseded("session references a newer upload")
        status = session.status
        try:
            if status == SessionStatus.FAILED:
                self.store.transition(sid, SessionStatus.FAILED, SessionStatus.UPLOADING)
                status = SessionStatus.UPLOADING
            if status != SessionStatus.UPLOADING:
                raise JobSuperseded(f"session is already {status}")
            self.store.transition(
                sid, SessionStatus.UPLOADING, SessionStatus.TRANSCRIBING,
                clear_results=True, error_message=None,
            )
        except StateConflict as e:
            raise JobSuperseded(str(e)) from e

    def _cleanup(self, session_id, path):
        try:
            self.delete_audio(path)
        except Exception as e:
            # the analysis is already stored; a stray file is not a failed job
            self.logger.exception("Failed to delete audio for session %s", session_id)
            return {"deleted": False, "error": str(e) or e.__class__.__name__}
        self.logger.info("Deleted audio for session %s", session_id)
        return {"deleted": True}


class RQProgressReporter:
    """Writes progress into the current RQ job's meta; no-op outside a worker."""

    def __init__(self, job=None):
        self.job = job if job is not None else get_current_job()

    def start_attempt(self):
        if self.job is None:
            return
        self.job.meta["attempts"] = int(self.job.meta.get("attempts") or 0) + 1
        self.job.meta["progress"] = 0
        self.job.save_meta()

    def __call__(self, progress):
        if self.job is None:
            return
        self.job.meta["progress"] = progress
        self.job.save_meta()


def build_pipeline(app):
    engines = app.extensions["engines"]
    return AudioPipeline(
        store=SessionStore(db.session),
        transcriber=engines.transcriber,
        analyzer=engines.analyzer,
        read_audio=read_audio,
        delete_audio=delete_audio,
        logger=app.logger,
    )


def _run(job):
    reporter = RQProgressReporter()
    reporter.start_attempt()
    return build_pipeline(current_app).run(job, reporter)


def process_audio(session_id, audio_file_path, original_file_name=None):
    job = AudioJob(session_id, audio_file_path, original_file_name)
    if has_app_context():
        return _run(job)
    from .. import create_app

    app = create_app()
    with app.app_context():
        return _run(job)
