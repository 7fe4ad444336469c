"""Persistence gateway for sessions and their results.

All status writes go through `transition`, which checks the lifecycle graph
and performs a single conditional UPDATE keyed by session id and expected
current status. A writer that lost a race gets StateConflict instead of
overwriting someone else's state.
"""
import logging

from sqlalchemy import delete, select, update

from ..errors import SessionNotFound, StateConflict
from ..lifecycle import IN_FLIGHT, SessionStatus, ensure_transition
from ..models import Analysis, InterviewSession, Transcript

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, db_session):
        self.db = db_session

    # reads

    def get(self, session_id):
        return self.db.get(InterviewSession, session_id)

    def require(self, session_id):
        s = self.get(session_id)
        if s is None:
            raise SessionNotFound(session_id)
        return s

    def list(self):
        q = select(InterviewSession).order_by(InterviewSession.created_at.desc(), InterviewSession.id)
        return list(self.db.scalars(q))

    # writes

    def create(self, language, description=None, delete_after_analysis=False):
        s = InterviewSession(
            language=language,
            description=description,
            delete_after_analysis=bool(delete_after_analysis),
            status=SessionStatus.CREATED,
        )
        self.db.add(s)
        self.db.commit()
        logger.info("Session %s created (language=%s)", s.id, language)
        return s

    def transition(self, session_id, src, dst, clear_results=False, **fields):
        """Move a session from `src` to `dst` in one conditional write.

        Extra keyword arguments are column values written together with the
        status. With `clear_results`, transcript and analysis rows from an
        earlier run are removed in the same transaction.
        """
        src, dst = SessionStatus(src), SessionStatus(dst)
        ensure_transition(src, dst, session_id)
        try:
            if clear_results:
                self.db.execute(delete(Transcript).where(Transcript.session_id == session_id))
                self.db.execute(delete(Analysis).where(Analysis.session_id == session_id))
            result = self.db.execute(
                update(InterviewSession)
                .where(InterviewSession.id == session_id, InterviewSession.status == src)
                .values(status=dst, **fields)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                current = self.get(session_id)
                if current is None:
                    raise SessionNotFound(session_id)
                raise StateConflict(
                    f"Session {session_id} is {current.status}, expected {src}",
                    session_id=session_id,
                    current_status=current.status,
                )
            # commit expires loaded instances, so readers see the new row
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Session %s status %s -> %s", session_id, src, dst)

    def mark_failed(self, session_id, message):
        """Record a pipeline failure. Returns True when something was written.

        Sessions in UPLOADING, TRANSCRIBING or ANALYZING move to FAILED; a
        session already FAILED only gets its message refreshed. COMPLETED and
        CREATED sessions are left alone.
        """
        # the failed step may have left the session mid-transaction
        self.db.rollback()
        for _ in range(2):
            s = self.get(session_id)
            if s is None:
                return False
            status = s.status
            if status in IN_FLIGHT:
                try:
                    self.transition(session_id, status, SessionStatus.FAILED, error_message=message)
                    return True
                except StateConflict:
                    # moved under us; look again
                    continue
            if status == SessionStatus.FAILED:
                self._write(
                    update(InterviewSession)
                    .where(InterviewSession.id == session_id, InterviewSession.status == SessionStatus.FAILED)
                    .values(error_message=message)
                    .execution_options(synchronize_session=False)
                )
                return True
            logger.warning("Not marking session %s failed from status %s", session_id, status)
            return False
        return False

    def record_job(self, session_id, job_id):
        self._write(
            update(InterviewSession)
            .where(InterviewSession.id == session_id)
            .values(last_job_id=job_id)
            .execution_options(synchronize_session=False)
        )

    def save_transcript(self, session_id, result):
        if self.db.scalar(select(Transcript.id).where(Transcript.session_id == session_id)) is not None:
            raise StateConflict(f"Transcript already stored for session {session_id}", session_id=session_id)
        tr = Transcript(
            session_id=session_id,
            full_text=result.full_text,
            language=result.language,
            duration=result.duration,
            segments=[seg.to_dict() for seg in result.segments],
            speakers=[sp.to_dict() for sp in result.speakers] if result.speakers is not None else None,
        )
        self._add(tr)
        return tr

    def save_analysis(self, session_id, result, engine_used):
        if self.db.scalar(select(Analysis.id).where(Analysis.session_id == session_id)) is not None:
            raise StateConflict(f"Analysis already stored for session {session_id}", session_id=session_id)
        an = Analysis(
            session_id=session_id,
            question_response_pairs=[p.to_dict() for p in result.question_response_pairs],
            appropriateness_score=result.appropriateness_score,
            keyword_matches=[k.to_dict() for k in result.keyword_matches],
            filler_words=[f.to_dict() for f in result.filler_words],
            silence_periods=[p.to_dict() for p in result.silence_periods],
            speaking_rate=result.speaking_rate,
            average_pause_duration=result.average_pause_duration,
            overall_score=result.overall_score,
            recommendations=list(result.recommendations),
            engine_used=engine_used,
        )
        self._add(an)
        return an

    def delete(self, session_id):
        s = self.require(session_id)
        path = s.original_audio_path
        try:
            self.db.delete(s)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Session %s deleted", session_id)
        return path

    # a failed flush poisons the session until rollback

    def _add(self, row):
        try:
            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _write(self, stmt):
        try:
            self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
