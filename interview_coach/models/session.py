import uuid

from ..extensions import db
from ..lifecycle import SessionStatus
from .base import TimestampMixin


def _new_id():
    return str(uuid.uuid4())


class InterviewSession(db.Model, TimestampMixin):
    __tablename__ = "sessions"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    language = db.Column(db.String(10), nullable=False)
    description = db.Column(db.Text)
    # written only through SessionStore so the transition graph is enforced
    status = db.Column(
        db.Enum(SessionStatus, native_enum=False, length=20, validate_strings=True),
        nullable=False,
        default=SessionStatus.CREATED,
        index=True,
    )
    original_audio_path = db.Column(db.String(512))
    original_file_name = db.Column(db.String(255))
    audio_duration = db.Column(db.Integer)  # seconds
    delete_after_analysis = db.Column(db.Boolean, nullable=False, default=False)
    error_message = db.Column(db.Text)
    last_job_id = db.Column(db.String(64))

    transcript = db.relationship(
        "Transcript", back_populates="session", uselist=False,
        cascade="all, delete-orphan",
    )
    analysis = db.relationship(
        "Analysis", back_populates="session", uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self, with_results=False):
        out = {
            "id": self.id,
            "language": self.language,
            "description": self.description,
            "status": str(self.status),
            "originalAudioPath": self.original_audio_path,
            "originalFileName": self.original_file_name,
            "audioDuration": self.audio_duration,
            "deleteAfterAnalysis": bool(self.delete_after_analysis),
            "errorMessage": self.error_message,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_results:
            out["transcript"] = self.transcript.to_dict() if self.transcript else None
            out["analysis"] = self.analysis.to_dict() if self.analysis else None
        return out

    def __repr__(self) -> str:
        return f"<InterviewSession id={self.id} status={self.status}>"
