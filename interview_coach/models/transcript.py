from ..extensions import db
from .base import TimestampMixin


class Transcript(db.Model, TimestampMixin):
    __tablename__ = "transcripts"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.String(36), db.ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    full_text = db.Column(db.Text, nullable=False, default="")
    language = db.Column(db.String(10))
    duration = db.Column(db.Float)  # seconds
    # [{id, text, startTime, endTime, speakerId, confidence, words?}]
    segments = db.Column(db.JSON, nullable=False, default=list)
    # [{id, label}]
    speakers = db.Column(db.JSON, nullable=True)

    session = db.relationship("InterviewSession", back_populates="transcript")

    def to_dict(self):
        return {
            "fullText": self.full_text,
            "language": self.language,
            "duration": self.duration,
            "segments": self.segments or [],
            "speakers": self.speakers,
        }
