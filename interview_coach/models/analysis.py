from ..extensions import db
from .base import TimestampMixin


class Analysis(db.Model, TimestampMixin):
    __tablename__ = "analyses"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.String(36), db.ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )

    # structural analysis
    question_response_pairs = db.Column(db.JSON, nullable=False, default=list)
    appropriateness_score = db.Column(db.Float)  # 0.0-1.0
    keyword_matches = db.Column(db.JSON, nullable=False, default=list)

    # speech habits
    filler_words = db.Column(db.JSON, nullable=False, default=list)
    silence_periods = db.Column(db.JSON, nullable=False, default=list)
    speaking_rate = db.Column(db.Float)  # words per minute
    average_pause_duration = db.Column(db.Float)  # seconds

    overall_score = db.Column(db.Float)  # 0-100
    recommendations = db.Column(db.JSON, nullable=False, default=list)
    engine_used = db.Column(db.String(100), nullable=False)

    session = db.relationship("InterviewSession", back_populates="analysis")

    def to_dict(self):
        return {
            "structuralAnalysis": {
                "questionResponsePairs": self.question_response_pairs or [],
                "appropriatenessScore": self.appropriateness_score,
                "keywordMatches": self.keyword_matches or [],
            },
            "speechHabits": {
                "silenceDurations": self.silence_periods or [],
                "fillerWords": self.filler_words or [],
                "speakingRate": self.speaking_rate,
                "averagePauseDuration": self.average_pause_duration,
            },
            "overallScore": self.overall_score,
            "recommendations": self.recommendations or [],
            "engineUsed": self.engine_used,
        }
