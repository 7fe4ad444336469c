"""Transcription and analysis engine contracts.

Defines the two engine ABCs and the result dataclasses that travel between
them. Concrete backends subclass TranscriptionEngine or AnalysisEngine and are
listed in the registry; the pipeline only ever sees these types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..errors import UnsupportedInput


@dataclass
class TranscriptWord:
    """A single word with timing and confidence information."""

    text: str
    start_time: float
    end_time: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptWord":
        return cls(
            text=str(data.get("text", "")),
            start_time=float(data.get("startTime", 0.0)),
            end_time=float(data.get("endTime", 0.0)),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass
class TranscriptSegment:
    """A timed span of speech from one speaker."""

    id: str
    text: str
    start_time: float
    end_time: float
    confidence: float
    speaker_id: str | None = None
    words: list[TranscriptWord] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "speakerId": self.speaker_id,
            "confidence": self.confidence,
        }
        if self.words is not None:
            out["words"] = [w.to_dict() for w in self.words]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptSegment":
        words = data.get("words")
        return cls(
            id=str(data.get("id", "")),
            text=str(data.get("text", "")),
            start_time=float(data.get("startTime", 0.0)),
            end_time=float(data.get("endTime", 0.0)),
            confidence=float(data.get("confidence", 0.0)),
            speaker_id=data.get("speakerId"),
            words=[TranscriptWord.from_dict(w) for w in words] if words is not None else None,
        )


@dataclass
class Speaker:
    id: str
    label: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "label": self.label}


@dataclass
class TranscriptResult:
    """Complete transcript of one recording."""

    full_text: str
    segments: list[TranscriptSegment]
    language: str
    duration: float
    speakers: list[Speaker] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fullText": self.full_text,
            "segments": [s.to_dict() for s in self.segments],
            "language": self.language,
            "duration": self.duration,
            "speakers": [s.to_dict() for s in self.speakers] if self.speakers is not None else None,
        }


@dataclass
class TranscriptionOptions:
    language: str
    filename: str | None = None
    speaker_split: bool = True
    word_timestamps: bool = True


@dataclass
class QuestionResponsePair:
    question_segment_id: str
    response_segment_id: str
    question_intent: str
    appropriateness: float
    feedback: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionSegmentId": self.question_segment_id,
            "responseSegmentId": self.response_segment_id,
            "questionIntent": self.question_intent,
            "appropriateness": self.appropriateness,
            "feedback": self.feedback,
        }


@dataclass
class KeywordMatch:
    keyword: str
    count: int
    segments: list[str]
    relevance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "count": self.count,
            "segments": list(self.segments),
            "relevance": self.relevance,
        }


@dataclass
class FillerWordOccurrence:
    word: str
    count: int
    timestamps: list[float]

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "count": self.count, "timestamps": list(self.timestamps)}


@dataclass
class SilencePeriod:
    start_time: float
    end_time: float
    duration: float

    def to_dict(self) -> dict[str, float]:
        return {"startTime": self.start_time, "endTime": self.end_time, "duration": self.duration}


@dataclass
class AnalysisResult:
    """Structured feedback derived from one transcript."""

    overall_score: float
    appropriateness_score: float
    speaking_rate: float
    average_pause_duration: float
    question_response_pairs: list[QuestionResponsePair] = field(default_factory=list)
    keyword_matches: list[KeywordMatch] = field(default_factory=list)
    filler_words: list[FillerWordOccurrence] = field(default_factory=list)
    silence_periods: list[SilencePeriod] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "structuralAnalysis": {
                "questionResponsePairs": [p.to_dict() for p in self.question_response_pairs],
                "appropriatenessScore": self.appropriateness_score,
                "keywordMatches": [k.to_dict() for k in self.keyword_matches],
            },
            "speechHabits": {
                "silenceDurations": [s.to_dict() for s in self.silence_periods],
                "fillerWords": [f.to_dict() for f in self.filler_words],
                "speakingRate": self.speaking_rate,
                "averagePauseDuration": self.average_pause_duration,
            },
            "overallScore": self.overall_score,
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        """Build a result from the camelCase JSON shape, clamping scores into range."""
        structural = data.get("structuralAnalysis") or {}
        habits = data.get("speechHabits") or {}

        def _num(value: Any, default: float = 0.0) -> float:
            try:
                return float(value)
            except (TypeError, ValueError):
                return default

        def _unit(value: Any) -> float:
            return min(1.0, max(0.0, _num(value)))

        return cls(
            overall_score=min(100.0, max(0.0, _num(data.get("overallScore")))),
            appropriateness_score=_unit(structural.get("appropriatenessScore")),
            speaking_rate=max(0.0, _num(habits.get("speakingRate"))),
            average_pause_duration=max(0.0, _num(habits.get("averagePauseDuration"))),
            question_response_pairs=[
                QuestionResponsePair(
                    question_segment_id=str(p.get("questionSegmentId", "")),
                    response_segment_id=str(p.get("responseSegmentId", "")),
                    question_intent=str(p.get("questionIntent", "")),
                    appropriateness=_unit(p.get("appropriateness")),
                    feedback=str(p.get("feedback", "")),
                )
                for p in structural.get("questionResponsePairs") or []
                if isinstance(p, dict)
            ],
            keyword_matches=[
                KeywordMatch(
                    keyword=str(k.get("keyword", "")),
                    count=int(_num(k.get("count"))),
                    segments=[str(s) for s in k.get("segments") or []],
                    relevance=_unit(k.get("relevance")),
                )
                for k in structural.get("keywordMatches") or []
                if isinstance(k, dict)
            ],
            filler_words=[
                FillerWordOccurrence(
                    word=str(f.get("word", "")),
                    count=int(_num(f.get("count"))),
                    timestamps=[_num(t) for t in f.get("timestamps") or []],
                )
                for f in habits.get("fillerWords") or []
                if isinstance(f, dict)
            ],
            silence_periods=[
                SilencePeriod(
                    start_time=_num(s.get("startTime")),
                    end_time=_num(s.get("endTime")),
                    duration=_num(s.get("duration")),
                )
                for s in habits.get("silenceDurations") or []
                if isinstance(s, dict)
            ],
            recommendations=[str(r) for r in data.get("recommendations") or []],
        )


class TranscriptionEngine(ABC):
    """Audio in, timed text out."""

    name: str = "transcription"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "TranscriptionEngine":
        return cls()

    @abstractmethod
    def transcribe(self, audio_bytes: bytes, options: TranscriptionOptions) -> TranscriptResult:
        """Transcribe a whole recording.

        Raises:
            EngineUnavailable: The backend could not be reached.
            UnsupportedInput: The backend rejected the format or language.
            EngineError: Any other backend-reported failure.
        """

    @abstractmethod
    def supported_languages(self) -> set[str]:
        """Language codes this engine accepts."""

    def check_language(self, language: str) -> None:
        if language not in self.supported_languages():
            supported = ", ".join(sorted(self.supported_languages()))
            raise UnsupportedInput(
                f"{self.name} does not support language '{language}' (supported: {supported})",
                engine=self.name,
            )


class AnalysisEngine(ABC):
    """Timed text in, structured feedback out."""

    name: str = "analysis"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "AnalysisEngine":
        return cls()

    @abstractmethod
    def analyze(self, transcript: TranscriptResult) -> AnalysisResult:
        """Analyze one transcript. Same failure taxonomy as TranscriptionEngine."""
