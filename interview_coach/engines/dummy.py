"""Canned transcription engine for local development without API keys."""

from .interface import (
    Speaker,
    TranscriptionEngine,
    TranscriptionOptions,
    TranscriptResult,
    TranscriptSegment,
    TranscriptWord,
)

_SCRIPT = {
    "ja": [
        ("Interviewer", "自己紹介をお願いできますか？"),
        ("Candidate", "はい、えーと、山田と申します。前職ではチームで決済システムの開発を担当していました。"),
        ("Interviewer", "チームワークで苦労した経験はありますか？"),
        ("Candidate", "あの、リリース直前に仕様が変わった時に、メンバーと毎日話し合って乗り越えた経験があります。"),
    ],
    "ko": [
        ("Interviewer", "자기소개를 해 주시겠어요?"),
        ("Candidate", "음, 저는 김민수입니다. 이전 회사에서 팀으로 결제 시스템을 개발했습니다."),
    ],
    "en": [
        ("Interviewer", "Could you introduce yourself?"),
        ("Candidate", "Sure, um, I'm Alex. I worked on a payments team building checkout services."),
        ("Interviewer", "Tell me about a challenge you faced with your team?"),
        ("Candidate", "Uh, we had a late requirement change and we split the work to ship on time."),
    ],
}

SEGMENT_GAP = 0.8


class DummyTranscriptionEngine(TranscriptionEngine):
    """Returns a fixed interview script; timings are derived from text length."""

    name = "dummy"

    def __init__(self, seconds_per_char: float = 0.12) -> None:
        self.seconds_per_char = seconds_per_char

    def supported_languages(self) -> set[str]:
        return set(_SCRIPT)

    def transcribe(self, audio_bytes: bytes, options: TranscriptionOptions) -> TranscriptResult:
        self.check_language(options.language)
        segments = []
        cursor = 0.0
        for idx, (speaker, text) in enumerate(_SCRIPT[options.language], start=1):
            end = cursor + len(text) * self.seconds_per_char
            words = None
            if options.word_timestamps:
                words = self._words(text, cursor, end)
            segments.append(TranscriptSegment(
                id=str(idx),
                text=text,
                start_time=round(cursor, 2),
                end_time=round(end, 2),
                confidence=0.95,
                speaker_id=speaker if options.speaker_split else None,
                words=words,
            ))
            cursor = end + SEGMENT_GAP

        speakers = None
        if options.speaker_split:
            speakers = [Speaker(id="Interviewer", label="面接官"), Speaker(id="Candidate", label="面接者")]
        return TranscriptResult(
            full_text=" ".join(s.text for s in segments),
            segments=segments,
            language=options.language,
            duration=round(segments[-1].end_time, 2) if segments else 0.0,
            speakers=speakers,
        )

    @staticmethod
    def _words(text: str, start: float, end: float) -> list[TranscriptWord]:
        tokens = text.replace("、", " ").replace("。", " ").split()
        if not tokens:
            return []
        step = (end - start) / len(tokens)
        return [
            TranscriptWord(
                text=t,
                start_time=round(start + i * step, 2),
                end_time=round(start + (i + 1) * step, 2),
                confidence=0.95,
            )
            for i, t in enumerate(tokens)
        ]
