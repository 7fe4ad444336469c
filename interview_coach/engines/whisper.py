"""OpenAI Whisper transcription engine.

Calls the `audio/transcriptions` endpoint with `verbose_json` output and both
segment and word timestamps, then maps the response onto TranscriptResult.
Whisper does not separate speakers, so every segment gets one speaker label.
"""

import math
import mimetypes
from typing import Any

from .http import post_json
from .interface import (
    TranscriptionEngine,
    TranscriptionOptions,
    TranscriptResult,
    TranscriptSegment,
    TranscriptWord,
)
from ..errors import EngineUnavailable

OPENAI_TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"
DEFAULT_SPEAKER = "Speaker_A"
DEFAULT_CONFIDENCE = 0.9


class OpenAIWhisperEngine(TranscriptionEngine):
    name = "openai-whisper"

    def __init__(
        self,
        api_key: str | None,
        model: str = "whisper-1",
        timeout: float = 120.0,
        url: str = OPENAI_TRANSCRIPTIONS_URL,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.url = url

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "OpenAIWhisperEngine":
        return cls(
            api_key=config.get("OPENAI_API_KEY"),
            model=config.get("OPENAI_TRANSCRIBE_MODEL", "whisper-1"),
            timeout=float(config.get("ENGINE_TIMEOUT", 120.0)),
        )

    def supported_languages(self) -> set[str]:
        return {"ja", "ko", "en"}

    def transcribe(self, audio_bytes: bytes, options: TranscriptionOptions) -> TranscriptResult:
        self.check_language(options.language)
        if not self.api_key:
            raise EngineUnavailable("OPENAI_API_KEY is not set", engine=self.name)

        filename = options.filename or "audio.mp3"
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        granularities = ["segment"]
        if options.word_timestamps:
            granularities.append("word")

        raw = post_json(
            self.name,
            self.url,
            self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            files={"file": (filename, audio_bytes, content_type)},
            data={
                "model": self.model,
                "language": options.language,
                "response_format": "verbose_json",
                "timestamp_granularities[]": granularities,
            },
        )
        return self._to_result(raw, options)

    def _to_result(self, raw: dict[str, Any], options: TranscriptionOptions) -> TranscriptResult:
        words = [
            TranscriptWord(
                text=(w.get("word") or "").strip(),
                start_time=float(w.get("start") or 0.0),
                end_time=float(w.get("end") or 0.0),
                confidence=float(w.get("probability") or DEFAULT_CONFIDENCE),
            )
            for w in raw.get("words") or []
        ]

        segments = []
        for idx, seg in enumerate(raw.get("segments") or [], start=1):
            start = float(seg.get("start") or 0.0)
            end = float(seg.get("end") or start)
            logprob = seg.get("avg_logprob")
            seg_words = None
            if options.word_timestamps:
                # top-level words are assigned to the segment whose window holds their start
                seg_words = [w for w in words if start <= w.start_time < end]
            segments.append(TranscriptSegment(
                id=str(idx),
                text=(seg.get("text") or "").strip(),
                start_time=start,
                end_time=end,
                confidence=math.exp(logprob) if logprob is not None else DEFAULT_CONFIDENCE,
                speaker_id=DEFAULT_SPEAKER,
                words=seg_words,
            ))

        return TranscriptResult(
            full_text=raw.get("text") or "",
            segments=segments,
            # Whisper reports full language names ("japanese"); keep the requested code
            language=options.language,
            duration=float(raw.get("duration") or 0.0),
        )
