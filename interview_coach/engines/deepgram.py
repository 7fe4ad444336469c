"""Deepgram prerecorded transcription engine.

Requests diarization and utterances so each segment carries a speaker label.
When a response has no `utterances` array the words of the first channel are
grouped into utterances by speaker change or a pause longer than
`word_gap_threshold`.
"""

import mimetypes
from typing import Any

from .http import post_json
from .interface import (
    Speaker,
    TranscriptionEngine,
    TranscriptionOptions,
    TranscriptResult,
    TranscriptSegment,
    TranscriptWord,
)
from ..errors import EngineUnavailable

DEEPGRAM_LISTEN_URL = "https://api.deepgram.com/v1/listen"


class DeepgramEngine(TranscriptionEngine):
    name = "deepgram"

    def __init__(
        self,
        api_key: str | None,
        timeout: float = 120.0,
        word_gap_threshold: float = 0.35,
        url: str = DEEPGRAM_LISTEN_URL,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.word_gap_threshold = word_gap_threshold
        self.url = url

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "DeepgramEngine":
        return cls(
            api_key=config.get("DEEPGRAM_API_KEY"),
            timeout=float(config.get("ENGINE_TIMEOUT", 120.0)),
            word_gap_threshold=float(config.get("DG_WORD_GAP_THRESHOLD", 0.35)),
        )

    def supported_languages(self) -> set[str]:
        return {"ja", "ko", "en"}

    def transcribe(self, audio_bytes: bytes, options: TranscriptionOptions) -> TranscriptResult:
        self.check_language(options.language)
        if not self.api_key:
            raise EngineUnavailable("DEEPGRAM_API_KEY is not set", engine=self.name)

        params = {"punctuate": "true", "language": options.language}
        if options.speaker_split:
            params["diarize"] = "true"
            params["utterances"] = "true"

        content_type = "audio/wav"
        if options.filename:
            content_type = mimetypes.guess_type(options.filename)[0] or content_type

        raw = post_json(
            self.name,
            self.url,
            self.timeout,
            params=params,
            headers={"Authorization": f"Token {self.api_key}", "Content-Type": content_type},
            data=audio_bytes,
        )
        return self._to_result(raw, options)

    def _to_result(self, raw: dict[str, Any], options: TranscriptionOptions) -> TranscriptResult:
        try:
            alternative = raw["results"]["channels"][0]["alternatives"][0]
        except (KeyError, IndexError, TypeError):
            alternative = {}
        words = alternative.get("words") or []

        utterances = (raw.get("results") or {}).get("utterances") or raw.get("utterances")
        if not utterances:
            utterances = self._group_words(words)

        segments = []
        speaker_ids = []
        for idx, u in enumerate(utterances, start=1):
            speaker = u.get("speaker")
            speaker_id = f"Speaker_{speaker}" if speaker is not None else None
            if speaker_id and speaker_id not in speaker_ids:
                speaker_ids.append(speaker_id)
            seg_words = None
            if options.word_timestamps:
                seg_words = [self._word(w) for w in u.get("words") or []]
            segments.append(TranscriptSegment(
                id=str(idx),
                text=(u.get("transcript") or u.get("text") or "").strip(),
                start_time=float(u.get("start") or 0.0),
                end_time=float(u.get("end") or 0.0),
                confidence=float(u.get("confidence") or 0.0),
                speaker_id=speaker_id,
                words=seg_words,
            ))

        metadata = raw.get("metadata") or {}
        duration = metadata.get("duration")
        if duration is None:
            duration = segments[-1].end_time if segments else 0.0

        return TranscriptResult(
            full_text=alternative.get("transcript") or " ".join(s.text for s in segments),
            segments=segments,
            language=options.language,
            duration=float(duration),
            speakers=[Speaker(id=s, label=s) for s in speaker_ids] or None,
        )

    def _group_words(self, words: list[dict[str, Any]]) -> list[dict[str, Any]]:
        utterances: list[dict[str, Any]] = []
        current = None
        for w in words:
            spk = w.get("speaker") if w.get("speaker") is not None else 0
            start = float(w.get("start") or 0.0)
            end = float(w.get("end") or start)
            if current is not None:
                gap = start - current["end"]
                if spk != current["speaker"] or gap > self.word_gap_threshold:
                    utterances.append(current)
                    current = None
            if current is None:
                current = {"speaker": spk, "start": start, "end": end, "words": [], "confidences": []}
            current["end"] = end
            current["words"].append(w)
            current["confidences"].append(float(w.get("confidence") or 0.0))
        if current is not None:
            utterances.append(current)

        for u in utterances:
            u["transcript"] = " ".join(
                (w.get("punctuated_word") or w.get("word") or "") for w in u["words"]
            )
            confidences = u.pop("confidences")
            u["confidence"] = sum(confidences) / len(confidences) if confidences else 0.0
        return utterances

    @staticmethod
    def _word(w: dict[str, Any]) -> TranscriptWord:
        return TranscriptWord(
            text=w.get("punctuated_word") or w.get("word") or "",
            start_time=float(w.get("start") or 0.0),
            end_time=float(w.get("end") or 0.0),
            confidence=float(w.get("confidence") or 0.0),
        )
