"""Rule-based analysis engine.

Scores a transcript from timings and text alone: filler words, long silences,
speaking rate, question/response pairing and keyword coverage. Deterministic
and offline, so it also serves as the default for development and tests.
"""

import re
from collections import OrderedDict
from typing import Any

from .interface import (
    AnalysisEngine,
    AnalysisResult,
    FillerWordOccurrence,
    KeywordMatch,
    QuestionResponsePair,
    SilencePeriod,
    TranscriptResult,
    TranscriptSegment,
)

DEFAULT_FILLERS = ("えー", "えーと", "えっと", "あの", "うーん", "あー", "um", "uh", "er")
DEFAULT_KEYWORDS = ("経験", "チームワーク", "コミュニケーション", "挑戦", "experience", "team", "challenge")

# languages written without spaces; speaking rate is counted in characters
CHARACTER_LANGUAGES = frozenset({"ja", "zh"})
# comfortable speaking-rate band per unit (chars/min, words/min)
RATE_BAND = {"chars": (250.0, 400.0), "words": (110.0, 170.0)}

QUESTION_ENDINGS = ("?", "？")
SHORT_ANSWER_CHARS = 20
FULL_ANSWER_CHARS = 60

MESSAGES = {
    "ja": {
        "short_answer": "回答が短いため、具体例や結果を加えましょう。",
        "good_answer": "質問に対して具体的に答えています。",
        "fillers": "フィラーワード（{words}）を減らしましょう。",
        "silence": "{count}回の長い沈黙がありました。考えを整理してから話し始めましょう。",
        "too_fast": "話す速度が速めです。少しゆっくり話しましょう。",
        "too_slow": "話す速度が遅めです。テンポを意識しましょう。",
        "keywords": "経験やチームワークなど、評価につながるキーワードを盛り込みましょう。",
        "well_done": "全体的に落ち着いて話せています。この調子で練習を続けましょう。",
    },
    "en": {
        "short_answer": "The answer is short; add a concrete example and its outcome.",
        "good_answer": "The answer addresses the question with specifics.",
        "fillers": "Reduce filler words ({words}).",
        "silence": "There were {count} long silences. Organise your thoughts before you start.",
        "too_fast": "You are speaking quickly. Slow down a little.",
        "too_slow": "You are speaking slowly. Keep a steadier pace.",
        "keywords": "Mention experience, teamwork and similar points interviewers look for.",
        "well_done": "Calm and clear overall. Keep practising.",
    },
}


class HeuristicAnalysisEngine(AnalysisEngine):
    name = "heuristic"

    def __init__(
        self,
        fillers: tuple[str, ...] | list[str] = DEFAULT_FILLERS,
        keywords: tuple[str, ...] | list[str] = DEFAULT_KEYWORDS,
        silence_threshold: float = 2.0,
    ) -> None:
        self.fillers = [f.strip().lower() for f in fillers if f.strip()]
        self.keywords = [k.strip() for k in keywords if k.strip()]
        self.silence_threshold = silence_threshold
        self._filler_re = self._compile_fillers(self.fillers)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "HeuristicAnalysisEngine":
        fillers = config.get("FILLER_TOKENS")
        keywords = config.get("INTERVIEW_KEYWORDS")
        return cls(
            fillers=fillers.split(",") if fillers else DEFAULT_FILLERS,
            keywords=keywords.split(",") if keywords else DEFAULT_KEYWORDS,
            silence_threshold=float(config.get("SILENCE_THRESHOLD_SEC", 2.0)),
        )

    @staticmethod
    def _compile_fillers(fillers: list[str]) -> re.Pattern | None:
        if not fillers:
            return None
        parts = []
        # longest first so "えーと" wins over "えー"
        for f in sorted(set(fillers), key=len, reverse=True):
            if f.isascii():
                parts.append(rf"(?<![a-z]){re.escape(f)}(?![a-z])")
            else:
                parts.append(re.escape(f))
        return re.compile("|".join(parts))

    def analyze(self, transcript: TranscriptResult) -> AnalysisResult:
        msgs = MESSAGES.get(transcript.language, MESSAGES["en"])
        segments = sorted(transcript.segments, key=lambda s: s.start_time)
        candidate = self._candidate_segments(segments)

        fillers = self._find_fillers(candidate)
        silences, avg_pause = self._find_silences(segments)
        unit = "chars" if transcript.language in CHARACTER_LANGUAGES else "words"
        volume = sum(self._count_units(s.text, unit) for s in candidate)
        spoken_minutes = sum(max(0.0, s.end_time - s.start_time) for s in candidate) / 60.0
        rate = volume / spoken_minutes if spoken_minutes > 0 else 0.0
        pairs = self._pair_questions(segments, msgs)
        keywords = self._match_keywords(segments)

        appropriateness = (
            sum(p.appropriateness for p in pairs) / len(pairs) if pairs else 0.5
        )
        filler_total = sum(f.count for f in fillers)
        filler_rate = filler_total / volume if volume else 0.0
        if unit == "chars":
            # one filler token spans roughly three characters
            filler_rate *= 3

        score = 60.0 + 40.0 * appropriateness
        score -= min(25.0, filler_rate * 200.0)
        score -= min(15.0, 3.0 * len(silences))
        low, high = RATE_BAND[unit]
        if rate and not low <= rate <= high:
            deviation = (low - rate) / low if rate < low else (rate - high) / high
            score -= min(10.0, 10.0 * deviation)
        score += min(10.0, 2.0 * len(keywords))
        score = round(min(100.0, max(0.0, score)), 1)

        recommendations = []
        if any(p.appropriateness < 0.5 for p in pairs):
            recommendations.append(msgs["short_answer"])
        if filler_total:
            top = sorted(fillers, key=lambda f: f.count, reverse=True)[:3]
            recommendations.append(msgs["fillers"].format(words=", ".join(f.word for f in top)))
        if silences:
            recommendations.append(msgs["silence"].format(count=len(silences)))
        if rate and rate > high:
            recommendations.append(msgs["too_fast"])
        elif rate and rate < low:
            recommendations.append(msgs["too_slow"])
        if not keywords and self.keywords:
            recommendations.append(msgs["keywords"])
        if not recommendations:
            recommendations.append(msgs["well_done"])

        return AnalysisResult(
            overall_score=score,
            appropriateness_score=round(appropriateness, 3),
            speaking_rate=round(rate, 1),
            average_pause_duration=round(avg_pause, 2),
            question_response_pairs=pairs,
            keyword_matches=keywords,
            filler_words=fillers,
            silence_periods=silences,
            recommendations=recommendations,
        )

    @staticmethod
    def _candidate_segments(segments: list[TranscriptSegment]) -> list[TranscriptSegment]:
        """Segments of the speaker with the most talk time."""
        talk: dict[str | None, float] = {}
        for s in segments:
            talk[s.speaker_id] = talk.get(s.speaker_id, 0.0) + max(0.0, s.end_time - s.start_time)
        if len(talk) <= 1:
            return segments
        best = max(talk.items(), key=lambda kv: kv[1])[0]
        return [s for s in segments if s.speaker_id == best]

    def _find_fillers(self, segments: list[TranscriptSegment]) -> list[FillerWordOccurrence]:
        found: OrderedDict[str, list[float]] = OrderedDict()
        if self._filler_re is None:
            return []
        for seg in segments:
            if seg.words:
                for w in seg.words:
                    for m in self._filler_re.finditer(w.text.lower()):
                        found.setdefault(m.group(0), []).append(round(w.start_time, 2))
                continue
            text = seg.text.lower()
            span = max(0.0, seg.end_time - seg.start_time)
            for m in self._filler_re.finditer(text):
                # interpolate a timestamp from the character offset
                offset = span * (m.start() / len(text)) if text else 0.0
                found.setdefault(m.group(0), []).append(round(seg.start_time + offset, 2))
        return [
            FillerWordOccurrence(word=word, count=len(times), timestamps=times)
            for word, times in found.items()
        ]

    def _find_silences(self, segments: list[TranscriptSegment]) -> tuple[list[SilencePeriod], float]:
        silences = []
        gaps = []
        for prev, cur in zip(segments, segments[1:]):
            gap = max(0.0, cur.start_time - prev.end_time)
            gaps.append(gap)
            if gap >= self.silence_threshold:
                silences.append(SilencePeriod(
                    start_time=round(prev.end_time, 2),
                    end_time=round(cur.start_time, 2),
                    duration=round(gap, 2),
                ))
        return silences, (sum(gaps) / len(gaps) if gaps else 0.0)

    @staticmethod
    def _count_units(text: str, unit: str) -> int:
        if unit == "chars":
            return len(re.sub(r"[\s、。，．,.!?！？「」]", "", text))
        return len(text.split())

    def _pair_questions(
        self, segments: list[TranscriptSegment], msgs: dict[str, str]
    ) -> list[QuestionResponsePair]:
        pairs = []
        for i, seg in enumerate(segments):
            if not seg.text.rstrip().endswith(QUESTION_ENDINGS):
                continue
            response = next(
                (
                    s for s in segments[i + 1:]
                    if s.speaker_id is None or s.speaker_id != seg.speaker_id
                ),
                None,
            )
            if response is None or response.text.rstrip().endswith(QUESTION_ENDINGS):
                continue
            length = len(response.text.strip())
            appropriateness = round(min(1.0, length / FULL_ANSWER_CHARS), 2)
            pairs.append(QuestionResponsePair(
                question_segment_id=seg.id,
                response_segment_id=response.id,
                question_intent=seg.text.strip()[:40],
                appropriateness=appropriateness,
                feedback=msgs["short_answer"] if length < SHORT_ANSWER_CHARS else msgs["good_answer"],
            ))
        return pairs

    def _match_keywords(self, segments: list[TranscriptSegment]) -> list[KeywordMatch]:
        matches = []
        for keyword in self.keywords:
            needle = keyword.lower()
            count = 0
            seg_ids = []
            for s in segments:
                n = s.text.lower().count(needle)
                if n:
                    count += n
                    seg_ids.append(s.id)
            if count:
                matches.append(KeywordMatch(
                    keyword=keyword,
                    count=count,
                    segments=seg_ids,
                    relevance=round(min(1.0, count / 3.0), 2),
                ))
        return matches
