"""OpenAI chat-completions analysis engine.

Sends the timeline to the model in JSON mode and parses the reply into an
AnalysisResult. The reply is trusted for shape only; scores are clamped into
range by AnalysisResult.from_dict.
"""

import json
import logging
import re
from typing import Any

from .http import post_json
from .interface import AnalysisEngine, AnalysisResult, TranscriptResult
from ..errors import EngineError, EngineUnavailable, UnsupportedInput

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

SYSTEM_PROMPT = (
    "あなたは日本語の面接コーチです。"
    "面接練習の会話内容を分析し、構造化されたフィードバックを提供します。"
    "必ず指定されたJSON形式だけで返答してください。"
)

RESPONSE_SHAPE = """{
  "structuralAnalysis": {
    "questionResponsePairs": [
      {"questionSegmentId": "セグメントID", "responseSegmentId": "セグメントID",
       "questionIntent": "質問の意図", "appropriateness": 0.0-1.0, "feedback": "フィードバック"}
    ],
    "appropriatenessScore": 0.0-1.0,
    "keywordMatches": [{"keyword": "キーワード", "count": 回数, "segments": ["セグメントID"], "relevance": 0.0-1.0}]
  },
  "speechHabits": {
    "silenceDurations": [{"startTime": 秒, "endTime": 秒, "duration": 秒}],
    "fillerWords": [{"word": "あの", "count": 回数, "timestamps": [秒]}],
    "speakingRate": 分あたりの単語数,
    "averagePauseDuration": 秒
  },
  "overallScore": 0-100,
  "recommendations": ["具体的な改善提案"]
}"""


class GptAnalysisEngine(AnalysisEngine):
    name = "gpt"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        timeout: float = 120.0,
        temperature: float = 0.2,
        url: str = OPENAI_CHAT_URL,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.url = url
        self.name = f"gpt:{model}"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "GptAnalysisEngine":
        return cls(
            api_key=config.get("OPENAI_API_KEY"),
            model=config.get("OPENAI_ANALYSIS_MODEL", "gpt-4o-mini"),
            timeout=float(config.get("ENGINE_TIMEOUT", 120.0)),
        )

    def analyze(self, transcript: TranscriptResult) -> AnalysisResult:
        if not self.api_key:
            raise EngineUnavailable("OPENAI_API_KEY is not set", engine=self.name)
        if not transcript.segments and not transcript.full_text.strip():
            raise UnsupportedInput("transcript is empty", engine=self.name)

        logger.info(
            "analysis start: language=%s segments=%d", transcript.language, len(transcript.segments)
        )
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(transcript)},
            ],
            "response_format": {"type": "json_object"},
            "temperature": self.temperature,
        }
        raw = post_json(
            self.name,
            self.url,
            self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json=body,
        )
        try:
            content = raw["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise EngineError("unexpected chat completion shape", engine=self.name) from exc
        return AnalysisResult.from_dict(self._parse_json(content))

    def _parse_json(self, text: str) -> dict[str, Any]:
        try:
            return json.loads(text)
        except ValueError:
            pass
        # models sometimes wrap the object in prose or a code fence
        m = re.search(r"\{[\s\S]*\}", text)
        if m:
            try:
                return json.loads(m.group(0))
            except ValueError:
                pass
        raise EngineError(f"model reply is not JSON: {text[:200]}", engine=self.name)

    @staticmethod
    def build_prompt(transcript: TranscriptResult) -> str:
        timeline = "\n".join(
            f"[{s.id}] [{s.start_time:.1f}s - {s.end_time:.1f}s] {s.speaker_id or '-'}: {s.text}"
            for s in transcript.segments
        )
        return (
            "# 発話内容\n\n"
            f"言語: {transcript.language}\n"
            f"全文: {transcript.full_text}\n\n"
            f"タイムライン:\n{timeline}\n\n"
            "# 分析タスク\n\n"
            "以下のJSON形式で分析結果を返してください:\n"
            f"{RESPONSE_SHAPE}\n\n"
            "特に以下を重点的に分析してください:\n"
            "1. フィラーワード（「あの」「えーと」「あー」「うん」）の検出\n"
            "2. 発話速度と停止時間の分析\n"
            "3. 内容の適切性と具体性\n"
            "4. 改善のための具体的な提案\n"
        )
