"""Engine registry with configuration-driven backend selection.

Maps backend names to engine classes. `build_engines` resolves both
engines once, when the app is created; nothing downstream looks at names.
"""

from dataclasses import dataclass
from typing import Any

from .deepgram import DeepgramEngine
from .dummy import DummyTranscriptionEngine
from .gpt import GptAnalysisEngine
from .heuristic import HeuristicAnalysisEngine
from .interface import AnalysisEngine, TranscriptionEngine
from .whisper import OpenAIWhisperEngine
from ..errors import EngineError

TRANSCRIPTION_ENGINES: dict[str, type[TranscriptionEngine]] = {
    "openai": OpenAIWhisperEngine,
    "deepgram": DeepgramEngine,
    "dummy": DummyTranscriptionEngine,
}

ANALYSIS_ENGINES: dict[str, type[AnalysisEngine]] = {
    "gpt": GptAnalysisEngine,
    "heuristic": HeuristicAnalysisEngine,
}


@dataclass(frozen=True)
class EngineSet:
    transcriber: TranscriptionEngine
    analyzer: AnalysisEngine


def _lookup(kind: str, registry: dict[str, type], name: str) -> type:
    engine_cls = registry.get((name or "").strip().lower())
    if not engine_cls:
        available = ", ".join(sorted(registry))
        raise EngineError(f"Unknown {kind} engine: '{name}'. Available: {available}", engine=name)
    return engine_cls


def build_transcription_engine(config: dict[str, Any]) -> TranscriptionEngine:
    engine_cls = _lookup("transcription", TRANSCRIPTION_ENGINES, config.get("TRANSCRIPTION_ENGINE", "openai"))
    return engine_cls.from_config(config)


def build_analysis_engine(config: dict[str, Any]) -> AnalysisEngine:
    engine_cls = _lookup("analysis", ANALYSIS_ENGINES, config.get("ANALYSIS_ENGINE", "gpt"))
    return engine_cls.from_config(config)


def build_engines(config: dict[str, Any]) -> EngineSet:
    return EngineSet(
        transcriber=build_transcription_engine(config),
        analyzer=build_analysis_engine(config),
    )
