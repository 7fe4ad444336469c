from .interface import (
    AnalysisEngine,
    AnalysisResult,
    TranscriptionEngine,
    TranscriptionOptions,
    TranscriptResult,
)
from .registry import EngineSet, build_engines
