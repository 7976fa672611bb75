"""Stage handler exports."""

from howhappy.handlers.analysis_handler import AnalysisHandler
from howhappy.handlers.stage_handler import StageHandler
from howhappy.handlers.transcription_handler import TranscriptionHandler

__all__ = ["AnalysisHandler", "StageHandler", "TranscriptionHandler"]
