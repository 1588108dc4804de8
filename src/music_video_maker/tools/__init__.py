"""Analysis and sequencing tools for Music Video Maker."""

from .audio_analysis import AudioFeatureExtractor, analyze_audio_media
from .edit_validator import parse_oracle_response, validate_edit_decisions
from .inference import AnalysisContext, InferenceBackend, OpenCVInferenceBackend
from .task_coordinator import AnalysisTaskCoordinator
from .visual_analysis import VideoFeatureExtractor

__all__ = [
    "AudioFeatureExtractor",
    "analyze_audio_media",
    "parse_oracle_response",
    "validate_edit_decisions",
    "AnalysisContext",
    "InferenceBackend",
    "OpenCVInferenceBackend",
    "AnalysisTaskCoordinator",
    "VideoFeatureExtractor",
]
