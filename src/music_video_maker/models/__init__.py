"""
Data models for Music Video Maker.

This module provides Pydantic models for type safety and validation
throughout the application.
"""

from .audio import (
    AudioAnalysis,
    Beat,
    EnergyIntensity,
    EnergySegment,
)
from .video import (
    ContentCategory,
    DetectedObject,
    MotionLevel,
    VideoAnalysis,
)
from .clip import (
    ClipDescriptor,
    Resolution,
    clip_key,
)
from .edit_decision import (
    EditDecision,
    EditDecisionList,
    GeneratedVideo,
)

__all__ = [
    # Audio
    "AudioAnalysis",
    "Beat",
    "EnergyIntensity",
    "EnergySegment",
    # Video
    "ContentCategory",
    "DetectedObject",
    "MotionLevel",
    "VideoAnalysis",
    # Clips
    "ClipDescriptor",
    "Resolution",
    "clip_key",
    # Edit decisions
    "EditDecision",
    "EditDecisionList",
    "GeneratedVideo",
]
