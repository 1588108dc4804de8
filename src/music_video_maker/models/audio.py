"""
Audio analysis data models.

Defines the beat, energy and tempo description of a music track
produced by the audio feature extractor.
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Float tolerance used when checking that energy segments tile the track
TIME_TOLERANCE = 1e-6


class EnergyIntensity(str, Enum):
    """Coarse loudness class of a stretch of audio."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Beat(BaseModel):
    """A detected beat (kick-drum-like transient)."""
    model_config = ConfigDict(frozen=True)

    timestamp: float = Field(..., ge=0, description="Beat position in seconds")
    confidence: float = Field(1.0, ge=0, le=1, description="Detector confidence")


class EnergySegment(BaseModel):
    """Contiguous stretch of audio with a single intensity class."""
    model_config = ConfigDict(frozen=True)

    start_time: float = Field(..., ge=0, description="Start time in seconds")
    end_time: float = Field(..., gt=0, description="End time in seconds")
    intensity: EnergyIntensity = Field(..., description="Energy class")

    @field_validator('end_time')
    @classmethod
    def validate_times(cls, v, info):
        start = info.data.get('start_time')
        if start is not None and v <= start:
            raise ValueError('end_time must be greater than start_time')
        return v

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class AudioAnalysis(BaseModel):
    """Beat, tempo and energy description of a music track.

    Never mutated after creation; re-analysis produces a new instance.
    """
    model_config = ConfigDict(frozen=True)

    duration: float = Field(..., gt=0, description="Track duration in seconds")
    bpm: int = Field(..., gt=0, description="Estimated tempo in beats per minute")
    beats: List[Beat] = Field(default_factory=list, description="Beats in playback order")
    energy_segments: List[EnergySegment] = Field(
        default_factory=list, description="Energy segments covering [0, duration]"
    )

    @field_validator('beats')
    @classmethod
    def validate_beats_increasing(cls, v):
        for previous, current in zip(v, v[1:]):
            if current.timestamp <= previous.timestamp:
                raise ValueError('beat timestamps must be strictly increasing')
        return v

    @model_validator(mode='after')
    def validate_energy_partition(self):
        segments = self.energy_segments
        if not segments:
            return self

        if abs(segments[0].start_time) > TIME_TOLERANCE:
            raise ValueError('first energy segment must start at 0')
        if abs(segments[-1].end_time - self.duration) > TIME_TOLERANCE:
            raise ValueError('last energy segment must end at the track duration')

        for previous, current in zip(segments, segments[1:]):
            if abs(current.start_time - previous.end_time) > TIME_TOLERANCE:
                raise ValueError('energy segments must be contiguous')
            if current.intensity == previous.intensity:
                raise ValueError('adjacent energy segments must differ in intensity')
        return self

    @property
    def beat_interval(self) -> float:
        """Seconds per beat at the estimated tempo."""
        return 60.0 / self.bpm

    def summarize_energy(self) -> str:
        """Describe the energy profile in one sentence per segment."""
        return " ".join(
            f"From {s.start_time:.1f}s to {s.end_time:.1f}s the energy is {s.intensity.value}."
            for s in self.energy_segments
        )
