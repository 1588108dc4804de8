"""
Edit decision data models.

Defines the validated edit decision list (EDL) handed to rendering and
the history record stored for each generated video.
"""

import uuid
from datetime import datetime
from typing import Dict, Iterator, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .audio import AudioAnalysis


class EditDecision(BaseModel):
    """A single cut: which clip to show and for how long."""
    model_config = ConfigDict(frozen=True)

    clip_index: int = Field(..., ge=0, description="0-based index into the ordered clip set")
    duration: float = Field(..., gt=0, description="How long the clip plays (seconds)")
    description: str = Field(..., description="Why this clip was chosen for this moment")

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        if not v.strip():
            raise ValueError('description must not be empty')
        return v


class EditDecisionList(BaseModel):
    """Ordered, non-empty sequence of edit decisions."""
    model_config = ConfigDict(frozen=True)

    decisions: List[EditDecision] = Field(..., min_length=1, description="Cuts in playback order")

    def __len__(self) -> int:
        return len(self.decisions)

    def __iter__(self) -> Iterator[EditDecision]:  # type: ignore[override]
        return iter(self.decisions)

    def __getitem__(self, index: int) -> EditDecision:
        return self.decisions[index]

    @property
    def total_duration(self) -> float:
        """Sum of all cut durations."""
        return sum(d.duration for d in self.decisions)

    def clip_usage(self) -> Dict[int, float]:
        """Calculate total screen time per clip index."""
        usage: Dict[int, float] = {}
        for decision in self.decisions:
            usage[decision.clip_index] = usage.get(decision.clip_index, 0.0) + decision.duration
        return usage


class GeneratedVideo(BaseModel):
    """History record for one generated music video."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    audio_path: str = Field(..., description="Music track used")
    clip_ids: List[str] = Field(..., description="Ordered clip set the EDL indexes into")
    edit_decision_list: EditDecisionList
    music_description: str = Field("", description="Mood/genre description given to the oracle")
    audio_analysis: AudioAnalysis
    thumbnail: Optional[str] = Field(None, description="Base64 JPEG of the first clip")
    created_at: datetime = Field(default_factory=datetime.utcnow)
