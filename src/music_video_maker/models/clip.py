"""
Clip data models.

A ClipDescriptor is the long-lived record for one uploaded video clip
and the owner of its optional VideoAnalysis.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .video import VideoAnalysis


def clip_key(name: str, modified_time: int, size: int) -> str:
    """Build the identity key of a physical clip file.

    Args:
        name: File name
        modified_time: Modification time in milliseconds since the epoch
        size: File size in bytes

    Returns:
        Composite key "name-mtime-size"
    """
    return f"{name}-{modified_time}-{size}"


class Resolution(BaseModel):
    """Frame size in pixels."""
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)

    @property
    def orientation(self) -> str:
        if self.width > self.height:
            return "landscape"
        elif self.height > self.width:
            return "portrait"
        return "square"


class ClipDescriptor(BaseModel):
    """Metadata for a video clip plus its analysis once available."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique key derived from name, modification time and size")
    name: str = Field(..., description="File name")
    file_path: str = Field(..., description="Path to the clip on disk")
    size: int = Field(..., ge=0, description="File size in bytes")
    modified_time: int = Field(..., ge=0, description="Modification time (ms since epoch)")
    duration: float = Field(..., ge=0, description="Duration in seconds")
    resolution: Resolution = Field(..., description="Frame size")
    thumbnail: str = Field("", description="Base64 JPEG thumbnail")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Absent until feature extraction completes
    analysis: Optional[VideoAnalysis] = Field(None, description="Visual analysis results")

    @property
    def key(self) -> str:
        """Identity key used to deduplicate in-flight analyses."""
        return clip_key(self.name, self.modified_time, self.size)

    @property
    def is_analyzed(self) -> bool:
        return self.analysis is not None

    def with_analysis(self, analysis: Optional[VideoAnalysis]) -> "ClipDescriptor":
        """Return a copy carrying ``analysis`` in place of the current one."""
        return self.model_copy(update={"analysis": analysis})
