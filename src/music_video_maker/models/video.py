"""
Video analysis data models.

Describes the visual features extracted from a clip: brightness,
motion, structural complexity and detected content.
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict, Field


class ContentCategory(str, Enum):
    """Coarse content class derived from detected objects."""
    PEOPLE = "people"
    NATURE = "nature"
    URBAN = "urban"
    ACTION = "action"
    OTHER = "other"


class MotionLevel(str, Enum):
    """Amount of change between the first and last sampled frames."""
    STATIC = "static"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DetectedObject(BaseModel):
    """Object label reported by the inference backend."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Class label (COCO name, e.g. 'person')")
    score: float = Field(..., ge=0, le=1, description="Detection confidence")


class VideoAnalysis(BaseModel):
    """Visual features of a single clip.

    Produced at most once per clip and immutable once attached; a new
    analysis replaces the old one wholesale.
    """
    model_config = ConfigDict(frozen=True)

    has_faces: bool = Field(False, description="Whether any face was found")
    detected_objects: List[DetectedObject] = Field(
        default_factory=list, description="Distinct detections on the centre frame"
    )
    dominant_category: ContentCategory = Field(ContentCategory.OTHER, description="Content class")
    motion_level: MotionLevel = Field(MotionLevel.STATIC, description="Motion class")
    avg_brightness: float = Field(..., ge=0, le=1, description="Mean brightness over sampled frames")
    visual_complexity: float = Field(..., ge=0, le=1, description="Fraction of strong-edge pixels")

    @property
    def labels(self) -> set[str]:
        return {obj.label for obj in self.detected_objects}

    def summary(self) -> str:
        """One-line visual summary used in sequencing prompts."""
        return (
            f"[Content: {self.dominant_category.value}] "
            f"[Faces: {'Yes' if self.has_faces else 'No'}] "
            f"[Motion: {self.motion_level.value}] "
            f"[Brightness: {self.avg_brightness:.2f}] "
            f"[Complexity: {self.visual_complexity:.2f}]"
        )
