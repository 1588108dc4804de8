"""Visual feature extraction for video clips.

Samples a few frames from a clip and derives brightness, motion,
structural complexity and a coarse content category. Object and face
detection are delegated to the inference backend owned by an
AnalysisContext.
"""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, NamedTuple, Sequence, Union

import cv2
import numpy as np

from ..errors import MediaDecodeError
from ..models.clip import ClipDescriptor
from ..models.video import ContentCategory, DetectedObject, MotionLevel, VideoAnalysis
from ..utils.simple_logger import log_start, log_update, log_complete
from .inference import AnalysisContext


logger = logging.getLogger(__name__)

SAMPLE_POSITIONS = (0.2, 0.5, 0.8)
EDGE_MARGIN = 0.1  # seconds

SOBEL_THRESHOLD = 128

# Motion breakpoints, checked in order
MOTION_BREAKPOINTS = (
    (0.10, MotionLevel.HIGH),
    (0.03, MotionLevel.MEDIUM),
    (0.005, MotionLevel.LOW),
)
# Differences are normalised over an RGBA-sized buffer; the breakpoints above
# were calibrated that way.
MOTION_CHANNELS = 4

# First matching rule wins
CATEGORY_RULES = (
    (ContentCategory.PEOPLE, frozenset({"person"})),
    (ContentCategory.URBAN, frozenset({
        "car", "bus", "truck", "motorcycle", "bicycle", "train",
        "traffic light", "stop sign", "parking meter", "fire hydrant",
    })),
    (ContentCategory.ACTION, frozenset({
        "sports ball", "skateboard", "surfboard", "skis", "snowboard",
        "frisbee", "kite", "tennis racket", "baseball bat", "baseball glove",
    })),
    (ContentCategory.NATURE, frozenset({
        "bird", "cat", "dog", "horse", "sheep", "cow", "elephant", "bear",
        "zebra", "giraffe", "tree", "potted plant",
    })),
)


class FrameMetrics(NamedTuple):
    avg_brightness: float
    visual_complexity: float
    motion_level: MotionLevel


def sample_timestamps(duration: float) -> List[float]:
    """Pick frame timestamps at 20%, 50% and 80% of the clip.

    Points within 0.1s of either end are dropped; if none remain the
    midpoint is used.

    Raises:
        MediaDecodeError: If the clip has no duration
    """
    if duration <= 0:
        raise MediaDecodeError("Cannot sample frames from a zero-duration clip")

    timestamps = [
        position * duration
        for position in SAMPLE_POSITIONS
        if EDGE_MARGIN < position * duration < duration - EDGE_MARGIN
    ]
    return timestamps or [duration / 2]


def average_brightness(frames: Sequence[np.ndarray]) -> float:
    """Mean of the per-pixel (R+G+B)/3 over all frames, in [0, 1]."""
    per_frame = [float(frame[..., :3].astype(np.float64).mean()) / 255.0 for frame in frames]
    return min(1.0, max(0.0, float(np.mean(per_frame))))


def visual_complexity(frame: np.ndarray) -> float:
    """Fraction of pixels whose Sobel gradient magnitude exceeds the threshold."""
    gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY).astype(np.float64)
    height, width = gray.shape
    if height < 3 or width < 3:
        return 0.0

    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    # Border pixels have no full 3x3 neighbourhood and never count as edges
    magnitude = np.hypot(gx, gy)[1:-1, 1:-1]

    edge_pixels = np.count_nonzero(magnitude > SOBEL_THRESHOLD)
    return min(1.0, edge_pixels / (width * height))


def motion_score(first: np.ndarray, last: np.ndarray) -> float:
    """Summed absolute RGB difference between two frames, normalised."""
    diff = np.abs(first[..., :3].astype(np.int32) - last[..., :3].astype(np.int32)).sum()
    pixels = first.shape[0] * first.shape[1]
    return float(diff) / (pixels * MOTION_CHANNELS * 3 * 255)


def classify_motion(score: float) -> MotionLevel:
    for breakpoint, level in MOTION_BREAKPOINTS:
        if score > breakpoint:
            return level
    return MotionLevel.STATIC


def classify_objects(labels: Iterable[str]) -> ContentCategory:
    """Derive the dominant content category from detected labels."""
    labels = set(labels)
    for category, rule_labels in CATEGORY_RULES:
        if labels & rule_labels:
            return category
    return ContentCategory.OTHER


def compute_frame_metrics(frames: Sequence[np.ndarray]) -> FrameMetrics:
    """Brightness over all frames, complexity of the centre frame, motion first-to-last."""
    if not frames:
        raise MediaDecodeError("No frames were decoded")

    center = frames[len(frames) // 2]
    if len(frames) > 1:
        motion = classify_motion(motion_score(frames[0], frames[-1]))
    else:
        # Nothing to compare against
        motion = MotionLevel.STATIC

    return FrameMetrics(
        avg_brightness=average_brightness(frames),
        visual_complexity=visual_complexity(center),
        motion_level=motion,
    )


def distinct_detections(detections: Iterable[DetectedObject]) -> List[DetectedObject]:
    """Keep the best score per label, highest first."""
    best = {}
    for detection in detections:
        current = best.get(detection.label)
        if current is None or detection.score > current.score:
            best[detection.label] = detection
    return sorted(best.values(), key=lambda d: d.score, reverse=True)


class VideoFeatureExtractor:
    """Computes a VideoAnalysis for a clip."""

    def __init__(self, context: AnalysisContext):
        """Initialize the extractor.

        Args:
            context: Owner of the frame decoder and inference backend
        """
        self.context = context

    async def analyze_clip(self, clip: ClipDescriptor) -> VideoAnalysis:
        """Analyze a described clip."""
        return await self.analyze_file(clip.file_path, clip.duration)

    async def analyze_file(self, path: Union[str, Path], duration: float) -> VideoAnalysis:
        """Analyze a video file.

        Args:
            path: Path to the clip
            duration: Clip duration in seconds

        Returns:
            VideoAnalysis for the clip

        Raises:
            MediaDecodeError: If frames cannot be extracted
            ModelUnavailableError: If the inference backend fails
        """
        name = Path(path).name
        log_start(logger, f"Analyzing video: {name}")
        loop = asyncio.get_running_loop()
        executor = self.context.executor

        timestamps = sample_timestamps(duration)
        log_update(logger, f"Sampling {len(timestamps)} frames")
        frames = await loop.run_in_executor(
            executor, self.context.frame_source.read_frames, path, timestamps
        )

        metrics = await loop.run_in_executor(executor, compute_frame_metrics, frames)

        center = frames[len(frames) // 2]
        detections, face_count = await self.context.run_inference(center)
        objects = distinct_detections(detections)

        analysis = VideoAnalysis(
            has_faces=face_count > 0,
            detected_objects=objects,
            dominant_category=classify_objects(obj.label for obj in objects),
            motion_level=metrics.motion_level,
            avg_brightness=metrics.avg_brightness,
            visual_complexity=metrics.visual_complexity,
        )
        log_complete(logger, f"Video analysis complete - {name}: {analysis.summary()}")
        return analysis
