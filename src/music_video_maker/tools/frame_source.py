"""Video decode capability: clip metadata, thumbnails and frame sampling."""

import asyncio
import base64
import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from ..config import settings
from ..errors import MediaDecodeError
from ..models.clip import ClipDescriptor, Resolution, clip_key


logger = logging.getLogger(__name__)

THUMBNAIL_TIME = 0.1  # seconds into the clip

PathLike = Union[str, Path]


class FrameSource(ABC):
    """Decodes frames and metadata from video files.

    Frames are returned as RGB ``uint8`` arrays of shape (height, width, 3).
    """

    @abstractmethod
    def probe(self, path: PathLike) -> Tuple[float, Resolution]:
        """Return (duration in seconds, resolution).

        Raises:
            MediaDecodeError: If the file cannot be opened
        """
        pass

    @abstractmethod
    def read_frames(self, path: PathLike, timestamps: Sequence[float]) -> List[np.ndarray]:
        """Decode one frame per timestamp, in order.

        Raises:
            MediaDecodeError: If any frame cannot be decoded
        """
        pass


class OpenCVFrameSource(FrameSource):
    """FrameSource backed by ``cv2.VideoCapture``."""

    def _open(self, path: PathLike) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(str(path))
        if not cap.isOpened():
            cap.release()
            raise MediaDecodeError(
                f"Failed to load video {Path(path).name}. It might be a corrupted file."
            )
        return cap

    def probe(self, path: PathLike) -> Tuple[float, Resolution]:
        cap = self._open(path)
        try:
            fps = cap.get(cv2.CAP_PROP_FPS)
            frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT)
            duration = frame_count / fps if fps > 0 else 0.0
            resolution = Resolution(
                width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            )
            return duration, resolution
        finally:
            cap.release()

    def read_frames(self, path: PathLike, timestamps: Sequence[float]) -> List[np.ndarray]:
        cap = self._open(path)
        try:
            frames = []
            for timestamp in timestamps:
                cap.set(cv2.CAP_PROP_POS_MSEC, max(0.0, timestamp) * 1000.0)
                ok, frame = cap.read()
                if not ok or frame is None:
                    raise MediaDecodeError(
                        f"Could not decode frame at {timestamp:.2f}s from {Path(path).name}"
                    )
                frames.append(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            return frames
        finally:
            cap.release()


def encode_thumbnail(
    frame: np.ndarray,
    max_width: Optional[int] = None,
    quality: Optional[int] = None,
) -> str:
    """Scale an RGB frame to ``max_width`` and return it as base64 JPEG."""
    max_width = max_width or settings.thumbnail_max_width
    quality = quality or settings.thumbnail_quality

    image = Image.fromarray(frame)
    aspect_ratio = image.width / image.height if image.height else 1.0
    size = (max_width, max(1, round(max_width / aspect_ratio)))
    image = image.resize(size)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _describe_clip_sync(path: Path, frame_source: FrameSource) -> ClipDescriptor:
    try:
        stat = path.stat()
    except OSError as e:
        raise MediaDecodeError(f"Cannot read clip {path.name}: {e}") from e

    duration, resolution = frame_source.probe(path)
    thumbnail_time = min(max(0.0, THUMBNAIL_TIME), duration)
    frame = frame_source.read_frames(path, [thumbnail_time])[0]

    modified_time = stat.st_mtime_ns // 1_000_000
    return ClipDescriptor(
        id=clip_key(path.name, modified_time, stat.st_size),
        name=path.name,
        file_path=str(path),
        size=stat.st_size,
        modified_time=modified_time,
        duration=duration,
        resolution=resolution,
        thumbnail=encode_thumbnail(frame),
    )


async def describe_clip(path: PathLike, frame_source: Optional[FrameSource] = None) -> ClipDescriptor:
    """Build the ClipDescriptor for a video file.

    Args:
        path: Path to the clip
        frame_source: Decoder to use (OpenCV if None)

    Returns:
        ClipDescriptor without analysis

    Raises:
        MediaDecodeError: If the clip cannot be read or decoded
    """
    loop = asyncio.get_running_loop()
    clip = await loop.run_in_executor(
        None, _describe_clip_sync, Path(path), frame_source or OpenCVFrameSource()
    )
    logger.debug(f"Clip {clip.name}: {clip.duration:.1f}s {clip.resolution.width}x{clip.resolution.height}")
    return clip
