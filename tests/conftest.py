"""Shared fakes and fixtures for the test suite."""

import threading
import time
from typing import List, Optional, Sequence

import numpy as np
import pytest

from music_video_maker.errors import MediaDecodeError, ModelUnavailableError
from music_video_maker.models import ClipDescriptor, DetectedObject, Resolution, clip_key
from music_video_maker.tools.frame_source import FrameSource


def solid_frame(value: int, width: int = 32, height: int = 24) -> np.ndarray:
    """RGB frame filled with a single grey level."""
    return np.full((height, width, 3), value, dtype=np.uint8)


def make_clip(name: str = "clip.mp4", duration: float = 10.0, size: int = 1000,
              modified_time: int = 1_700_000_000_000) -> ClipDescriptor:
    return ClipDescriptor(
        id=clip_key(name, modified_time, size),
        name=name,
        file_path=f"/videos/{name}",
        size=size,
        modified_time=modified_time,
        duration=duration,
        resolution=Resolution(width=32, height=24),
    )


class FakeFrameSource(FrameSource):
    """Serves pre-built frames; paths listed in ``broken`` fail to decode."""

    def __init__(self, frames: Optional[Sequence[np.ndarray]] = None,
                 broken: Sequence[str] = (), duration: float = 10.0):
        self.frames = list(frames) if frames is not None else [solid_frame(128)]
        self.broken = set(broken)
        self.duration = duration
        self.requests: List[List[float]] = []

    def probe(self, path):
        if str(path) in self.broken:
            raise MediaDecodeError(f"corrupt: {path}")
        return self.duration, Resolution(width=self.frames[0].shape[1], height=self.frames[0].shape[0])

    def read_frames(self, path, timestamps):
        if str(path) in self.broken:
            raise MediaDecodeError(f"corrupt: {path}")
        self.requests.append(list(timestamps))
        return [self.frames[min(i, len(self.frames) - 1)] for i in range(len(timestamps))]


class FakeBackend:
    """In-memory inference backend that records how it is used."""

    def __init__(self, labels: Sequence[str] = (), faces: int = 0, delay: float = 0.0,
                 reentrant: bool = False, load_error: Optional[Exception] = None,
                 detect_error: Optional[Exception] = None):
        self.labels = list(labels)
        self.faces = faces
        self.delay = delay
        self.reentrant = reentrant
        self.load_error = load_error
        self.detect_error = detect_error
        self.load_calls = 0
        self.detect_calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def load(self):
        self.load_calls += 1
        if self.load_error is not None:
            raise self.load_error

    def detect_objects(self, frame) -> List[DetectedObject]:
        with self._lock:
            self.detect_calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.detect_error is not None:
                raise self.detect_error
            return [DetectedObject(label=label, score=0.9) for label in self.labels]
        finally:
            with self._lock:
                self.active -= 1

    def detect_faces(self, frame) -> int:
        return self.faces


@pytest.fixture
def frame_source():
    return FakeFrameSource(frames=[solid_frame(0), solid_frame(128), solid_frame(255)])


@pytest.fixture
def backend():
    return FakeBackend(labels=["person", "car"], faces=1)


@pytest.fixture
def unavailable_backend():
    return FakeBackend(load_error=ModelUnavailableError("no weights"))


@pytest.fixture
def clip_factory():
    return make_clip
