"""Inference backend capability and the analysis context that owns it."""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from ..config import settings
from ..errors import ModelUnavailableError
from ..models.video import DetectedObject
from .frame_source import FrameSource, OpenCVFrameSource


logger = logging.getLogger(__name__)

# Class ids of the TensorFlow object detection API COCO label map
COCO_LABELS: Dict[int, str] = {
    1: "person", 2: "bicycle", 3: "car", 4: "motorcycle", 5: "airplane",
    6: "bus", 7: "train", 8: "truck", 9: "boat", 10: "traffic light",
    11: "fire hydrant", 13: "stop sign", 14: "parking meter", 15: "bench",
    16: "bird", 17: "cat", 18: "dog", 19: "horse", 20: "sheep", 21: "cow",
    22: "elephant", 23: "bear", 24: "zebra", 25: "giraffe", 27: "backpack",
    28: "umbrella", 31: "handbag", 32: "tie", 33: "suitcase", 34: "frisbee",
    35: "skis", 36: "snowboard", 37: "sports ball", 38: "kite",
    39: "baseball bat", 40: "baseball glove", 41: "skateboard",
    42: "surfboard", 43: "tennis racket", 44: "bottle", 46: "wine glass",
    47: "cup", 48: "fork", 49: "knife", 50: "spoon", 51: "bowl",
    52: "banana", 53: "apple", 54: "sandwich", 55: "orange", 56: "broccoli",
    57: "carrot", 58: "hot dog", 59: "pizza", 60: "donut", 61: "cake",
    62: "chair", 63: "couch", 64: "potted plant", 65: "bed",
    67: "dining table", 70: "toilet", 72: "tv", 73: "laptop", 74: "mouse",
    75: "remote", 76: "keyboard", 77: "cell phone", 78: "microwave",
    79: "oven", 80: "toaster", 81: "sink", 82: "refrigerator", 84: "book",
    85: "clock", 86: "vase", 87: "scissors", 88: "teddy bear",
    89: "hair drier", 90: "toothbrush",
}


class InferenceBackend(ABC):
    """Object and face detection on single RGB frames.

    ``load`` is called once before the first detection. Backends that are
    not safe to call from several threads at once set ``reentrant = False``.
    """

    reentrant: bool = False

    @abstractmethod
    def load(self) -> None:
        """Load model weights.

        Raises:
            ModelUnavailableError: If the models cannot be loaded
        """
        pass

    @abstractmethod
    def detect_objects(self, frame: np.ndarray) -> List[DetectedObject]:
        """Detect labelled objects in an RGB frame."""
        pass

    @abstractmethod
    def detect_faces(self, frame: np.ndarray) -> int:
        """Count faces in an RGB frame."""
        pass


class OpenCVInferenceBackend(InferenceBackend):
    """Haar-cascade faces plus an SSD MobileNet COCO detector run through cv2.dnn."""

    reentrant = False  # cv2.dnn.Net keeps per-instance buffers

    def __init__(
        self,
        object_model_path: Optional[str] = None,
        object_model_config: Optional[str] = None,
        face_cascade_path: Optional[str] = None,
        score_threshold: Optional[float] = None,
        input_size: int = 300,
    ):
        self.object_model_path = object_model_path or settings.object_model_path
        self.object_model_config = object_model_config or settings.object_model_config
        self.face_cascade_path = face_cascade_path or settings.face_cascade_path or (
            cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        )
        self.score_threshold = (
            score_threshold if score_threshold is not None else settings.detection_score_threshold
        )
        self.input_size = input_size
        self._net = None
        self._face_cascade = None

    def load(self) -> None:
        if not self.object_model_path or not self.object_model_config:
            raise ModelUnavailableError(
                "Object detection model not configured (set OBJECT_MODEL_PATH and OBJECT_MODEL_CONFIG)"
            )

        try:
            net = cv2.dnn.readNetFromTensorflow(self.object_model_path, self.object_model_config)
        except cv2.error as e:
            raise ModelUnavailableError(f"Failed to load object detection model: {e}") from e

        cascade = cv2.CascadeClassifier(self.face_cascade_path)
        if cascade.empty():
            raise ModelUnavailableError(f"Failed to load face cascade: {self.face_cascade_path}")

        self._net = net
        self._face_cascade = cascade
        logger.info("Video analysis models loaded")

    def detect_objects(self, frame: np.ndarray) -> List[DetectedObject]:
        blob = cv2.dnn.blobFromImage(
            frame, size=(self.input_size, self.input_size), swapRB=False, crop=False
        )
        self._net.setInput(blob)
        output = self._net.forward()

        detections = []
        for row in output.reshape(-1, 7):
            score = float(row[2])
            if score < self.score_threshold:
                continue
            label = COCO_LABELS.get(int(row[1]))
            if label is None:
                continue
            detections.append(DetectedObject(label=label, score=min(1.0, score)))
        return detections

    def detect_faces(self, frame: np.ndarray) -> int:
        gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
        faces = self._face_cascade.detectMultiScale(gray, scaleFactor=1.1, minNeighbors=5)
        return len(faces)


class AnalysisContext:
    """Explicitly owned resources shared by clip analyses.

    Holds the frame decoder and the inference backend. The backend is
    loaded lazily on first use and reused afterwards. A failed load raises
    ModelUnavailableError and is attempted again on the next request.
    Calls into a non-reentrant backend are serialised; frame decoding and
    metric computation are not.
    """

    def __init__(
        self,
        backend: Optional[InferenceBackend] = None,
        frame_source: Optional[FrameSource] = None,
        executor: Optional[Executor] = None,
    ):
        self.backend = backend or OpenCVInferenceBackend()
        self.frame_source = frame_source or OpenCVFrameSource()
        self.executor = executor
        self._load_lock = threading.Lock()
        self._loaded = False
        self._inference_lock = asyncio.Lock()

    @property
    def backend_loaded(self) -> bool:
        return self._loaded

    def _ensure_loaded(self) -> None:
        with self._load_lock:
            if self._loaded:
                return
            try:
                self.backend.load()
            except ModelUnavailableError:
                raise
            except Exception as e:
                raise ModelUnavailableError(f"Failed to load AI models for video analysis: {e}") from e
            self._loaded = True

    def _infer(self, frame: np.ndarray) -> Tuple[List[DetectedObject], int]:
        try:
            return self.backend.detect_objects(frame), self.backend.detect_faces(frame)
        except ModelUnavailableError:
            raise
        except Exception as e:
            raise ModelUnavailableError(f"Inference failed: {e}") from e

    async def run_inference(self, frame: np.ndarray) -> Tuple[List[DetectedObject], int]:
        """Run object and face detection on one frame.

        Returns:
            (detections, face count)

        Raises:
            ModelUnavailableError: If the backend cannot be loaded or fails
        """
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self.executor, self._ensure_loaded)

        if self.backend.reentrant:
            return await loop.run_in_executor(self.executor, self._infer, frame)

        async with self._inference_lock:
            return await loop.run_in_executor(self.executor, self._infer, frame)
