"""Audio feature extraction: energy segmentation and beat/tempo estimation."""

import asyncio
import logging
import math
import tempfile
from concurrent.futures import Executor
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import librosa
import numpy as np
from scipy.signal import lfilter

from ..errors import MediaDecodeError
from ..models.audio import AudioAnalysis, Beat, EnergyIntensity, EnergySegment
from ..utils.simple_logger import log_start, log_update, log_complete


logger = logging.getLogger(__name__)

# Energy segmentation
WINDOW_SECONDS = 1.0
LOW_PERCENTILE = 0.33
HIGH_PERCENTILE = 0.66

# Beat detection
LOWPASS_CUTOFF_HZ = 150.0
LOWPASS_Q_DB = 1.0
PEAK_THRESHOLD = 0.6
PEAK_HOLDOFF_SECONDS = 0.1
DEFAULT_BPM = 120

AudioSource = Union[str, Path, bytes]


def segment_energy(samples: np.ndarray, sample_rate: int) -> List[EnergySegment]:
    """Split audio into low/medium/high energy segments.

    RMS is measured over fixed one-second windows (the last one may be
    shorter). Windows are classified against the 33rd/66th percentile RMS
    and consecutive windows of the same class are merged.

    Args:
        samples: Mono sample buffer
        sample_rate: Samples per second

    Returns:
        Merged segments covering the whole buffer; empty for empty input
    """
    samples = np.asarray(samples, dtype=np.float64)
    window = int(sample_rate * WINDOW_SECONDS)
    if samples.size == 0 or window <= 0:
        return []

    levels = []
    bounds = []
    for start in range(0, samples.size, window):
        end = min(start + window, samples.size)
        chunk = samples[start:end]
        levels.append(float(np.sqrt(np.mean(chunk * chunk))))
        bounds.append((start / sample_rate, end / sample_rate))

    ranked = sorted(levels)
    low_threshold = ranked[math.floor(len(ranked) * LOW_PERCENTILE)]
    high_threshold = ranked[math.floor(len(ranked) * HIGH_PERCENTILE)]

    def classify(level: float) -> EnergyIntensity:
        if level >= high_threshold:
            return EnergyIntensity.HIGH
        if level >= low_threshold:
            return EnergyIntensity.MEDIUM
        return EnergyIntensity.LOW

    merged: List[Tuple[float, float, EnergyIntensity]] = []
    for (start_time, end_time), level in zip(bounds, levels):
        intensity = classify(level)
        if merged and merged[-1][2] == intensity:
            merged[-1] = (merged[-1][0], end_time, intensity)
        else:
            merged.append((start_time, end_time, intensity))

    return [
        EnergySegment(start_time=start, end_time=end, intensity=intensity)
        for start, end, intensity in merged
    ]


def lowpass_coefficients(
    cutoff: float, sample_rate: int, q_db: float = LOWPASS_Q_DB
) -> Tuple[np.ndarray, np.ndarray]:
    """Biquad low-pass coefficients (Web Audio BiquadFilterNode, Q in dB)."""
    w0 = 2.0 * math.pi * cutoff / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * 10 ** (q_db / 20.0))

    b = np.array([(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2])
    a = np.array([1 + alpha, -2 * cos_w0, 1 - alpha])
    return b / a[0], a / a[0]


def lowpass_filter(
    samples: np.ndarray,
    sample_rate: int,
    cutoff: float = LOWPASS_CUTOFF_HZ,
    q_db: float = LOWPASS_Q_DB,
) -> np.ndarray:
    """Emphasize low-frequency transients such as kick drums."""
    b, a = lowpass_coefficients(cutoff, sample_rate, q_db)
    return lfilter(b, a, np.asarray(samples, dtype=np.float64))


def find_peaks(filtered: np.ndarray, sample_rate: int) -> List[int]:
    """Sample indices where the signal crosses the peak threshold.

    After each hit the scan skips ahead by the hold-off window so the same
    transient is not counted twice.
    """
    holdoff = int(sample_rate * PEAK_HOLDOFF_SECONDS)
    peaks: List[int] = []
    next_allowed = 0
    for index in np.flatnonzero(filtered > PEAK_THRESHOLD):
        if index < next_allowed:
            continue
        peaks.append(int(index))
        next_allowed = index + holdoff + 1
    return peaks


def detect_beats(samples: np.ndarray, sample_rate: int) -> Tuple[int, List[Beat]]:
    """Estimate tempo and beat positions.

    Returns:
        (bpm, beats). Fewer than two peaks falls back to 120 BPM and no beats.
    """
    if len(samples) == 0:
        return DEFAULT_BPM, []

    peaks = find_peaks(lowpass_filter(samples, sample_rate), sample_rate)
    if len(peaks) < 2:
        return DEFAULT_BPM, []

    intervals = np.diff(peaks) / sample_rate
    average_interval = float(np.mean(intervals))
    # Half-up rounding; very sparse peaks still give a positive tempo
    bpm = max(1, math.floor(60.0 / average_interval + 0.5))

    beats = [Beat(timestamp=index / sample_rate, confidence=1.0) for index in peaks]
    return bpm, beats


def decode_audio(path: Union[str, Path]) -> Tuple[np.ndarray, int]:
    """Decode an audio file to its first channel at the native sample rate.

    Raises:
        MediaDecodeError: If the file is missing, corrupt or unsupported
    """
    try:
        y, sr = librosa.load(str(path), sr=None, mono=False)
    except Exception as e:
        logger.error(f"Failed to decode audio {path}: {e}")
        raise MediaDecodeError(
            "Could not process the audio file. It may be corrupted or in an unsupported format."
        ) from e

    if y.ndim > 1:
        y = y[0]
    if y.size == 0:
        raise MediaDecodeError(f"Audio file contains no samples: {path}")
    return y, int(sr)


class AudioFeatureExtractor:
    """Extracts tempo, beats and energy segments from a music track."""

    def __init__(self, executor: Optional[Executor] = None):
        """Initialize the extractor.

        Args:
            executor: Executor for the CPU-bound work (default loop executor if None)
        """
        self._executor = executor

    async def analyze_audio(self, source: AudioSource, suffix: str = "") -> AudioAnalysis:
        """Analyze an audio track.

        Energy segmentation and beat detection run concurrently; the
        analysis is only built once both have finished.

        Args:
            source: Path to the audio file, or its raw bytes
            suffix: File suffix hint used when ``source`` is bytes

        Returns:
            AudioAnalysis for the track

        Raises:
            MediaDecodeError: If the audio cannot be decoded
        """
        name = "<bytes>" if isinstance(source, bytes) else Path(source).name
        log_start(logger, f"Analyzing audio: {name}")

        samples, sample_rate = await self._load_audio(source, suffix)
        duration = len(samples) / sample_rate
        log_update(logger, f"Decoded {duration:.1f}s at {sample_rate} Hz")

        loop = asyncio.get_running_loop()
        (bpm, beats), energy_segments = await asyncio.gather(
            loop.run_in_executor(self._executor, detect_beats, samples, sample_rate),
            loop.run_in_executor(self._executor, segment_energy, samples, sample_rate),
        )

        analysis = AudioAnalysis(
            duration=duration,
            bpm=bpm,
            beats=beats,
            energy_segments=energy_segments,
        )
        log_complete(
            logger,
            f"Audio analysis complete - {bpm} BPM, {len(beats)} beats, "
            f"{len(energy_segments)} energy segments"
        )
        return analysis

    async def _load_audio(self, source: AudioSource, suffix: str) -> Tuple[np.ndarray, int]:
        """Decode audio off the event loop."""
        loop = asyncio.get_running_loop()

        if isinstance(source, bytes):
            # librosa needs a file on disk
            with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
                tmp.write(source)
                tmp_path = Path(tmp.name)
            try:
                return await loop.run_in_executor(self._executor, decode_audio, tmp_path)
            finally:
                tmp_path.unlink(missing_ok=True)

        return await loop.run_in_executor(self._executor, decode_audio, source)


async def analyze_audio_media(file_path: str) -> Dict[str, Any]:
    """Analyze an audio file for tempo, beats and energy.

    Args:
        file_path: Path to audio file

    Returns:
        Dictionary with analysis results
    """
    try:
        analysis = await AudioFeatureExtractor().analyze_audio(file_path)
        return {
            "status": "success",
            "analysis": analysis.model_dump(mode="json"),
        }

    except MediaDecodeError as e:
        logger.error(f"Audio analysis failed: {e}")
        return {
            "status": "error",
            "error_type": type(e).__name__,
            "error": str(e),
        }
