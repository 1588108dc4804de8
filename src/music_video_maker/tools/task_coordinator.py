"""Concurrent clip analysis with per-clip deduplication."""

import asyncio
import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import settings
from ..errors import AlreadyInProgressError, MediaDecodeError, ModelUnavailableError
from ..models.clip import ClipDescriptor
from ..models.video import VideoAnalysis
from ..utils.simple_logger import log_start, log_update, log_complete
from .visual_analysis import VideoFeatureExtractor


logger = logging.getLogger(__name__)


class InFlightRegistry:
    """Map of clip key to running task with atomic insert-if-absent."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    def insert_if_absent(
        self, key: str, factory: Callable[[], asyncio.Task]
    ) -> Optional[asyncio.Task]:
        """Create and register a task unless one is already registered.

        The check and the insert happen under one lock, so two callers can
        never both start a task for the same key.

        Returns:
            The new task, or None if ``key`` is already in flight
        """
        with self._lock:
            if key in self._tasks:
                return None
            task = factory()
            self._tasks[key] = task
            return task

    def remove(self, key: str, task: asyncio.Task) -> None:
        """Unregister ``task`` if it is still the one registered under ``key``."""
        with self._lock:
            if self._tasks.get(key) is task:
                del self._tasks[key]

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._tasks)


class AnalysisTaskCoordinator:
    """Runs video feature extraction for many clips.

    Submitting a clip whose key is already in flight raises
    AlreadyInProgressError rather than sharing the pending result; the
    key is released when the task finishes, whatever the outcome, so a
    later retry can go ahead. Started tasks always run to completion.
    """

    def __init__(self, extractor: VideoFeatureExtractor, max_concurrent: Optional[int] = None):
        """Initialize the coordinator.

        Args:
            extractor: Extractor used for every clip
            max_concurrent: Upper bound on clips analysed at once
        """
        self.extractor = extractor
        self._registry = InFlightRegistry()
        self._semaphore = asyncio.Semaphore(max_concurrent or settings.max_concurrent_analyses)

    @property
    def in_flight(self) -> List[str]:
        """Keys of clips currently being analysed."""
        return self._registry.keys()

    def submit(self, clip: ClipDescriptor) -> "asyncio.Task[VideoAnalysis]":
        """Start analysing ``clip``.

        Must be called from within a running event loop.

        Returns:
            Task resolving to the clip's VideoAnalysis

        Raises:
            AlreadyInProgressError: If the same clip is already being analysed
        """
        key = clip.key
        task = self._registry.insert_if_absent(
            key, lambda: asyncio.ensure_future(self._run(clip))
        )
        if task is None:
            logger.info(f"Analysis for {key} is already in progress.")
            raise AlreadyInProgressError(key)

        task.add_done_callback(lambda t: self._registry.remove(key, t))
        return task

    async def _run(self, clip: ClipDescriptor) -> VideoAnalysis:
        async with self._semaphore:
            return await self.extractor.analyze_clip(clip)

    async def analyze_clips(
        self, clips: Sequence[ClipDescriptor]
    ) -> Tuple[List[ClipDescriptor], Dict[str, Exception]]:
        """Analyse a batch of clips concurrently.

        One failing clip never blocks the others, whatever it raised.
        Clips whose analysis failed come back unchanged (without analysis).
        Cancellation is not caught.

        Args:
            clips: Clips to analyse

        Returns:
            (clips with analyses attached, in input order; errors by clip id)
        """
        log_start(logger, f"Analyzing {len(clips)} clips")

        tasks: Dict[str, asyncio.Task] = {}
        errors: Dict[str, Exception] = {}
        for clip in clips:
            if clip.id in tasks:
                continue
            try:
                tasks[clip.id] = self.submit(clip)
            except AlreadyInProgressError as e:
                errors[clip.id] = e

        results = await asyncio.gather(*tasks.values(), return_exceptions=True)
        outcomes = dict(zip(tasks, results))

        updated = []
        for clip in clips:
            outcome = outcomes.get(clip.id)
            if isinstance(outcome, VideoAnalysis):
                updated.append(clip.with_analysis(outcome))
                continue

            if isinstance(outcome, (MediaDecodeError, ModelUnavailableError)):
                logger.warning(f"Analysis failed for {clip.name}: {outcome}")
                errors[clip.id] = outcome
            elif isinstance(outcome, Exception):
                logger.error(f"Unexpected error analyzing {clip.name}: {outcome}", exc_info=outcome)
                errors[clip.id] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            updated.append(clip)

        analyzed = sum(1 for clip in updated if clip.is_analyzed)
        if errors:
            log_update(logger, f"{len(errors)} clip(s) could not be analyzed")
        log_complete(logger, f"Analyzed {analyzed}/{len(clips)} clips")
        return updated, errors
