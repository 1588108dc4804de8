"""Sequencing oracle: Gemini proposes a cut list from analysed audio and clips.

The oracle's output is advisory and untrusted. It always goes through
``validate_edit_decisions`` before anything downstream sees it.
"""

import asyncio
import base64
import binascii
import logging
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from google import genai
from google.genai import types

from ..config import settings
from ..errors import SequenceGenerationError
from ..models.audio import AudioAnalysis
from ..models.clip import ClipDescriptor
from ..models.edit_decision import EditDecisionList
from ..utils.simple_logger import log_start, log_update, log_complete
from .edit_validator import parse_oracle_response, validate_edit_decisions


logger = logging.getLogger(__name__)

MUSIC_DESCRIPTION_PROMPT = (
    "Analyze this audio file and provide a concise, evocative description of its mood, "
    "genre, and tempo. This description will be used to guide the creation of a music video. "
    "Keep it to one sentence. Example: \"Energetic hyper-pop with a fast beat, perfect for "
    "quick cuts and flashy visuals.\""
)

EDIT_DECISION_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "clipIndex": types.Schema(
                type=types.Type.INTEGER,
                description="The 0-based index of the video clip to use from the provided clips.",
            ),
            "duration": types.Schema(
                type=types.Type.NUMBER,
                description="How long this clip should play, in seconds.",
            ),
            "description": types.Schema(
                type=types.Type.STRING,
                description=(
                    "A brief, exciting description of why this clip was chosen for this moment, "
                    "referencing the audio and visual content."
                ),
            ),
        },
        required=["clipIndex", "duration", "description"],
    ),
)


def build_sequence_prompt(
    music_description: str,
    audio_analysis: AudioAnalysis,
    clips: Sequence[ClipDescriptor],
) -> str:
    """Build the content-aware editing prompt."""
    visual_summary = "\n".join(
        f"Clip {index} ({clip.name}): "
        + (clip.analysis.summary() if clip.analysis else "[Analysis not available]")
        for index, clip in enumerate(clips)
    )
    duration = audio_analysis.duration
    bpm = audio_analysis.bpm

    return f"""
You are an expert music video editor with advanced content analysis capabilities. Your task is to create a compelling music video sequence by matching visuals to audio intelligently.

OVERALL CREATIVE BRIEF:
- Music Vibe: "{music_description}"
- Target Duration: Approximately {duration:.1f} seconds.

DETAILED AUDIO ANALYSIS:
- Tempo: {bpm} BPM. This suggests the rhythm for your cuts.
- Energy Profile: {audio_analysis.summarize_energy()} Match the visual intensity to these energy levels.

VISUAL CLIP LIBRARY ({len(clips)} clips available):
{visual_summary}

CONTENT-AWARE EDITING RULES:
1.  Match Motion to Energy: Use 'high' motion clips for 'high' energy sections. Use 'static' or 'low' motion clips for 'low' energy sections.
2.  Match Mood with Light: Use high brightness clips for upbeat, happy sections. Use low brightness clips for moody, atmospheric parts.
3.  Pacing with Complexity: Use high complexity (busy) clips for crescendos or chaotic moments. Use low complexity (simple) clips for calm, focused moments.
4.  Prioritize People: If the vibe suggests vocals or emotion, prioritize using clips with faces.
5.  Synchronize to BPM: Make your cut durations rhythmically consistent with the {bpm} BPM tempo. Durations should ideally be multiples or fractions of the beat duration.
6.  Vary Your Shots: Create a dynamic experience by using a good variety of the available clips.
7.  Total Duration: The sum of all clip durations MUST be very close to the target duration of {duration:.1f} seconds.

INSTRUCTIONS:
Generate a JSON array of edit decisions based on the analysis and rules above. The 'clipIndex' must be a valid 0-based index from the Visual Clip Library (an integer from 0 to {len(clips) - 1}). The 'description' should explain your creative choice, linking the visual to the music's properties.
"""


class SequencingOracle(ABC):
    """Proposes a raw cut list. Implementations may return anything."""

    @abstractmethod
    async def propose(
        self,
        music_description: str,
        audio_analysis: AudioAnalysis,
        clips: Sequence[ClipDescriptor],
    ) -> Any:
        """Return raw, untrusted edit entries (decoded JSON)."""
        pass


class GeminiSequencingOracle(SequencingOracle):
    """Asks Gemini for a cut list, sending the prompt plus clip thumbnails."""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self._api_key = api_key
        self._model_name = model_name or settings.get_gemini_model_name()
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        """Create the client on first use so a missing key only fails the call."""
        if self._client is None:
            api_key = self._api_key or settings.gemini_api_key
            if not api_key:
                raise SequenceGenerationError(
                    "GEMINI_API_KEY environment variable not set. Please configure your API key."
                )
            self._client = genai.Client(api_key=api_key)
        return self._client

    def _thumbnail_parts(self, clips: Sequence[ClipDescriptor]) -> List[types.Part]:
        parts = []
        for clip in clips:
            if not clip.thumbnail:
                continue
            try:
                data = base64.b64decode(clip.thumbnail, validate=True)
            except (binascii.Error, ValueError):
                logger.warning(f"Skipping unreadable thumbnail for {clip.name}")
                continue
            parts.append(types.Part.from_bytes(data=data, mime_type="image/jpeg"))
        return parts

    async def propose(
        self,
        music_description: str,
        audio_analysis: AudioAnalysis,
        clips: Sequence[ClipDescriptor],
    ) -> Any:
        client = self._get_client()
        prompt = build_sequence_prompt(music_description, audio_analysis, clips)
        contents = [prompt, *self._thumbnail_parts(clips)]
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=EDIT_DECISION_SCHEMA,
            max_output_tokens=settings.oracle_max_output_tokens,
            thinking_config=types.ThinkingConfig(thinking_budget=settings.oracle_thinking_budget),
        )

        log_update(logger, f"Asking Gemini to sequence {len(clips)} clips...")
        try:
            response = await asyncio.get_running_loop().run_in_executor(
                None,
                lambda: client.models.generate_content(
                    model=self._model_name,
                    contents=contents,
                    config=config,
                ),
            )
        except Exception as e:
            logger.error(f"Gemini API call failed: {e}")
            if "SAFETY" in str(e):
                raise SequenceGenerationError(
                    "The request was blocked due to safety policies. "
                    "Please try different clips or a different description."
                ) from e
            raise SequenceGenerationError(
                "The AI was unable to create a video sequence. This could be due to a temporary "
                "network issue or an internal error. Please try again."
            ) from e

        return parse_oracle_response(response.text or "")


async def generate_edit_decision_list(
    oracle: SequencingOracle,
    music_description: str,
    audio_analysis: AudioAnalysis,
    clips: Sequence[ClipDescriptor],
) -> EditDecisionList:
    """Ask the oracle for a cut list and validate it.

    Args:
        oracle: Any sequencing oracle (Gemini, a mock, a replay)
        music_description: Mood/genre text for the track
        audio_analysis: Analysis of the track
        clips: Ordered clip set the decisions index into

    Returns:
        Validated EditDecisionList

    Raises:
        ValueError: If no clips are given
        SequenceGenerationError: If the oracle output is unusable
    """
    if not clips:
        raise ValueError("At least one clip is required to generate a sequence")

    log_start(logger, f"Generating edit decisions for {len(clips)} clips")
    raw = await oracle.propose(music_description, audio_analysis, clips)
    edl = validate_edit_decisions(raw, len(clips))
    log_complete(
        logger,
        f"Edit decision list ready - {len(edl)} cuts, {edl.total_duration:.1f}s "
        f"(track {audio_analysis.duration:.1f}s)"
    )
    return edl


async def describe_music(
    audio: Union[str, Path],
    api_key: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> str:
    """Get a one-sentence mood/genre/tempo description of a track from Gemini.

    Raises:
        SequenceGenerationError: If Gemini is unavailable or returns nothing
    """
    api_key = api_key or settings.gemini_api_key
    if not api_key:
        raise SequenceGenerationError(
            "GEMINI_API_KEY environment variable not set. Please configure your API key."
        )

    path = Path(audio)
    mime_type = mime_type or mimetypes.guess_type(path.name)[0] or "audio/mpeg"
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"Cannot read audio file {path}: {e}")
        raise SequenceGenerationError(
            f"Could not read the audio file {path.name}. You can describe the vibe manually."
        ) from e

    client = genai.Client(api_key=api_key)
    try:
        response = await asyncio.get_running_loop().run_in_executor(
            None,
            lambda: client.models.generate_content(
                model=settings.get_gemini_model_name(),
                contents=[MUSIC_DESCRIPTION_PROMPT, types.Part.from_bytes(data=data, mime_type=mime_type)],
            ),
        )
    except Exception as e:
        logger.error(f"Error calling Gemini API for audio description: {e}")
        raise SequenceGenerationError(
            "Failed to get an AI description for the audio. The model might be temporarily "
            "unavailable or the file could not be processed. You can describe the vibe manually."
        ) from e

    text = (response.text or "").strip()
    if not text:
        raise SequenceGenerationError(
            "AI returned an empty description. Please try again or describe the music manually."
        )
    return text
