"""Repair and validation of oracle-generated edit decision lists.

Everything coming from the sequencing oracle is untrusted. These
functions turn whatever it returned into an EditDecisionList that
rendering can rely on, or fail with SequenceGenerationError.
"""

import json
import logging
import math
from numbers import Integral, Real
from typing import Any, List, Optional

from ..errors import SequenceGenerationError
from ..models.edit_decision import EditDecision, EditDecisionList


logger = logging.getLogger(__name__)


def parse_oracle_response(text: str) -> Any:
    """Decode the oracle's JSON text as leniently as possible.

    Falls back to the outermost ``[...]`` or ``{...}`` span when the model
    wraps its JSON in prose or code fences.

    Returns:
        Decoded JSON value, or None if nothing could be decoded
    """
    text = (text or "").strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for open_char, close_char in (("[", "]"), ("{", "}")):
        start = text.find(open_char)
        end = text.rfind(close_char) + 1
        if start == -1 or end <= start:
            continue
        try:
            return json.loads(text[start:end])
        except json.JSONDecodeError:
            continue

    logger.warning("Oracle response is not JSON")
    logger.debug(f"Response text: {text}")
    return None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    # Integers are exact; isfinite would overflow on very large ones
    return isinstance(value, Integral) or math.isfinite(value)


def _as_duration(value: Any) -> Optional[float]:
    """Positive finite seconds, or None."""
    if not _is_number(value):
        return None
    try:
        seconds = float(value)
    except OverflowError:
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return seconds


def repair_entry(entry: Any, clip_count: int) -> Optional[EditDecision]:
    """Validate one raw entry and fold its clip index into range.

    Returns:
        The repaired decision, or None if the entry is structurally invalid
    """
    if not isinstance(entry, dict):
        return None

    clip_index = entry.get("clipIndex")
    duration = _as_duration(entry.get("duration"))
    description = entry.get("description")

    if not _is_number(clip_index):
        return None
    if duration is None:
        return None
    if not isinstance(description, str) or not description.strip():
        return None

    return EditDecision(
        clip_index=abs(int(clip_index)) % clip_count,
        duration=duration,
        description=description,
    )


def validate_edit_decisions(raw: Any, clip_count: int) -> EditDecisionList:
    """Turn raw oracle output into a well-formed edit decision list.

    A bare object is treated as a one-element list. Entries with a
    non-numeric clip index, a non-positive duration or an empty description
    are dropped. Surviving clip indices are repaired with
    ``abs(index) % clip_count``. Order is preserved and the list is never
    trimmed or padded to match the track length.

    Args:
        raw: Untrusted oracle output (decoded JSON)
        clip_count: Number of clips in the ordered clip set

    Returns:
        Non-empty EditDecisionList

    Raises:
        ValueError: If clip_count is less than 1
        SequenceGenerationError: If no entry survives validation
    """
    if clip_count < 1:
        raise ValueError("At least one clip is required to validate edit decisions")

    if isinstance(raw, dict):
        entries: List[Any] = [raw]
    elif isinstance(raw, list):
        entries = raw
    else:
        entries = []

    decisions = []
    for position, entry in enumerate(entries):
        decision = repair_entry(entry, clip_count)
        if decision is None:
            logger.debug(f"Discarding malformed edit entry {position}: {entry!r}")
            continue
        decisions.append(decision)

    if not decisions:
        raise SequenceGenerationError(
            "The AI failed to generate a valid video sequence. "
            "Please try again with different clips or a clearer description."
        )

    dropped = len(entries) - len(decisions)
    if dropped:
        logger.warning(f"Dropped {dropped} malformed edit decision(s) out of {len(entries)}")

    return EditDecisionList(decisions=decisions)
