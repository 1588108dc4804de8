"""Utility functions for storage operations."""

import hashlib
import re
from pathlib import Path

VIDEO_EXTENSIONS = {'.mp4', '.mov', '.webm', '.avi', '.mkv', '.m4v'}
AUDIO_EXTENSIONS = {'.mp3', '.wav', '.aac', '.ogg', '.flac', '.m4a'}

# Filename sanitization regex
UNSAFE_CHARS = re.compile(r'[^\w\-.]')
MULTIPLE_DOTS = re.compile(r'\.{2,}')
LEADING_DOTS = re.compile(r'^\.+')


def record_filename(record_id: str) -> str:
    """Map a record id to a safe, collision-free JSON file name.

    Args:
        record_id: Arbitrary record id (clip keys contain file names)

    Returns:
        File name of the form "<sanitized>-<hash>.json"
    """
    name = UNSAFE_CHARS.sub('_', record_id)
    name = MULTIPLE_DOTS.sub('_', name)
    name = LEADING_DOTS.sub('', name)[:150] or 'record'
    digest = hashlib.sha1(record_id.encode('utf-8')).hexdigest()[:10]
    return f"{name}-{digest}.json"


def is_video_file(file_path: str) -> bool:
    return Path(file_path).suffix.lower() in VIDEO_EXTENSIONS


def is_audio_file(file_path: str) -> bool:
    return Path(file_path).suffix.lower() in AUDIO_EXTENSIONS
