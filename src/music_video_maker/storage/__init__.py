"""Storage module for Music Video Maker.

This module provides filesystem storage for clip descriptors and
generated-video history records.
"""

from typing import Optional

from ..config import Settings, settings as default_settings
from .interface import RecordStore, StorageError
from .filesystem import FilesystemRecordStore


def get_storage(config: Optional[Settings] = None) -> RecordStore:
    """Create the record store configured in settings."""
    config = config or default_settings
    return FilesystemRecordStore(config.storage_path)


__all__ = ["RecordStore", "StorageError", "FilesystemRecordStore", "get_storage"]
