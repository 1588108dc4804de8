"""Abstract record store interface for Music Video Maker."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.clip import ClipDescriptor
from ..models.edit_decision import GeneratedVideo


class RecordStore(ABC):
    """Get/put-by-id store for clip descriptors and generated-video history.

    Records are plain data; the store only persists and returns them.
    """

    @abstractmethod
    async def put_clip(self, clip: ClipDescriptor) -> str:
        """Store a clip descriptor, replacing any record with the same id.

        Returns:
            The clip id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_clip(self, clip_id: str) -> Optional[ClipDescriptor]:
        """Fetch a clip descriptor, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_clips(self) -> List[ClipDescriptor]:
        """All stored clips, oldest first."""
        pass

    @abstractmethod
    async def delete_clip(self, clip_id: str) -> bool:
        """Delete a clip record.

        Returns:
            True if it was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def put_history(self, video: GeneratedVideo) -> str:
        """Store a generated-video record.

        Returns:
            The record id
        """
        pass

    @abstractmethod
    async def get_history(self, video_id: str) -> Optional[GeneratedVideo]:
        """Fetch a generated-video record, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_history(self) -> List[GeneratedVideo]:
        """All generated-video records, newest first."""
        pass

    @abstractmethod
    async def delete_history(self, video_id: str) -> bool:
        """Delete a generated-video record."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass
