"""Filesystem record store implementation."""

import logging
from pathlib import Path
from typing import List, Optional, Type, TypeVar

import aiofiles
import aiofiles.os
from pydantic import BaseModel, ValidationError

from ..models.clip import ClipDescriptor
from ..models.edit_decision import GeneratedVideo
from .interface import RecordStore, StorageError
from .utils import record_filename


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

CLIPS_DIR = "clips"
HISTORY_DIR = "history"


class FilesystemRecordStore(RecordStore):
    """Stores each record as a JSON file.

    Layout::

        <base_path>/clips/<clip id>.json
        <base_path>/history/<video id>.json
    """

    def __init__(self, base_path: str):
        """Initialize filesystem storage.

        Args:
            base_path: Base directory for all records
        """
        self.base_path = Path(base_path).resolve()
        self._ensure_directories()

    def _ensure_directories(self):
        for directory in (self.base_path / CLIPS_DIR, self.base_path / HISTORY_DIR):
            directory.mkdir(parents=True, exist_ok=True)

    def _record_path(self, collection: str, record_id: str) -> Path:
        return self.base_path / collection / record_filename(record_id)

    async def _write(self, collection: str, record_id: str, record: BaseModel) -> str:
        path = self._record_path(collection, record_id)
        temp_path = path.with_suffix(path.suffix + '.tmp')
        try:
            # Write to temporary file first (atomic operation)
            async with aiofiles.open(temp_path, 'w', encoding='utf-8') as f:
                await f.write(record.model_dump_json(indent=2))
            await aiofiles.os.rename(temp_path, path)
            logger.debug(f"Saved {collection} record {record_id}")
            return record_id
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to write {collection} record {record_id}: {e}") from e

    async def _read_file(self, path: Path, model: Type[RecordT]) -> RecordT:
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                content = await f.read()
            return model.model_validate_json(content)
        except (OSError, ValidationError) as e:
            raise StorageError(f"Failed to read record {path.name}: {e}") from e

    async def _read(self, collection: str, record_id: str, model: Type[RecordT]) -> Optional[RecordT]:
        path = self._record_path(collection, record_id)
        if not path.exists():
            return None
        return await self._read_file(path, model)

    async def _read_all(self, collection: str, model: Type[RecordT]) -> List[RecordT]:
        directory = self.base_path / collection
        return [await self._read_file(path, model) for path in sorted(directory.glob('*.json'))]

    async def _delete(self, collection: str, record_id: str) -> bool:
        path = self._record_path(collection, record_id)
        try:
            if not path.exists():
                return False
            await aiofiles.os.remove(path)
            return True
        except OSError as e:
            raise StorageError(f"Failed to delete {collection} record {record_id}: {e}") from e

    async def put_clip(self, clip: ClipDescriptor) -> str:
        return await self._write(CLIPS_DIR, clip.id, clip)

    async def get_clip(self, clip_id: str) -> Optional[ClipDescriptor]:
        return await self._read(CLIPS_DIR, clip_id, ClipDescriptor)

    async def list_clips(self) -> List[ClipDescriptor]:
        clips = await self._read_all(CLIPS_DIR, ClipDescriptor)
        return sorted(clips, key=lambda c: c.created_at)

    async def delete_clip(self, clip_id: str) -> bool:
        return await self._delete(CLIPS_DIR, clip_id)

    async def put_history(self, video: GeneratedVideo) -> str:
        return await self._write(HISTORY_DIR, video.id, video)

    async def get_history(self, video_id: str) -> Optional[GeneratedVideo]:
        return await self._read(HISTORY_DIR, video_id, GeneratedVideo)

    async def list_history(self) -> List[GeneratedVideo]:
        videos = await self._read_all(HISTORY_DIR, GeneratedVideo)
        return sorted(videos, key=lambda v: v.created_at, reverse=True)

    async def delete_history(self, video_id: str) -> bool:
        return await self._delete(HISTORY_DIR, video_id)
