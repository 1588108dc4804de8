"""Unit tests for the record store."""

import json
from datetime import datetime, timedelta

import pytest

from conftest import make_clip
from music_video_maker.config import Settings
from music_video_maker.models import (
    AudioAnalysis,
    EditDecision,
    EditDecisionList,
    GeneratedVideo,
    VideoAnalysis,
)
from music_video_maker.storage import FilesystemRecordStore, StorageError, get_storage
from music_video_maker.storage.utils import is_audio_file, is_video_file, record_filename


def make_video(created_at=None, **kwargs):
    fields = dict(
        audio_path="/music/song.mp3",
        clip_ids=["a.mp4-1-2"],
        edit_decision_list=EditDecisionList(decisions=[
            EditDecision(clip_index=0, duration=3.0, description="Open on the crowd"),
        ]),
        music_description="Festival house",
        audio_analysis=AudioAnalysis(duration=3.0, bpm=124),
    )
    if created_at is not None:
        fields["created_at"] = created_at
    fields.update(kwargs)
    return GeneratedVideo(**fields)


class TestStorageUtils:
    """Test storage helper functions."""

    def test_record_filename_is_safe(self):
        name = record_filename("../../etc/passwd")
        assert "/" not in name
        assert not name.startswith(".")
        assert name.endswith(".json")

    def test_record_filename_distinguishes_ids(self):
        assert record_filename("a b.mp4-1-2") != record_filename("a_b.mp4-1-2")

    def test_file_types(self):
        assert is_video_file("clip.MOV")
        assert not is_video_file("song.mp3")
        assert is_audio_file("song.mp3")
        assert not is_audio_file("notes.txt")


class TestFilesystemRecordStore:
    """Test FilesystemRecordStore class."""

    @pytest.fixture
    def store(self, tmp_path):
        return FilesystemRecordStore(str(tmp_path))

    @pytest.mark.asyncio
    async def test_clip_round_trip(self, store):
        clip = make_clip("beach.mp4").with_analysis(
            VideoAnalysis(has_faces=True, avg_brightness=0.8, visual_complexity=0.1)
        )

        clip_id = await store.put_clip(clip)
        loaded = await store.get_clip(clip_id)

        assert loaded == clip
        assert loaded.analysis.has_faces is True

    @pytest.mark.asyncio
    async def test_put_replaces(self, store):
        clip = make_clip("beach.mp4")
        await store.put_clip(clip)
        analyzed = clip.with_analysis(VideoAnalysis(avg_brightness=0.2, visual_complexity=0.0))
        await store.put_clip(analyzed)

        assert (await store.get_clip(clip.id)).is_analyzed
        assert len(await store.list_clips()) == 1

    @pytest.mark.asyncio
    async def test_missing_records(self, store):
        assert await store.get_clip("nope") is None
        assert await store.get_history("nope") is None
        assert await store.delete_clip("nope") is False

    @pytest.mark.asyncio
    async def test_list_clips_oldest_first(self, store):
        now = datetime.utcnow()
        newer = make_clip("b.mp4").model_copy(update={"created_at": now})
        older = make_clip("a.mp4").model_copy(update={"created_at": now - timedelta(minutes=5)})
        await store.put_clip(newer)
        await store.put_clip(older)

        assert [c.name for c in await store.list_clips()] == ["a.mp4", "b.mp4"]

    @pytest.mark.asyncio
    async def test_delete_clip(self, store):
        clip = make_clip("a.mp4")
        await store.put_clip(clip)

        assert await store.delete_clip(clip.id) is True
        assert await store.get_clip(clip.id) is None

    @pytest.mark.asyncio
    async def test_history_newest_first(self, store):
        now = datetime.utcnow()
        first = make_video(created_at=now - timedelta(hours=1))
        second = make_video(created_at=now)
        await store.put_history(first)
        await store.put_history(second)

        history = await store.list_history()

        assert [v.id for v in history] == [second.id, first.id]
        assert history[0].edit_decision_list[0].description == "Open on the crowd"
        assert await store.delete_history(first.id) is True
        assert [v.id for v in await store.list_history()] == [second.id]

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, store, tmp_path):
        await store.put_history(make_video())
        assert list((tmp_path / "history").glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_corrupt_record(self, store, tmp_path):
        clip = make_clip("a.mp4")
        await store.put_clip(clip)
        path = tmp_path / "clips" / record_filename(clip.id)
        path.write_text(json.dumps({"name": "half a record"}), encoding="utf-8")

        with pytest.raises(StorageError):
            await store.get_clip(clip.id)


class TestGetStorage:
    """Test the storage factory."""

    def test_uses_configured_path(self, tmp_path):
        store = get_storage(Settings(storage_path=str(tmp_path / "data")))

        assert isinstance(store, FilesystemRecordStore)
        assert (tmp_path / "data" / "clips").is_dir()
        assert (tmp_path / "data" / "history").is_dir()
