"""Unit tests for the sequencing oracle and EDL generation."""

import base64

import pytest
from unittest.mock import Mock, patch

from conftest import make_clip
from music_video_maker.config import settings
from music_video_maker.errors import SequenceGenerationError
from music_video_maker.models import (
    AudioAnalysis,
    ContentCategory,
    EnergyIntensity,
    EnergySegment,
    MotionLevel,
    VideoAnalysis,
)
from music_video_maker.tools.sequencing_oracle import (
    GeminiSequencingOracle,
    SequencingOracle,
    build_sequence_prompt,
    describe_music,
    generate_edit_decision_list,
)


class ReplayOracle(SequencingOracle):
    """Returns a canned response."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    async def propose(self, music_description, audio_analysis, clips):
        self.calls.append((music_description, audio_analysis, list(clips)))
        return self.response


@pytest.fixture
def audio_analysis():
    return AudioAnalysis(
        duration=8.0,
        bpm=128,
        energy_segments=[
            EnergySegment(start_time=0.0, end_time=4.0, intensity=EnergyIntensity.LOW),
            EnergySegment(start_time=4.0, end_time=8.0, intensity=EnergyIntensity.HIGH),
        ],
    )


@pytest.fixture
def clips():
    analysis = VideoAnalysis(
        has_faces=True,
        dominant_category=ContentCategory.PEOPLE,
        motion_level=MotionLevel.HIGH,
        avg_brightness=0.7,
        visual_complexity=0.3,
    )
    return [
        make_clip("dance.mp4").model_copy(update={
            "analysis": analysis,
            "thumbnail": base64.b64encode(b"\xff\xd8fake-jpeg").decode("ascii"),
        }),
        make_clip("street.mp4").model_copy(update={"thumbnail": "not base64!!"}),
        make_clip("sunset.mp4"),
    ]


class TestBuildSequencePrompt:
    """Test prompt construction."""

    def test_prompt_content(self, audio_analysis, clips):
        prompt = build_sequence_prompt("Dreamy synth-pop", audio_analysis, clips)

        assert 'Music Vibe: "Dreamy synth-pop"' in prompt
        assert "Tempo: 128 BPM" in prompt
        assert "From 4.0s to 8.0s the energy is high." in prompt
        assert "Clip 0 (dance.mp4): [Content: people] [Faces: Yes] [Motion: high]" in prompt
        assert "Clip 1 (street.mp4): [Analysis not available]" in prompt
        assert "an integer from 0 to 2" in prompt
        assert "8.0 seconds" in prompt


class TestGenerateEditDecisionList:
    """Test generate_edit_decision_list with replayed oracle output."""

    @pytest.mark.asyncio
    async def test_repairs_oracle_output(self, audio_analysis, clips):
        oracle = ReplayOracle([
            {"clipIndex": 4, "duration": 4.0, "description": "Slow open"},
            {"clipIndex": 0, "duration": -1, "description": "Broken"},
            {"clipIndex": 0, "duration": 4.0, "description": "Dancers on the drop"},
        ])

        edl = await generate_edit_decision_list(oracle, "Synth-pop", audio_analysis, clips)

        assert [d.clip_index for d in edl] == [1, 0]
        assert edl.total_duration == pytest.approx(8.0)
        assert oracle.calls[0][0] == "Synth-pop"

    @pytest.mark.asyncio
    async def test_unusable_output(self, audio_analysis, clips):
        with pytest.raises(SequenceGenerationError):
            await generate_edit_decision_list(ReplayOracle(None), "Synth-pop", audio_analysis, clips)

    @pytest.mark.asyncio
    async def test_requires_clips(self, audio_analysis):
        oracle = ReplayOracle([])
        with pytest.raises(ValueError):
            await generate_edit_decision_list(oracle, "Synth-pop", audio_analysis, [])
        assert oracle.calls == []


class TestGeminiSequencingOracle:
    """Test GeminiSequencingOracle with a mocked client."""

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_propose(self, mock_genai, audio_analysis, clips):
        mock_client = mock_genai.Client.return_value
        mock_client.models.generate_content.return_value = Mock(
            text='```json\n[{"clipIndex": 5, "duration": 2.0, "description": "Kick"}]\n```'
        )
        oracle = GeminiSequencingOracle(api_key="test-key", model_name="gemini-test")

        edl = await generate_edit_decision_list(oracle, "Upbeat", audio_analysis, clips)

        assert edl[0].clip_index == 2
        mock_genai.Client.assert_called_once_with(api_key="test-key")
        kwargs = mock_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        # Prompt plus the one decodable thumbnail
        assert len(kwargs["contents"]) == 2
        assert "Upbeat" in kwargs["contents"][0]
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_client_created_once(self, mock_genai, audio_analysis, clips):
        mock_genai.Client.return_value.models.generate_content.return_value = Mock(text="[]")
        oracle = GeminiSequencingOracle(api_key="test-key")

        assert await oracle.propose("Upbeat", audio_analysis, clips) == []
        assert await oracle.propose("Upbeat", audio_analysis, clips) == []
        assert mock_genai.Client.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_api_key(self, audio_analysis, clips):
        with patch.object(settings, "gemini_api_key", None):
            oracle = GeminiSequencingOracle()
            with pytest.raises(SequenceGenerationError, match="GEMINI_API_KEY"):
                await oracle.propose("Upbeat", audio_analysis, clips)

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_safety_block(self, mock_genai, audio_analysis, clips):
        mock_genai.Client.return_value.models.generate_content.side_effect = Exception(
            "Response was blocked: finish_reason=SAFETY"
        )
        oracle = GeminiSequencingOracle(api_key="test-key")

        with pytest.raises(SequenceGenerationError, match="safety policies"):
            await oracle.propose("Upbeat", audio_analysis, clips)

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_api_error(self, mock_genai, audio_analysis, clips):
        mock_genai.Client.return_value.models.generate_content.side_effect = ConnectionError("reset")
        oracle = GeminiSequencingOracle(api_key="test-key")

        with pytest.raises(SequenceGenerationError, match="unable to create"):
            await oracle.propose("Upbeat", audio_analysis, clips)


class TestDescribeMusic:
    """Test describe_music function."""

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_describe(self, mock_genai, tmp_path):
        song = tmp_path / "song.mp3"
        song.write_bytes(b"ID3fake")
        mock_client = mock_genai.Client.return_value
        mock_client.models.generate_content.return_value = Mock(text="  Dreamy synth-pop with a slow build.\n")

        description = await describe_music(song, api_key="test-key")

        assert description == "Dreamy synth-pop with a slow build."
        contents = mock_client.models.generate_content.call_args.kwargs["contents"]
        assert contents[1].inline_data.mime_type == "audio/mpeg"
        assert contents[1].inline_data.data == b"ID3fake"

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_empty_description(self, mock_genai, tmp_path):
        song = tmp_path / "song.wav"
        song.write_bytes(b"RIFF")
        mock_genai.Client.return_value.models.generate_content.return_value = Mock(text="")

        with pytest.raises(SequenceGenerationError, match="empty description"):
            await describe_music(song, api_key="test-key")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, tmp_path):
        with patch.object(settings, "gemini_api_key", None):
            with pytest.raises(SequenceGenerationError):
                await describe_music(tmp_path / "song.mp3")

    @pytest.mark.asyncio
    @patch('music_video_maker.tools.sequencing_oracle.genai')
    async def test_missing_audio_file(self, mock_genai, tmp_path):
        with pytest.raises(SequenceGenerationError, match="missing.mp3"):
            await describe_music(tmp_path / "missing.mp3", api_key="test-key")

        mock_genai.Client.assert_not_called()
