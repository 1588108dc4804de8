#!/usr/bin/env python3
"""Command-line interface for planning a music video edit."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from music_video_maker.config import settings
from music_video_maker.errors import MediaDecodeError, SequenceGenerationError
from music_video_maker.models import GeneratedVideo
from music_video_maker.storage import get_storage
from music_video_maker.storage.utils import is_video_file
from music_video_maker.tools.audio_analysis import AudioFeatureExtractor
from music_video_maker.tools.frame_source import describe_clip
from music_video_maker.tools.inference import AnalysisContext
from music_video_maker.tools.sequencing_oracle import (
    GeminiSequencingOracle,
    describe_music,
    generate_edit_decision_list,
)
from music_video_maker.tools.task_coordinator import AnalysisTaskCoordinator
from music_video_maker.tools.visual_analysis import VideoFeatureExtractor
from music_video_maker.utils.logging_config import configure_logging, get_logger
from music_video_maker.utils.simple_logger import setup_logging


logger = get_logger("plan_music_video")


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Analyze a music track and video clips, then plan a beat-synced edit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Let Gemini describe the music
  %(prog)s song.mp3 clip1.mp4 clip2.mov clip3.mp4

  # Describe the vibe yourself and save the plan
  %(prog)s song.mp3 clips/*.mp4 -p "Dreamy synth-pop, slow build" -o plan.json
        """
    )

    parser.add_argument('music', help='Path to the music track')
    parser.add_argument('clips', nargs='+', help='Video clips to choose from')
    parser.add_argument(
        '-p', '--prompt',
        help='Description of the music vibe (asks Gemini if omitted)'
    )
    parser.add_argument('-o', '--output', help='Write the edit decision list to this JSON file')
    parser.add_argument(
        '--no-history',
        action='store_true',
        help='Do not save the result to the history store'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser.parse_args()


async def run(args) -> int:
    if not settings.validate_api_keys():
        logger.error("GEMINI_API_KEY is not set. Add it to your environment or .env file.")
        return 1

    clip_paths = [path for path in args.clips if is_video_file(path)]
    skipped = sorted(set(args.clips) - set(clip_paths))
    for path in skipped:
        logger.warning(f"Skipping non-video file: {path}")
    if not clip_paths:
        logger.error("No video clips given")
        return 1

    try:
        audio_analysis = await AudioFeatureExtractor().analyze_audio(args.music)
    except MediaDecodeError as e:
        logger.error(str(e))
        return 1

    clips = []
    for path in clip_paths:
        try:
            clips.append(await describe_clip(path))
        except MediaDecodeError as e:
            logger.error(f"Skipping {path}: {e}")
    if not clips:
        logger.error("None of the clips could be read")
        return 1

    context = AnalysisContext()
    coordinator = AnalysisTaskCoordinator(VideoFeatureExtractor(context))
    clips, errors = await coordinator.analyze_clips(clips)
    for clip_id, error in errors.items():
        logger.warning(f"{clip_id}: {error}")

    try:
        music_description = args.prompt or await describe_music(args.music)
        edl = await generate_edit_decision_list(
            GeminiSequencingOracle(), music_description, audio_analysis, clips
        )
    except SequenceGenerationError as e:
        logger.error(str(e))
        return 1

    for decision in edl:
        clip = clips[decision.clip_index]
        print(f"{decision.duration:6.2f}s  {clip.name:30s}  {decision.description}")
    print(f"Total: {edl.total_duration:.1f}s for a {audio_analysis.duration:.1f}s track")

    if args.output:
        Path(args.output).write_text(
            json.dumps(edl.model_dump(mode="json"), indent=2), encoding="utf-8"
        )
        logger.info(f"Edit decision list written to {args.output}")

    if not args.no_history:
        store = get_storage()
        for clip in clips:
            await store.put_clip(clip)
        record = GeneratedVideo(
            audio_path=str(Path(args.music).resolve()),
            clip_ids=[clip.id for clip in clips],
            edit_decision_list=edl,
            music_description=music_description,
            audio_analysis=audio_analysis,
            thumbnail=clips[0].thumbnail or None,
        )
        await store.put_history(record)
        logger.info(f"Saved history record {record.id}")

    return 0


def main():
    args = parse_arguments()
    if args.verbose:
        configure_logging(level="DEBUG")
    else:
        setup_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
