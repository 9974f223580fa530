#!/usr/bin/env python3
"""
Record a spoken interview answer from the microphone.

Records for a fixed number of seconds with the desktop audio backend,
prints the live delivery metrics, transcribes the answer locally and
writes it to a WAV file.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import soundfile as sf

from interview_media.core.config import get_settings
from interview_media.core.exceptions import InterviewMediaError
from interview_media.core.logging_utils import setup_logging
from interview_media.core.models import AnalysisSample, MediaMode
from interview_media.core.utils import format_time, grade_metric
from interview_media.services.media import create_platform
from interview_media.services.media.desktop import SoundDeviceSink
from interview_media.services.media.processor import AudioProcessor
from interview_media.services.transcription import create_transcription_adapter
from interview_media.services.workspace import MediaWorkspace


def print_sample(sample: AnalysisSample) -> None:
    print(
        f"  volume {sample.volume:5.1f} ({grade_metric(sample.volume)})"
        f"  pace {sample.pace:5.1f}  clarity {sample.clarity:5.1f}"
        f"  confidence {sample.confidence:5.1f}"
    )


def write_wav(path: Path, data: bytes) -> float:
    """Write a recorded WAV stream as a regular WAV file; returns its duration."""
    samples, sample_rate = AudioProcessor.decode_wav(data)
    sf.write(str(path), samples, sample_rate, subtype="PCM_16")
    return len(samples) / sample_rate


async def record(args: argparse.Namespace) -> int:
    settings = get_settings()
    platform = create_platform("desktop", device_name=args.device)
    adapter = None if args.no_transcribe else create_transcription_adapter(settings=settings)
    workspace = MediaWorkspace(
        MediaMode.audio,
        platform,
        SoundDeviceSink,
        transcriber=adapter,
        on_analysis=print_sample,
        settings=settings,
    )

    try:
        print(f"Recording for {format_time(args.seconds)} ...")
        await workspace.start_recording()
        await asyncio.sleep(args.seconds)
        blob = await workspace.stop_recording()

        duration = write_wav(args.output, blob.data)
        print(f"Saved {format_time(duration)} of audio to {args.output}")

        feedback = workspace.preview_feedback()
        print("Strengths:    " + ", ".join(feedback.strengths))
        print("Improvements: " + ", ".join(feedback.improvements))

        if adapter is not None:
            print("Transcribing ...")
            result = await workspace.wait_for_transcription()
            if result is not None:
                print(f"[{result.method}] {result.text}")
        return 0
    except InterviewMediaError as exc:
        print(f"Error: {exc.detail}", file=sys.stderr)
        return 1
    finally:
        await workspace.close()


def main():
    parser = argparse.ArgumentParser(
        description="Record and transcribe a spoken interview answer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Record a 30 second answer
  python scripts/record_response.py --seconds 30

  # Use a specific microphone and skip transcription
  python scripts/record_response.py --device "USB" --no-transcribe -o answer.wav
        """,
    )
    parser.add_argument("--seconds", type=float, default=15.0, help="Recording length")
    parser.add_argument(
        "-o", "--output", type=Path, default=Path("answer.wav"), help="WAV file to write"
    )
    parser.add_argument("--device", help="Substring of the input device name")
    parser.add_argument("--no-transcribe", action="store_true", help="Skip transcription")
    args = parser.parse_args()

    if args.seconds <= 0:
        parser.error("--seconds must be > 0")

    setup_logging()
    sys.exit(asyncio.run(record(args)))


if __name__ == "__main__":
    main()
