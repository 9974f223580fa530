"""
Media module - Capture, recording, playback and live analysis.
"""

from interview_media.services.media.analysis import AnalysisEmitter, synthesize_sample
from interview_media.services.media.capture import CaptureController, build_constraints
from interview_media.services.media.platform import (
    BaseMediaPlatform,
    BaseMediaRecorder,
    BaseMediaSink,
    BaseMediaStream,
    BaseMediaTrack,
    BasePreviewSurface,
    BaseSpeechRecognizer,
)
from interview_media.services.media.playback import PlaybackController
from interview_media.services.media.recorder import RecorderStateMachine, negotiate_mime_type
from interview_media.services.media.resources import ObjectUrlRegistry, TimerRegistry

__all__ = [
    "AnalysisEmitter",
    "BaseMediaPlatform",
    "BaseMediaRecorder",
    "BaseMediaSink",
    "BaseMediaStream",
    "BaseMediaTrack",
    "BasePreviewSurface",
    "BaseSpeechRecognizer",
    "CaptureController",
    "ObjectUrlRegistry",
    "PlaybackController",
    "RecorderStateMachine",
    "TimerRegistry",
    "build_constraints",
    "create_platform",
    "negotiate_mime_type",
    "synthesize_sample",
]


def create_platform(provider: str, **kwargs) -> BaseMediaPlatform:
    """
    Factory function to create a media platform by name.

    Args:
        provider: Platform name ("desktop" / "sounddevice").
        **kwargs: Platform-specific configuration.

    Returns:
        BaseMediaPlatform implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "desktop" or provider == "sounddevice":
        from .desktop import SoundDevicePlatform

        return SoundDevicePlatform(**kwargs)
    else:
        raise ValueError(f"Unknown media platform: {provider}")
