"""Shared utility functions for interview media."""

import math

_MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "video/webm": "webm",
    "audio/mp4": "m4a",
    "video/mp4": "mp4",
    "audio/ogg": "ogg",
    "audio/wav": "wav",
}


def base_mime_type(mime_type: str) -> str:
    """Strip codec parameters: ``audio/webm;codecs=opus`` -> ``audio/webm``."""
    return mime_type.split(";", 1)[0].strip().lower()


def extension_for_mime(mime_type: str) -> str:
    """File extension used when storing a blob of the given MIME type."""
    return _MIME_EXTENSIONS.get(base_mime_type(mime_type), "webm")


def format_time(seconds: float) -> str:
    """Format a position as ``MM:SS`` for display."""
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins:02d}:{secs:02d}"


def grade_metric(value: float) -> str:
    """Bucket an analysis percentage into good / fair / poor."""
    if value >= 80:
        return "good"
    if value >= 60:
        return "fair"
    return "poor"
