"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Interview media settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        recorder_timeslice_ms: Interval at which the recording primitive
            delivers data chunks.
        acquire_retry_limit: How many times ``start()`` re-invokes itself
            after acquiring a stream before giving up.
        whisper_model: faster-whisper model used by the local pipeline.
        supabase_url: Base URL of the hosted storage / database project.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Capture ---
    audio_sample_rate: int = 48000
    video_width: int = 640
    video_height: int = 480

    # --- Recorder ---
    recorder_timeslice_ms: int = 100  # Small slices so data arrives before stop()
    recording_tick_seconds: float = 1.0
    acquire_retry_limit: int = 1
    acquire_settle_seconds: float = 0.5  # Pause between acquiring and re-invoking start()
    audio_bits_per_second: int = 128_000
    video_bits_per_second: int = 2_500_000

    # --- Playback ---
    playback_poll_seconds: float = 0.1
    playback_settle_seconds: float = 0.05  # Let the sink finish pausing before clearing busy
    default_volume: float = 0.5

    # --- Analysis ---
    analysis_interval_seconds: float = 1.0
    analysis_seed: int | None = None  # Fixed seed makes the jitter reproducible

    # --- Transcription ---
    local_transcription_enabled: bool = True
    whisper_model: str = "tiny.en"  # Model size: tiny.en, base.en, small.en, ...
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_language: str = "en"  # Empty = auto-detect
    fallback_recognition_lang: str = "en-US"
    fallback_timeout_seconds: float = 120.0

    # --- Storage ---
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "responses"
    upload_max_attempts: int = 3
    upload_timeout_seconds: float = 60.0

    # --- Application ---
    log_level: str = "INFO"  # Python logging level
    log_dir: str = ""  # Empty = console only


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
