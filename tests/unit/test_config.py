"""Unit tests for settings loading."""

from interview_media.core.config import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.recorder_timeslice_ms == 100
        assert settings.acquire_retry_limit == 1
        assert settings.default_volume == 0.5
        assert settings.whisper_model == "tiny.en"
        assert settings.storage_bucket == "responses"
        assert settings.analysis_seed is None

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("RECORDER_TIMESLICE_MS", "250")
        monkeypatch.setenv("supabase_url", "https://example.supabase.co")
        monkeypatch.setenv("LOCAL_TRANSCRIPTION_ENABLED", "false")

        settings = Settings(_env_file=None)

        assert settings.recorder_timeslice_ms == 250
        assert settings.supabase_url == "https://example.supabase.co"
        assert settings.local_transcription_enabled is False

    def test_unknown_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("SOME_UNRELATED_SETTING", "1")
        Settings(_env_file=None)

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
