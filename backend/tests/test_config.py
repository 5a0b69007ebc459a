import pytest
from pydantic import ValidationError

from voice_assessment.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.silence_threshold == 0.04
    assert settings.min_speech_duration_ms == 300
    assert settings.silence_duration_ms == 1500
    assert settings.no_speech_timeout_ms == 5000
    assert settings.playback_settle_ms == 500
    assert settings.default_language == "en"
    assert settings.is_development


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SILENCE_DURATION_MS", "2000")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("ENVIRONMENT", "Production")
    monkeypatch.setenv("GROQ_API_KEY", "gsk_test")

    settings = Settings(_env_file=None)

    assert settings.silence_duration_ms == 2000
    assert settings.log_level == "DEBUG"
    assert settings.is_production
    assert settings.groq_api_key == "gsk_test"


def test_rejects_invalid_values():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="verbose")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, environment="qa")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, silence_threshold=1.5)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, silence_duration_ms=0)
