"""
Configuration management using Pydantic Settings.
Loads all environment variables with validation.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses .env file in development, environment variables in production.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API Keys
    groq_api_key: Optional[str] = Field(
        default=None,
        description="Groq API key for transcription and sentiment analysis"
    )
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible base URL used for Groq requests"
    )
    transcription_model: str = Field(
        default="whisper-large-v3",
        description="Speech-to-text model name"
    )
    sentiment_model: str = Field(
        default="llama-3.1-8b-instant",
        description="Chat model used for per-answer sentiment analysis"
    )
    google_cloud_api_key: Optional[str] = Field(
        default=None,
        description="Google Cloud API key for text-to-speech"
    )
    tts_voice_gender: str = Field(
        default="FEMALE",
        description="SSML voice gender requested from Google TTS"
    )
    http_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="Total timeout for outbound HTTP requests"
    )

    # Voice activity detection
    silence_threshold: float = Field(
        default=0.04,
        gt=0.0,
        lt=1.0,
        description="Normalized level above which a sample counts as speech"
    )
    min_speech_duration_ms: int = Field(
        default=300,
        ge=0,
        le=5000,
        description="Contiguous speech required before the user counts as speaking"
    )
    silence_duration_ms: int = Field(
        default=1500,
        ge=1,
        le=10000,
        description="Silence after speech before the utterance is considered finished"
    )
    no_speech_timeout_ms: int = Field(
        default=5000,
        ge=1,
        le=60000,
        description="Time without any speech before the skip prompt is offered"
    )
    playback_settle_ms: int = Field(
        default=500,
        ge=0,
        le=5000,
        description="Pause after agent playback before the microphone opens"
    )

    # Host bridge
    playback_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="Maximum wait for the client to report playback complete"
    )
    capture_start_timeout_s: float = Field(
        default=10.0,
        gt=0,
        description="Maximum wait for the client to confirm microphone access"
    )
    default_language: str = Field(
        default="en",
        description="Language used when the client does not pick one"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Environment: development, staging, or production"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    # Server Settings
    host: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="Server port"
    )

    # CORS
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Frontend URL for CORS"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
