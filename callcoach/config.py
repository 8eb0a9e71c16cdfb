"""
Configuration management with Pydantic Settings
Loads from .env file with validation and defaults
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with validation"""

    # OpenAI
    openai_api_key: Optional[str] = Field(None, description="OpenAI API Key")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL"
    )
    openai_model: str = Field(default="gpt-4o-mini", description="Chat model used for call analysis")
    analysis_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    transcription_model: str = Field(default="whisper-1", description="Speech-to-text model")
    transcription_language: str = Field(default="pt", description="Spoken language of the calls")
    request_timeout_seconds: float = Field(default=300.0, description="Provider request timeout")
    max_retries: int = Field(default=3, ge=0, description="Provider request retries")

    # Redis cache
    redis_url: str = Field(
        default="redis://127.0.0.1:6379/0",
        description="Redis connection URL"
    )
    cache_enabled: bool = Field(default=True, description="Cache transcriptions and analyses")
    transcription_cache_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        description="Transcription cache TTL in seconds"
    )
    analysis_cache_ttl_seconds: int = Field(
        default=30 * 24 * 60 * 60,
        description="Analysis cache TTL in seconds"
    )

    # Uploads and compression
    max_upload_size_bytes: int = Field(default=25 * 1024 * 1024, description="Whisper upload limit")
    compression_quality: float = Field(default=0.7, ge=0.0, le=1.0)
    compression_bitrate_kbps: int = Field(default=64, gt=0)
    compression_format: Literal["webm", "mp3", "ogg"] = Field(default="webm")
    capture_timeout_factor: float = Field(
        default=1.2,
        gt=1.0,
        description="Re-encode deadline as a multiple of the audio duration"
    )
    ffmpeg_binary: Optional[str] = Field(None, description="ffmpeg executable override")

    # Background jobs
    queue_max_workers: int = Field(default=2, ge=1, description="Max async workers")
    queue_max_size: int = Field(default=100, ge=1, description="Max queue size")
    queue_max_attempts: int = Field(default=3, ge=1, description="Attempts per job")
    queue_backoff_seconds: float = Field(default=2.0, ge=0.0, description="Initial retry delay")
    job_retention_hours: float = Field(default=24.0, ge=0.0, description="How long finished jobs stay pollable")
    job_cleanup_interval_seconds: float = Field(default=3600.0, gt=0.0, description="Finished job cleanup period")

    # Environment
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        if v not in ["development", "production", "testing"]:
            raise ValueError("Environment must be development, production, or testing")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("Invalid log level")
        return v

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    model_config = {
        "extra": "ignore",  # Ignore extra fields from .env
        "env_file": ".env",
        "case_sensitive": False
    }


@lru_cache()
def get_settings() -> Settings:
    """Get application settings"""
    return Settings()
