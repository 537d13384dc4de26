"""Runtime configuration for podcast speaker enrichment."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class StorageBackend(str, Enum):
    """Supported blob storage backends."""
    S3 = "s3"
    LOCAL = "local"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Storage
    data_dir: Path = Field(
        default=Path("./data"),
        validation_alias="PODCAST_SPEAKERS_DATA_DIR"
    )
    storage_backend: StorageBackend = Field(
        default=StorageBackend.LOCAL,
        validation_alias="PODCAST_SPEAKERS_STORAGE"
    )
    s3_bucket: str | None = Field(
        default=None,
        validation_alias="S3_BUCKET_NAME"
    )
    s3_region: str = Field(
        default="us-east-1",
        validation_alias="AWS_REGION"
    )

    # Diarization / identification provider
    pyannote_api_key: str | None = Field(
        default=None,
        validation_alias="PYANNOTE_API_KEY"
    )
    pyannote_api_base: str = Field(
        default="https://api.pyannote.ai/v1",
        validation_alias="PYANNOTE_API_BASE"
    )
    # Used only when an identify response carries no explicit match flag
    pyannote_match_cutoff: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        validation_alias="PYANNOTE_MATCH_CUTOFF"
    )
    pyannote_poll_interval: float = Field(
        default=2.0,
        validation_alias="PYANNOTE_POLL_INTERVAL"
    )
    pyannote_identify_timeout: float = Field(
        default=120.0,
        validation_alias="PYANNOTE_IDENTIFY_TIMEOUT"
    )
    pyannote_max_speakers: int = Field(
        default=3,
        validation_alias="PYANNOTE_MAX_SPEAKERS"
    )
    pyannote_voiceprint_model: str = Field(
        default="precision-2",
        validation_alias="PYANNOTE_VOICEPRINT_MODEL"
    )
    pyannote_voiceprint_timeout: float = Field(
        default=300.0,
        validation_alias="PYANNOTE_VOICEPRINT_TIMEOUT"
    )

    # Processing settings
    identify_workers: int = Field(
        default=4,
        ge=1,
        validation_alias="PODCAST_SPEAKERS_IDENTIFY_WORKERS"
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="PODCAST_SPEAKERS_LOG_LEVEL"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
