"""
Settings module for environment configuration using Pydantic.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, populate_by_name=True, extra="ignore"
    )

    # Photo persistence service
    photo_service_url: str = Field(
        default="http://localhost:8000", alias="PHOTO_SERVICE_URL"
    )
    photo_service_timeout: float = Field(default=30.0, alias="PHOTO_SERVICE_TIMEOUT")

    # Face detection
    face_detector: Literal["opencv", "gemini", "none"] = Field(
        default="opencv", alias="FACE_DETECTOR"
    )
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")

    # Preview compositing
    preview_worker_enabled: bool = Field(default=True, alias="PREVIEW_WORKER_ENABLED")
    preview_probe_timeout: float = Field(default=5.0, alias="PREVIEW_PROBE_TIMEOUT")

    # S3 image storage for the local photo service (memory when unset)
    s3_bucket_name: Optional[str] = Field(default=None, alias="S3_BUCKET_NAME")
    s3_region_name: str = Field(default="us-east-1", alias="S3_REGION_NAME")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create settings instance.

    Returns:
        Settings instance loaded from environment variables
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
