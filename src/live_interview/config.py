"""
Application configuration using pydantic-settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Remote interview service
    api_base_url: str = Field(
        default="http://127.0.0.1:5001",
        description="Base URL of the interview service",
    )
    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for HTTP requests",
    )
    audio_path: str = Field(
        default="/audio",
        description="Path of the synthesized response audio",
    )
    upload_filename: str = Field(
        default="recording.webm",
        description="Filename attached to the uploaded clip",
    )
    clip_mime_type: str = Field(
        default="video/webm",
        description="Container type tag of recorded clips",
    )
    check_filename: str = Field(
        default="interUpload0.mp4",
        description="Server-side artifact name finalized by the end-of-turn check",
    )
    results_route: str = Field(
        default="/inter",
        description="Route handed to the navigator after a successful check",
    )

    # Turn timing
    poll_interval_s: float = Field(
        default=3.0,
        description="Seconds between ready-signal polls",
    )
    elapsed_tick_s: float = Field(
        default=1.0,
        description="Seconds between elapsed-time ticks while recording",
    )
    playback_timeout_s: float = Field(
        default=120.0,
        description="Upper bound on a single response playback",
    )

    # Capture devices
    ffmpeg_bin: str = Field(
        default="ffmpeg",
        description="Path/name of the ffmpeg binary used for recording",
    )
    video_device: str = Field(
        default="/dev/video0",
        description="Camera device passed to ffmpeg",
    )
    video_format: str = Field(
        default="v4l2",
        description="ffmpeg input format for the camera",
    )
    audio_device: str | None = Field(
        default=None,
        description="Microphone device name (system default when unset)",
    )
    audio_format: str = Field(
        default="pulse",
        description="ffmpeg input format for the microphone",
    )

    # Application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
