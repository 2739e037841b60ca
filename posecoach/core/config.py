"""Core configuration and constants.

Uses environment variables for secrets and configuration. Follows PEP8 and Google style docstrings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal
import os

from pydantic import BaseModel


DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_SYSTEM_INSTRUCTION = (
    "You are an expert biomechanics and fitness coach. Analyze the provided image. "
    "Identify the exercise. Evaluate the form/posture. Provide a score from 0-100. "
    "List specific corrections if needed."
)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: App display name.
        environment: Runtime environment.
        api_host: Host for FastAPI server.
        api_port: Port for FastAPI server.
        log_level: Logging level string.
        api_key: Optional key required in ``X-API-Key`` for settings writes.
        camera_index: OpenCV device index used by the live tracker.
        vision_mock: Run the tracker with a synthetic camera and landmark source.
        gemini_api_key: Fallback Gemini key when none is stored in app settings.
        seed_mock_data: Populate the training gallery with mock records on startup.
    """

    app_name: str = os.getenv("APP_NAME", "PoseCoach AI")
    environment: Literal["dev", "prod", "test"] = os.getenv("ENVIRONMENT", "dev")  # type: ignore[assignment]

    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Security & CORS
    api_key: str | None = os.getenv("API_KEY")
    exposed_origins: list[str] = (
        os.getenv("EXPOSED_ORIGINS", "*").split(",") if os.getenv("EXPOSED_ORIGINS") else ["*"]
    )

    # Vision / live tracker
    camera_index: int = int(os.getenv("CAMERA_INDEX", "0"))
    vision_mock: bool = _flag("VISION_MOCK")
    tracker_jpeg_quality: int = int(os.getenv("TRACKER_JPEG_QUALITY", "70"))
    tracker_stream_interval: float = float(os.getenv("TRACKER_STREAM_INTERVAL", "0.05"))

    # Gemini
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_base_url: str = os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    gemini_timeout: float = float(os.getenv("GEMINI_TIMEOUT", "60"))
    default_model: str = os.getenv("GEMINI_MODEL", DEFAULT_MODEL)

    # Training gallery
    seed_mock_data: bool = _flag("SEED_MOCK_DATA", "1")
    mock_records: int = int(os.getenv("MOCK_RECORDS", "20"))


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
