"""Application configuration."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings loaded from INKSHARE_* environment variables and .env files.

    Priority: environment variables > .env > defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="INKSHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    store_dir: str = "data/canvases"  # FileStore base directory, one JSON file per canvas

    # Identity of the local participant (strokes are tagged with it)
    author_id: str = "anonymous"

    # Geometry
    smoothing_steps: int = Field(default=10, ge=1)  # Catmull-Rom samples per window
    simplify_tolerance: float | None = Field(default=None, ge=0)  # None = keep all points

    # Logging
    log_json: bool = False  # JSON lines instead of human-readable output
    log_level: str = "INFO"
    log_file: str | None = None


settings = Settings()
