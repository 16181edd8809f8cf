"""Library configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Library settings, overridable through ``ANIMAP_`` environment variables."""

    # Paths
    DATA_DIR: Path = Path.cwd() / "animap_data"

    # Tiling
    TILE_PIXELS: int = 128  # Edge length of one display surface in pixels
    TICK_INTERVAL_MS: int = 50  # Sampling step, one host animation tick

    # Download
    DOWNLOAD_TIMEOUT: float = 30.0  # Seconds
    MAX_DOWNLOAD_BYTES: int = 32 * 1024 * 1024

    model_config = {"env_prefix": "ANIMAP_"}


settings = Settings()
