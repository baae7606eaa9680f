"""
Configuration management for heic-drop.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Watcher Configuration
    watch_dir: Path = Path("~/Downloads")
    enabled: bool = True

    # Converter Configuration
    converter_path: Path = Path("/usr/bin/sips")
    retry_limit: int = 0  # extra attempts for a failed file, 0 = never retry

    # Logging Configuration
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="HEIC_DROP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_watch_dir(self) -> Path:
        """Return the watched directory with ``~`` expanded."""
        return self.watch_dir.expanduser()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
