"""
Configuration for ADB File Explorer.
Values come from ADB_EXPLORER_* environment variables or a .env file.
"""

import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "adb-file-explorer"


class Settings(BaseSettings):
    """Runtime settings for the session core and the adb adapter."""

    model_config = SettingsConfigDict(
        env_prefix="ADB_EXPLORER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # adb binary; empty means resolve from PATH or the per-user install
    adb_path: Optional[str] = None
    auto_download_adb: bool = True
    command_timeout: float = 15.0

    # Where video previews are materialized
    preview_dir: str = Field(default_factory=tempfile.gettempdir)
    read_chunk_size: int = 64 * 1024

    archive_compression_level: int = 6
    batch_detail_limit: int = 3

    # Upper bound for one remote-bound request; None waits indefinitely
    operation_timeout: Optional[float] = None

    log_level: str = "INFO"
    log_to_file: bool = False

    @field_validator("archive_compression_level")
    @classmethod
    def _check_compression_level(cls, value: int) -> int:
        if not 0 <= value <= 9:
            raise ValueError("archive_compression_level must be between 0 and 9")
        return value

    @field_validator("batch_detail_limit", "read_chunk_size")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    @field_validator("operation_timeout")
    @classmethod
    def _check_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            return None
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
