"""Runtime configuration loading via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration sourced from ``RUNSTATS_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RUNSTATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    socket_enabled: bool = False
    socket_host: str = "127.0.0.1"
    socket_port: int = Field(default=4321, ge=0, le=65535)

    # 0 disables the periodic reporter.
    report_interval_seconds: int = Field(default=0, ge=0)
    report_include_host: bool = True

    w3c_strict_fields: bool = True
    w3c_log_dir: Path | None = Field(default=None)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return str(value).upper()

    @property
    def w3c_log_path(self) -> Path | None:
        """Return the W3C report file path, or ``None`` to log to stderr."""

        if self.w3c_log_dir is None:
            return None
        return self.w3c_log_dir / "stats.w3c.log"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    settings = Settings()
    if settings.w3c_log_dir is not None:
        settings.w3c_log_dir.mkdir(parents=True, exist_ok=True)
    return settings
