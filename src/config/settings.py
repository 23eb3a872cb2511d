# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: where checkouts
live, how the source platform is reached, and how jobs and logs behave.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Repository acquisition ===
    local_storage_path: Path = Path("./tmp/projects")

    # === Source platform ===
    vercel_api_token: str = ""
    vercel_team_id: str = ""
    vercel_api_url: str = "https://api.vercel.com"
    vercel_timeout_s: float = 30.0

    # === Conversion ===
    commit_message: str = "Convert to @opennextjs/cloudflare"
    npm_executable: str = "npm"
    command_timeout_s: float | None = None

    # === Jobs ===
    status_poll_interval_s: float = 1.0
    job_store_backend: Literal["memory", "redis"] = "memory"
    job_redis_url: str = ""
    job_ttl_s: float | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("status_poll_interval_s")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("status_poll_interval_s must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.command_timeout_s is not None and self.command_timeout_s <= 0:
            errors.append("COMMAND_TIMEOUT_S must be positive when set")

        if self.job_ttl_s is not None and self.job_ttl_s <= 0:
            errors.append("JOB_TTL_S must be positive when set")

        if self.job_store_backend == "redis" and not self.job_redis_url:
            errors.append("JOB_STORE_BACKEND=redis requires JOB_REDIS_URL")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
