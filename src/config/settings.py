# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for engine tuning (lookback window, digest regime,
HTTP behaviour, cache TTL) and for logging setup.
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

    # === Association ===
    lookback_window: int = 10
    digest_matching: Literal["lenient", "strict"] = "lenient"

    # === Fetching ===
    fetch_chunk_size: int = 65536
    http_timeout_s: float | None = None
    follow_redirects: bool = True

    # === Cache ===
    cache_ttl_seconds: float | None = None

    # === Batch discovery ===
    definition_globs: str = "*.rb"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("lookback_window")
    @classmethod
    def validate_lookback_window(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("lookback_window must be >= 0")
        return v

    @field_validator("fetch_chunk_size")
    @classmethod
    def validate_fetch_chunk_size(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("fetch_chunk_size must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_ttl_seconds is not None and self.cache_ttl_seconds <= 0:
            errors.append("CACHE_TTL_SECONDS must be positive when set")

        if self.http_timeout_s is not None and self.http_timeout_s <= 0:
            errors.append("HTTP_TIMEOUT_S must be positive when set")

        if not self.definition_globs_list:
            errors.append("DEFINITION_GLOBS must name at least one pattern")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def definition_globs_list(self) -> list[str]:
        """Parse comma-separated definition file globs."""
        return [g.strip() for g in self.definition_globs.split(",") if g.strip()]

    @property
    def strict_digests(self) -> bool:
        return self.digest_matching == "strict"


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
