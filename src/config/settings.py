# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings of the sync
engine: object store, fallback directory, dedup index, timeouts and logging.
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

    # === Object store ===
    object_store_backend: Literal["s3", "memory"] = "memory"
    object_store_bucket: str = ""
    object_store_prefix: str = "repair-sessions/"
    object_store_region: str = ""
    object_store_endpoint_url: str = ""
    object_store_public_base_url: str = ""

    # Remote key naming: digest-derived keys make uploads idempotent,
    # random keys tolerate harmless duplicates after an index loss.
    object_key_style: Literal["digest", "random"] = "digest"

    # === Put policy ===
    put_timeout_s: float = 10.0
    put_max_retries: int = 1
    put_retry_base_delay_s: float = 0.5

    # === Local fallback ===
    fallback_dir: Path = Path("~/.repairsync/fallback")

    # === Dedup index ===
    dedup_index_backend: Literal["memory", "json"] = "memory"
    dedup_index_capacity: int = 10_000
    dedup_index_path: Path = Path("~/.repairsync/dedup_index.json")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("put_timeout_s")
    @classmethod
    def validate_put_timeout(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("put_timeout_s must be > 0")
        return v

    @field_validator("put_max_retries")
    @classmethod
    def validate_put_max_retries(cls, v: int) -> int:  # noqa: N805
        """Retries hold the per-session guard open, so they stay small."""
        if not 0 <= v <= 3:
            raise ValueError("put_max_retries must be between 0 and 3")
        return v

    @field_validator("object_store_public_base_url")
    @classmethod
    def validate_public_base_url(cls, v: str) -> str:  # noqa: N805
        """Locations built from this URL must be recognised as remote."""
        if v and not v.startswith(("https://", "http://")):
            raise ValueError("object_store_public_base_url must start with http:// or https://")
        return v

    @field_validator("dedup_index_capacity")
    @classmethod
    def validate_dedup_capacity(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("dedup_index_capacity must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.object_store_backend == "s3" and not self.object_store_bucket:
            errors.append("OBJECT_STORE_BUCKET must be set when OBJECT_STORE_BACKEND=s3")

        if self.put_retry_base_delay_s < 0:
            errors.append("PUT_RETRY_BASE_DELAY_S must be >= 0")

        if self.put_retry_base_delay_s * (2 ** self.put_max_retries) > self.put_timeout_s * 4:
            errors.append(
                "PUT_RETRY_BASE_DELAY_S is too large for PUT_TIMEOUT_S and PUT_MAX_RETRIES"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def resolved_fallback_dir(self) -> Path:
        """Fallback directory with ~ expanded."""
        return self.fallback_dir.expanduser()

    @property
    def resolved_dedup_index_path(self) -> Path:
        """Dedup index path with ~ expanded."""
        return self.dedup_index_path.expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
