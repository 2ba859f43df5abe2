"""Core configuration for the gastiming harness."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GASTIMING_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_env: Literal["development", "production"] = "development"
    log_level: str = "ERROR"

    # ── Execution engine ─────────────────────────────────────────────────
    engine: str = "null"  # builtin name or "module:attribute"
    gas_limit: int | None = Field(default=None, ge=0)
    vm_global_version: int = 4

    # ── Sampling ─────────────────────────────────────────────────────────
    max_samples: int = Field(default=100_000, ge=1)
    min_samples: int = Field(default=20, ge=1)
    time_budget_seconds: float = Field(default=2.0, ge=0.0)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
