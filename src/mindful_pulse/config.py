"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DATA_DIR = _PROJECT_ROOT / "data"
_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_DATA_DIR / 'mindful_pulse.db'}"


class Settings(BaseSettings):
    """All runtime configuration for the collection core.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``MINDFUL_PULSE_`` namespace (stripped automatically by
    *pydantic-settings*).
    """

    model_config = SettingsConfigDict(
        env_prefix="MINDFUL_PULSE_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Persistence ───────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL
    settings_storage_key: str = "mindfullpulse-settings"

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Scheduler ─────────────────────────────────────────────
    scheduler_enabled: bool = True
    scheduler_interval_seconds: int = 300

    # ── Collection lifecycle ──────────────────────────────────
    collection_max_reconcile_attempts: int = 5  # 0 disables the bound
    collection_buffer_limit: int = 1_000  # samples held per channel until sync


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
