"""Central settings (pydantic-settings).

Values come from NOTEVAULT_* environment variables or a .env file in the
working directory.
"""
from __future__ import annotations
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NOTEVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Vault layout
    vault_dir: Path = Path.home() / "Documents" / "NoteVault"
    trash_dirname: str = "_deleted"

    # Lifecycle
    retention_days: int = 30

    # Legacy key-value store (read once by the migration)
    legacy_db_path: Path = Path.home() / ".notevault" / "legacy.db"

    # Editor-side write coalescing, in seconds
    autosave_delay: float = 0.5

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def reset_settings() -> None:
    """For tests: forget the cached settings so new env vars are picked up."""
    get_settings.cache_clear()
