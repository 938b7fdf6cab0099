"""Global settings loaded from environment variables via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path.home() / ".xmarks"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="XMARKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    data_dir: str = str(DATA_DIR)
    database_url: str = f"sqlite:///{DATA_DIR / 'db.sqlite'}"
    log_dir: str = str(DATA_DIR / "logs")
    # External tools
    bird_path: str = "/opt/homebrew/bin/bird"
    claude_path: str = Field(default="", validation_alias=AliasChoices("XMARKS_CLAUDE_PATH", "CLAUDE_PATH"))
    process_timeout: float | None = None  # None = wait for the tool to exit on its own
