"""YAML config loading with env var overrides."""

from __future__ import annotations

from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from xmarks.settings import Settings


class ClassificationConfig(BaseModel):
    sample_size: int = Field(default=50, gt=0)
    batch_size: int = Field(default=300, gt=0)
    min_categories: int = Field(default=10, gt=0)
    max_categories: int = Field(default=15, gt=0)
    fallback_category: str = "Uncategorized"

    @model_validator(mode="after")
    def _check_bounds(self) -> ClassificationConfig:
        if self.min_categories > self.max_categories:
            raise ValueError("min_categories must not exceed max_categories")
        return self


class AppConfig(BaseModel):
    classification: ClassificationConfig = ClassificationConfig()
    settings: Settings = Field(default_factory=Settings)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load config from YAML file; settings fall back to env vars and .env."""
    load_dotenv()

    data: dict = {}
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    # Build Settings explicitly so env vars still apply underneath YAML overrides
    settings = Settings(**(data.pop("settings", None) or {}))
    return AppConfig(settings=settings, **data)
