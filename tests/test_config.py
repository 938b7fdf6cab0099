"""Tests for YAML config loading and env-backed settings."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from xmarks.config import ClassificationConfig, load_config
from xmarks.settings import Settings


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path):
        cfg = load_config(str(tmp_path / "absent.yaml"))

        assert cfg.classification.sample_size == 50
        assert cfg.classification.batch_size == 300
        assert (cfg.classification.min_categories, cfg.classification.max_categories) == (10, 15)
        assert cfg.classification.fallback_category == "Uncategorized"

    def test_yaml_overrides(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "classification:\n"
            "  batch_size: 100\n"
            "  fallback_category: Other\n"
            "settings:\n"
            "  bird_path: /usr/local/bin/bird\n"
        )

        cfg = load_config(str(path))

        assert cfg.classification.batch_size == 100
        assert cfg.classification.sample_size == 50
        assert cfg.classification.fallback_category == "Other"
        assert cfg.settings.bird_path == "/usr/local/bin/bird"

    def test_env_applies_under_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("settings:\n  bird_path: /usr/local/bin/bird\n")

        with patch.dict(os.environ, {"XMARKS_DATABASE_URL": "sqlite:///" + str(tmp_path / "x.db")}):
            cfg = load_config(str(path))

        assert cfg.settings.database_url.endswith("x.db")
        assert cfg.settings.bird_path == "/usr/local/bin/bird"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)).classification.batch_size == 300

    def test_invalid_bounds(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("classification:\n  min_categories: 20\n  max_categories: 15\n")
        with pytest.raises(ValidationError):
            load_config(str(path))


class TestSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.bird_path == "/opt/homebrew/bin/bird"
        assert settings.claude_path == ""
        assert settings.process_timeout is None
        assert settings.database_url.startswith("sqlite:///")
        assert settings.database_url.endswith(".xmarks/db.sqlite")

    @pytest.mark.parametrize("var", ["XMARKS_CLAUDE_PATH", "CLAUDE_PATH"])
    def test_claude_path_env(self, var):
        with patch.dict(os.environ, {var: "/custom/claude"}):
            assert Settings(_env_file=None).claude_path == "/custom/claude"

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            ClassificationConfig(batch_size=0)
