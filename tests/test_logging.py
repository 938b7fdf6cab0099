"""Tests for structlog setup."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog

from xmarks.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


def _lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestSetupLogging:
    def test_writes_json_lines_per_command(self, tmp_path: Path):
        log = setup_logging(str(tmp_path / "logs"), "sync")

        log.info("sync.complete", synced=3)

        entry = _lines(tmp_path / "logs" / "sync.log")[-1]
        assert entry["event"] == "sync.complete"
        assert entry["synced"] == 3
        assert entry["level"] == "info"
        assert entry["run"] == "sync"

    def test_stdlib_records_reach_the_file(self, tmp_path: Path):
        setup_logging(str(tmp_path), "classify")

        logging.getLogger("xmarks.test").warning("plain %s", "record")

        entry = _lines(tmp_path / "classify.log")[-1]
        assert entry["event"] == "plain record"
        assert entry["level"] == "warning"

    def test_exceptions_are_structured(self, tmp_path: Path):
        log = setup_logging(str(tmp_path), "discover")

        try:
            raise ValueError("bad taxonomy")
        except ValueError:
            log.exception("discover.failed")

        entry = _lines(tmp_path / "discover.log")[-1]
        assert entry["event"] == "discover.failed"
        assert entry["exception"][0]["exc_type"] == "ValueError"

    def test_repeated_setup_replaces_handlers(self, tmp_path: Path):
        setup_logging(str(tmp_path), "sync")
        setup_logging(str(tmp_path), "sync")

        assert len(logging.getLogger().handlers) == 2

    def test_console_level(self, tmp_path: Path):
        setup_logging(str(tmp_path), "sync", verbose=True)
        console = [h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)]
        assert console[0].level == logging.DEBUG
        assert logging.getLogger("alembic").level == logging.WARNING
