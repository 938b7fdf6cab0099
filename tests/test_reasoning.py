"""Tests for the reasoning CLI adapter and JSON extraction."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from xmarks.errors import ProcessError, ReasoningParseError, ToolNotFoundError
from xmarks.process import ProcessResult
from xmarks.reasoning import ReasoningClient, extract_json, find_reasoning_binary


class TestExtractJson:
    def test_bare_object(self):
        assert extract_json('{"categories": []}') == {"categories": []}

    def test_fenced_block_with_surrounding_prose(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nLet me know if you need more.'
        assert extract_json(text) == {"a": 1}

    def test_fence_without_language_tag(self):
        assert extract_json('```\n[1, 2, 3]\n```') == [1, 2, 3]

    def test_later_fence_in_prose_falls_back_to_earlier_closing(self):
        text = 'Result:\n```json\n{"a": 1}\n```\nNote: wrap code in ``` blocks.'
        assert extract_json(text) == {"a": 1}

    def test_span_inside_prose(self):
        text = 'Sure! {"assignments": [{"tweetId": "1", "categoryName": "AI"}]} Hope that helps.'
        assert extract_json(text) == {"assignments": [{"tweetId": "1", "categoryName": "AI"}]}

    def test_whole_text_scalar(self):
        assert extract_json("  42  ") == 42

    def test_no_json(self):
        with pytest.raises(ReasoningParseError) as exc_info:
            extract_json("I could not decide on any categories.")
        assert exc_info.value.raw_excerpt == "I could not decide on any categories."

    def test_excerpt_is_truncated(self):
        with pytest.raises(ReasoningParseError) as exc_info:
            extract_json("x" * 500)
        assert exc_info.value.raw_excerpt == "x" * 200


class TestFindReasoningBinary:
    def test_existing_override(self, tmp_path: Path):
        binary = tmp_path / "claude"
        binary.write_text("")
        assert find_reasoning_binary(str(binary)) == str(binary)

    def test_known_location(self, tmp_path: Path):
        binary = tmp_path / "claude"
        binary.write_text("")
        with patch("xmarks.reasoning.candidate_paths", return_value=[tmp_path / "missing", binary]):
            assert find_reasoning_binary(str(tmp_path / "nope")) == str(binary)

    def test_falls_back_to_path(self):
        with (
            patch("xmarks.reasoning.candidate_paths", return_value=[]),
            patch("xmarks.reasoning.shutil.which", return_value="/somewhere/claude"),
        ):
            assert find_reasoning_binary() == "/somewhere/claude"

    def test_not_found(self):
        with (
            patch("xmarks.reasoning.candidate_paths", return_value=[]),
            patch("xmarks.reasoning.shutil.which", return_value=None),
            pytest.raises(ToolNotFoundError),
        ):
            find_reasoning_binary()


class TestReasoningClient:
    @pytest.fixture
    def binary(self, tmp_path: Path) -> str:
        path = tmp_path / "claude"
        path.write_text("")
        return str(path)

    def test_runs_prompt_without_nested_session_marker(self, binary: str):
        runner = MagicMock()
        runner.run.return_value = ProcessResult(stdout="  answer \n", stderr="", exit_code=0)
        client = ReasoningClient(binary, runner)

        with patch.dict(os.environ, {"CLAUDECODE": "1", "HOME_MARKER": "kept"}):
            assert client.run_reasoning("classify these") == "answer"

        args, kwargs = runner.run.call_args
        assert args[0] == [binary, "-p", "classify these"]
        assert "CLAUDECODE" not in kwargs["env"]
        assert kwargs["env"]["HOME_MARKER"] == "kept"

    def test_non_zero_exit(self, binary: str):
        runner = MagicMock()
        runner.run.return_value = ProcessResult(stdout="", stderr="overloaded", exit_code=1)

        with pytest.raises(ProcessError) as exc_info:
            ReasoningClient(binary, runner).run_reasoning("p")

        assert exc_info.value.tool == "claude"
        assert exc_info.value.stderr == "overloaded"

    def test_run_reasoning_json(self, binary: str):
        runner = MagicMock()
        runner.run.return_value = ProcessResult(stdout='```json\n{"ok": true}\n```', stderr="", exit_code=0)

        assert ReasoningClient(binary, runner).run_reasoning_json("p") == {"ok": True}

    def test_missing_tool(self):
        runner = MagicMock()
        with (
            patch("xmarks.reasoning.candidate_paths", return_value=[]),
            patch("xmarks.reasoning.shutil.which", return_value=None),
            pytest.raises(ToolNotFoundError),
        ):
            ReasoningClient(None, runner).run_reasoning("p")
        runner.run.assert_not_called()
