"""External reasoning adapter for the ``claude`` CLI plus JSON extraction helpers."""

from __future__ import annotations

import json
import os
import re
import shutil
from pathlib import Path
from typing import Any

import structlog

from xmarks.errors import ProcessError, ReasoningParseError, ToolNotFoundError
from xmarks.process import ProcessRunner, SubprocessRunner
from xmarks.settings import Settings

logger = structlog.get_logger(__name__)

TOOL_NAME = "claude"

_FENCE_OPEN_RE = re.compile(r"```(?:json)?[ \t]*\n?")
_FENCE = "```"
_JSON_SPAN_RE = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")


def candidate_paths() -> list[Path]:
    """Well-known install locations, checked before PATH."""
    return [
        Path("/opt/homebrew/bin") / TOOL_NAME,
        Path("/usr/local/bin") / TOOL_NAME,
        Path.home() / ".local" / "bin" / TOOL_NAME,
    ]


def find_reasoning_binary(override: str | None = None) -> str:
    """Locate the reasoning tool: explicit override, known paths, then PATH."""
    if override and Path(override).exists():
        return override

    for candidate in candidate_paths():
        if candidate.exists():
            return str(candidate)

    found = shutil.which(TOOL_NAME)
    if found:
        return found

    raise ToolNotFoundError("Claude CLI not found. Install it with: npm install -g @anthropic-ai/claude-code")


def extract_json(text: str) -> Any:
    """Pull a JSON value out of free-form model output.

    Tries, in order: a fenced block (closing fences scanned from the last one
    backwards), the first ``{...}``/``[...]`` span, then the whole text.
    """
    opener = _FENCE_OPEN_RE.search(text)
    if opener:
        body = text[opener.end():]
        closings = [m.start() for m in re.finditer(re.escape(_FENCE), body)]
        for pos in reversed(closings):
            try:
                return json.loads(body[:pos].strip())
            except json.JSONDecodeError:
                continue

    match = _JSON_SPAN_RE.search(text)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            pass

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    raise ReasoningParseError(text)


class ReasoningClient:
    """Run prompts through the reasoning CLI (``claude -p <prompt>``)."""

    def __init__(self, binary_override: str | None = None, runner: ProcessRunner | None = None) -> None:
        self.binary_override = binary_override or None
        self.runner = runner or SubprocessRunner()

    @classmethod
    def from_settings(cls, settings: Settings) -> ReasoningClient:
        return cls(settings.claude_path, SubprocessRunner(timeout=settings.process_timeout))

    def run_reasoning(self, prompt: str) -> str:
        binary = find_reasoning_binary(self.binary_override)
        # Drop CLAUDECODE so a nested invocation is not treated as recursive
        env = {k: v for k, v in os.environ.items() if k != "CLAUDECODE"}

        logger.debug("reasoning.run", binary=binary, prompt_chars=len(prompt))
        result = self.runner.run([binary, "-p", prompt], env=env)
        if result.exit_code != 0:
            raise ProcessError(TOOL_NAME, result.exit_code, result.stderr)
        return result.stdout.strip()

    def run_reasoning_json(self, prompt: str) -> Any:
        return extract_json(self.run_reasoning(prompt))
