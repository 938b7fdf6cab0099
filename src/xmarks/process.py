"""Narrow external-process interface shared by the source and reasoning adapters."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    exit_code: int


class ProcessRunner(Protocol):
    """Anything that can run a command and capture its output."""

    def run(self, args: Sequence[str], *, env: Mapping[str, str] | None = None) -> ProcessResult:
        ...


class SubprocessRunner:
    """Run a short-lived child process and capture stdout/stderr as text.

    Raises ``FileNotFoundError`` if the executable does not exist and
    ``subprocess.TimeoutExpired`` if ``timeout`` is set and exceeded.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def run(self, args: Sequence[str], *, env: Mapping[str, str] | None = None) -> ProcessResult:
        completed = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            timeout=self.timeout,
            env=dict(env) if env is not None else None,
            check=False,
        )
        return ProcessResult(stdout=completed.stdout, stderr=completed.stderr, exit_code=completed.returncode)
