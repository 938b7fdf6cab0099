"""Error taxonomy for the sync and classification pipeline."""

from __future__ import annotations


class XmarksError(Exception):
    """Base error for xmarks."""


class AuthError(XmarksError):
    """Source credentials are missing or expired. Not retried automatically."""


class ProcessError(XmarksError):
    """External tool exited non-zero for a reason other than authentication."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"{tool} exited with code {exit_code}: {stderr.strip()}")


class ParseError(XmarksError):
    """Malformed or unexpectedly shaped output from an external tool."""


class ReasoningParseError(ParseError):
    """No parseable JSON in the reasoning tool output."""

    def __init__(self, raw_text: str) -> None:
        self.raw_excerpt = raw_text[:200]
        super().__init__(f"Could not extract JSON from reasoning output. First 200 chars: {self.raw_excerpt}")


class ToolNotFoundError(XmarksError):
    """Reasoning tool executable could not be located."""


class InsufficientTaxonomyError(XmarksError):
    """Discovery produced too few usable categories."""

    def __init__(self, count: int, minimum: int, maximum: int) -> None:
        self.count = count
        super().__init__(f"Reasoning tool returned too few categories ({count}); expected {minimum}-{maximum}.")


class ConflictError(XmarksError):
    """An operation of the same family is already running."""

    def __init__(self, operation: str, status: str | None = None) -> None:
        self.operation = operation
        self.status = status
        detail = f" (current status: {status})" if status else ""
        super().__init__(f"Cannot start {operation}: already running{detail}")
