"""External source adapter for the ``bird`` CLI for X bookmarks and threads."""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import ValidationError

from xmarks.errors import AuthError, ParseError, ProcessError
from xmarks.models import BookmarksPage, SourcePost
from xmarks.process import ProcessResult, ProcessRunner, SubprocessRunner
from xmarks.settings import Settings

logger = structlog.get_logger(__name__)

AUTH_EXPIRED_MESSAGE = "Safari cookies expired or missing. Please log in to X in Safari."
_MISSING_CREDENTIALS = "missing required credentials"


def _is_auth_failure(stderr: str) -> bool:
    lowered = stderr.lower()
    return "cookie" in lowered or _MISSING_CREDENTIALS in lowered


class BirdClient:
    """Fetch bookmarks and threads by shelling out to ``bird``.

    One short-lived process per call, no retries. Callers decide whether to
    try again.
    """

    def __init__(self, binary: str, runner: ProcessRunner | None = None) -> None:
        self.binary = binary
        self.runner = runner or SubprocessRunner()

    @classmethod
    def from_settings(cls, settings: Settings) -> BirdClient:
        return cls(settings.bird_path, SubprocessRunner(timeout=settings.process_timeout))

    def check_auth(self) -> bool:
        """True if ``bird whoami`` succeeds. Any failure counts as signed out."""
        try:
            result = self.runner.run([self.binary, "whoami"])
        except Exception:
            logger.warning("bird.whoami_failed", binary=self.binary, exc_info=True)
            return False
        if result.exit_code != 0:
            logger.info("bird.not_authenticated", exit_code=result.exit_code, stderr=result.stderr.strip()[:200])
            return False
        return True

    def fetch_bookmarks(self) -> BookmarksPage:
        """Fetch the full bookmark set."""
        result = self._run("bookmarks", "--all", "--json")
        data = self._decode(result, "bookmarks")
        if not isinstance(data, dict) or "tweets" not in data:
            raise ParseError("Invalid bookmarks JSON shape: expected an object with a 'tweets' list")
        try:
            page = BookmarksPage.model_validate(data)
        except ValidationError as exc:
            raise ParseError(f"Invalid bookmarks JSON shape: {exc.error_count()} validation errors") from exc
        logger.info("bird.bookmarks_fetched", count=len(page.posts), next_cursor=page.next_cursor)
        return page

    def fetch_thread(self, post_id: str) -> list[SourcePost]:
        """Fetch the reply thread around ``post_id``.

        Accepts either a bare JSON list or an object with a ``tweets`` list.
        """
        result = self._run("thread", post_id, "--json")
        data = self._decode(result, "thread")
        if isinstance(data, dict) and isinstance(data.get("tweets"), list):
            data = data["tweets"]
        if not isinstance(data, list):
            raise ParseError("Invalid thread JSON shape: expected a list or an object with a 'tweets' list")
        try:
            return [SourcePost.model_validate(item) for item in data]
        except ValidationError as exc:
            raise ParseError(f"Invalid thread JSON shape: {exc.error_count()} validation errors") from exc

    def _run(self, *args: str) -> ProcessResult:
        cmd = [self.binary, *args]
        logger.debug("bird.run", args=list(args))
        result = self.runner.run(cmd)
        if result.exit_code != 0:
            if _is_auth_failure(result.stderr):
                raise AuthError(AUTH_EXPIRED_MESSAGE)
            raise ProcessError("bird", result.exit_code, result.stderr)
        return result

    @staticmethod
    def _decode(result: ProcessResult, what: str) -> Any:
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Failed to parse {what} JSON") from exc
