"""Collaborator-facing facade: start long-running work, poll state rows.

``start_*`` calls claim the relevant state row synchronously (so a conflict
is reported immediately), then run the body on a worker thread and return
at once. Outcomes are observed by polling ``get_*_status``; failures in the
background are logged and persisted to the state row, never raised back to
the caller that started them.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Callable
from typing import Any

import sqlalchemy as sa
import structlog

from xmarks.categories import get_categories_with_counts, get_classification_state
from xmarks.classify import Reasoner, begin_classification, begin_discovery, run_classification, run_discovery
from xmarks.config import AppConfig
from xmarks.models import CategoryWithCount, ClassificationStateRecord, PostRecord, SyncStateRecord
from xmarks.reasoning import ReasoningClient
from xmarks.source import BirdClient
from xmarks.sync import claim_sync, get_sync_state, get_thread, run_sync


class BookmarkService:
    def __init__(
        self,
        engine: sa.engine.Engine,
        config: AppConfig,
        log: structlog.stdlib.BoundLogger,
        *,
        source: BirdClient | None = None,
        reasoner: Reasoner | None = None,
        max_workers: int = 2,
    ) -> None:
        self.engine = engine
        self.config = config
        self.log = log
        self.source = source or BirdClient.from_settings(config.settings)
        self.reasoner = reasoner or ReasoningClient.from_settings(config.settings)
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="xmarks")

    # -- Start (fire-and-forget) -----------------------------------------------

    def start_sync(self) -> concurrent.futures.Future:
        claim_sync(self.engine)
        return self._submit("sync", run_sync, self.engine, self.source, self.log)

    def start_discovery(self) -> concurrent.futures.Future:
        begin_discovery(self.engine)
        return self._submit("discover", run_discovery, self.engine, self.reasoner, self.config.classification, self.log)

    def start_classification(self) -> concurrent.futures.Future:
        begin_classification(self.engine)
        return self._submit("classify", run_classification, self.engine, self.reasoner, self.config.classification, self.log)

    # -- Observe ----------------------------------------------------------------

    def get_sync_status(self) -> SyncStateRecord:
        return get_sync_state(self.engine)

    def get_classification_status(self) -> ClassificationStateRecord:
        return get_classification_state(self.engine)

    def get_topics(self) -> list[CategoryWithCount]:
        return get_categories_with_counts(self.engine)

    def get_thread(self, post_id: str) -> list[PostRecord]:
        return get_thread(self.engine, self.source, post_id, self.log)

    def check_auth(self) -> bool:
        return self.source.check_auth()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _submit(self, name: str, fn: Callable[..., Any], *args: Any) -> concurrent.futures.Future:
        self.log.info(f"{name}.started")
        future = self._executor.submit(fn, *args)
        future.add_done_callback(lambda f: self._on_done(name, f))
        return future

    def _on_done(self, name: str, future: concurrent.futures.Future) -> None:
        exc = future.exception()
        if exc is not None:
            # Already persisted to the state row by the orchestrator
            self.log.error(f"{name}.background_failed", error=str(exc))
