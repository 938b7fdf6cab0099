"""Sync, discovery, and classification jobs.

Note: ``from __future__ import annotations`` is omitted because Dagster's
``@op`` decorator inspects context-parameter type hints at decoration time and
cannot resolve deferred (stringified) annotations.
"""

import dagster as dg
from dagster import OpExecutionContext

from xmarks.classify import classify_bookmarks, discover_topics
from xmarks.config import load_config
from xmarks.logging import setup_logging
from xmarks.reasoning import ReasoningClient
from xmarks.source import BirdClient
from xmarks.sync import sync_bookmarks


@dg.op(required_resource_keys={"database"})
def sync_bookmarks_op(context: OpExecutionContext) -> int:
    """Import the full bookmark set from bird."""
    cfg = load_config()
    engine = context.resources.database.get_engine()
    log = setup_logging(cfg.settings.log_dir, "sync")

    result = sync_bookmarks(engine, BirdClient.from_settings(cfg.settings), log)
    context.log.info(f"Synced {result.synced} bookmarks")
    return result.synced


@dg.op(required_resource_keys={"database"})
def discover_topics_op(context: OpExecutionContext) -> int:
    """Replace the topic taxonomy."""
    cfg = load_config()
    engine = context.resources.database.get_engine()
    log = setup_logging(cfg.settings.log_dir, "discover")

    created = discover_topics(engine, ReasoningClient.from_settings(cfg.settings), cfg.classification, log)
    context.log.info(f"Discovered {len(created)} topics")
    return len(created)


@dg.op(required_resource_keys={"database"})
def classify_bookmarks_op(context: OpExecutionContext) -> int:
    """Assign every unclassified bookmark to a topic."""
    cfg = load_config()
    engine = context.resources.database.get_engine()
    log = setup_logging(cfg.settings.log_dir, "classify")

    classified = classify_bookmarks(engine, ReasoningClient.from_settings(cfg.settings), cfg.classification, log)
    context.log.info(f"Classified {classified} bookmarks")
    return classified


@dg.job
def sync_job() -> None:
    sync_bookmarks_op()


@dg.job
def discover_job() -> None:
    discover_topics_op()


@dg.job
def classify_job() -> None:
    classify_bookmarks_op()
