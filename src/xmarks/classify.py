"""Topic discovery and bookmark classification via the reasoning CLI.

Two mutually exclusive long-running operations share the
``classification_state`` singleton:

* discovery samples the archive and replaces the whole category taxonomy;
* classification assigns every unclassified post to exactly one category,
  in sequential batches, falling back to an "Uncategorized" bucket.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, TypeVar

import sqlalchemy as sa
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from xmarks.categories import (
    assign_categories,
    claim_classification,
    create_category,
    get_categories,
    get_category_by_name,
    replace_categories,
    update_classification_state,
)
from xmarks.config import ClassificationConfig
from xmarks.db import Post, now_iso
from xmarks.errors import InsufficientTaxonomyError, ParseError
from xmarks.models import CategoryRecord, ClassificationStateUpdate
from xmarks.prompts import build_classification_prompt, build_discovery_prompt, build_posts_xml
from xmarks.statuses import ClassificationStatus

DISCOVERY_STEPS = 3
FALLBACK_DESCRIPTION = "Fallback category when no confident match exists."

M = TypeVar("M", bound=BaseModel)


class Reasoner(Protocol):
    def run_reasoning_json(self, prompt: str) -> Any: ...


# -- Response shapes -----------------------------------------------------------


class DiscoveredCategory(BaseModel):
    name: str | None = ""
    description: str | None = ""
    emoji: str | None = None


class DiscoveryResponse(BaseModel):
    categories: list[DiscoveredCategory]


class Assignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    post_id: str | None = Field(default=None, alias="tweetId")
    category_name: str | None = Field(default=None, alias="categoryName")


class ClassificationResponse(BaseModel):
    assignments: list[Assignment]


def _validate(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Unexpected reasoning response shape for {model.__name__}: {exc.error_count()} errors") from exc


# -- Helpers -------------------------------------------------------------------


def normalize_category_name(name: str) -> str:
    return name.strip().lower()


def chunk(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def clean_categories(
    categories: Sequence[DiscoveredCategory],
    *,
    min_categories: int,
    max_categories: int,
) -> list[DiscoveredCategory]:
    """Trim, drop blanks, dedupe case-insensitively (first wins), enforce bounds."""
    cleaned: dict[str, DiscoveredCategory] = {}
    for category in categories:
        name = (category.name or "").strip()
        description = (category.description or "").strip()
        if not name or not description:
            continue
        key = normalize_category_name(name)
        if key in cleaned:
            continue
        emoji = (category.emoji or "").strip() or None
        cleaned[key] = DiscoveredCategory(name=name, description=description, emoji=emoji)

    if len(cleaned) < min_categories:
        raise InsufficientTaxonomyError(len(cleaned), min_categories, max_categories)

    return list(cleaned.values())[:max_categories]


def get_sample_posts(engine: sa.engine.Engine, sample_size: int) -> list[sa.Row]:
    """Oldest, middle, and newest ``sample_size`` posts by creation time, deduplicated."""
    columns = (Post.id, Post.text, Post.author_handle, Post.created_at)
    with engine.connect() as conn:
        total = conn.execute(sa.select(sa.func.count()).select_from(Post)).scalar_one()
        middle_offset = max((total - sample_size) // 2, 0)

        oldest = conn.execute(
            sa.select(*columns).order_by(Post.created_at.asc()).limit(sample_size)
        ).fetchall()
        middle = conn.execute(
            sa.select(*columns).order_by(Post.created_at.asc()).limit(sample_size).offset(middle_offset)
        ).fetchall()
        newest = conn.execute(
            sa.select(*columns).order_by(Post.created_at.desc()).limit(sample_size)
        ).fetchall()

    merged: dict[str, sa.Row] = {}
    for row in [*oldest, *middle, *newest]:
        merged.setdefault(row.id, row)
    return list(merged.values())


def _set_state(engine: sa.engine.Engine, **fields: Any) -> None:
    update_classification_state(engine, ClassificationStateUpdate(**fields))


def _fallback_category_id(engine: sa.engine.Engine, name_to_id: dict[str, int], fallback_name: str) -> int:
    """Id of the fallback category, created on first use and cached in ``name_to_id``."""
    key = normalize_category_name(fallback_name)
    if key in name_to_id:
        return name_to_id[key]
    category = get_category_by_name(engine, fallback_name)
    if category is None:
        category = create_category(engine, fallback_name, FALLBACK_DESCRIPTION)
    name_to_id[key] = category.id
    return category.id


# -- Discovery -----------------------------------------------------------------


def begin_discovery(engine: sa.engine.Engine) -> None:
    """Claim the classification state for discovery (ConflictError if busy)."""
    claim_classification(
        engine,
        ClassificationStatus.DISCOVERING,
        operation="discovery",
        phase="sampling",
        progress_total=DISCOVERY_STEPS,
    )


def run_discovery(
    engine: sa.engine.Engine,
    reasoner: Reasoner,
    config: ClassificationConfig,
    log: structlog.stdlib.BoundLogger,
) -> list[CategoryRecord]:
    """Body of topic discovery. The caller must already hold the claim."""
    log.info("discover.starting")
    try:
        samples = get_sample_posts(engine, config.sample_size)
        log.info("discover.sampled", samples=len(samples))

        _set_state(engine, phase="prompting", progress_current=1)
        prompt = build_discovery_prompt(
            ((row.author_handle, row.text) for row in samples),
            min_categories=config.min_categories,
            max_categories=config.max_categories,
        )
        response = _validate(DiscoveryResponse, reasoner.run_reasoning_json(prompt))
        categories = clean_categories(
            response.categories,
            min_categories=config.min_categories,
            max_categories=config.max_categories,
        )

        _set_state(engine, phase="saving", progress_current=2)
        created = replace_categories(engine, [(c.name, c.description, c.emoji) for c in categories])

        _set_state(
            engine,
            status=ClassificationStatus.IDLE,
            phase=None,
            progress_current=0,
            progress_total=0,
            completed_at=now_iso(),
        )
    except Exception as exc:
        log.exception("discover.failed")
        _set_state(engine, status=ClassificationStatus.ERROR, error_message=str(exc))
        raise

    log.info("discover.complete", categories=[c.name for c in created])
    return created


def discover_topics(
    engine: sa.engine.Engine,
    reasoner: Reasoner,
    config: ClassificationConfig,
    log: structlog.stdlib.BoundLogger,
) -> list[CategoryRecord]:
    """Replace the category taxonomy with one proposed from a sample of posts."""
    begin_discovery(engine)
    return run_discovery(engine, reasoner, config, log)


# -- Classification ------------------------------------------------------------


def begin_classification(engine: sa.engine.Engine) -> None:
    """Claim the classification state for a classification pass (ConflictError if busy)."""
    claim_classification(
        engine,
        ClassificationStatus.CLASSIFYING,
        operation="classification",
        phase="loading",
        progress_total=0,
    )


def _classify_batch(
    engine: sa.engine.Engine,
    reasoner: Reasoner,
    batch: Sequence[sa.Row],
    name_to_id: dict[str, int],
    config: ClassificationConfig,
    log: structlog.stdlib.BoundLogger,
) -> dict[str, int]:
    """Ask for one batch and return post id → category id for every post in it."""
    batch_ids = {row.id for row in batch}
    prompt = build_classification_prompt(
        get_categories(engine),
        build_posts_xml((row.id, row.author_handle, row.text) for row in batch),
    )
    response = _validate(ClassificationResponse, reasoner.run_reasoning_json(prompt))

    assignments: dict[str, int] = {}
    ignored = 0
    for item in response.assignments:
        if item.post_id not in batch_ids:
            ignored += 1
            continue
        category_id = name_to_id.get(normalize_category_name(item.category_name or ""))
        if category_id is None:
            category_id = _fallback_category_id(engine, name_to_id, config.fallback_category)
        assignments[item.post_id] = category_id

    omitted = [row.id for row in batch if row.id not in assignments]
    if omitted:
        fallback_id = _fallback_category_id(engine, name_to_id, config.fallback_category)
        for post_id in omitted:
            assignments[post_id] = fallback_id

    if ignored or omitted:
        log.warning("classify.batch_mismatch", ignored_ids=ignored, omitted_posts=len(omitted))
    return assignments


def run_classification(
    engine: sa.engine.Engine,
    reasoner: Reasoner,
    config: ClassificationConfig,
    log: structlog.stdlib.BoundLogger,
) -> int:
    """Body of a classification pass. The caller must already hold the claim.

    Returns the number of posts classified. Batches commit one by one, so a
    failure keeps the work already done.
    """
    log.info("classify.starting")
    classified = 0
    try:
        name_to_id = {normalize_category_name(c.name): c.id for c in get_categories(engine)}

        with engine.connect() as conn:
            unclassified = conn.execute(
                sa.select(Post.id, Post.text, Post.author_handle)
                .where(Post.category_id.is_(None))
                .order_by(Post.created_at.asc())
            ).fetchall()

        batches = chunk(unclassified, config.batch_size)
        _set_state(engine, phase="assigning", progress_total=len(batches))
        log.info("classify.loaded", posts=len(unclassified), batches=len(batches), categories=len(name_to_id))

        for index, batch in enumerate(batches, start=1):
            assignments = _classify_batch(engine, reasoner, batch, name_to_id, config, log)
            assign_categories(engine, assignments)
            classified += len(assignments)
            _set_state(engine, progress_current=index)
            log.info("classify.batch_complete", batch=index, batches=len(batches), assigned=len(assignments))

        _set_state(engine, status=ClassificationStatus.IDLE, phase=None, completed_at=now_iso())
    except Exception as exc:
        log.exception("classify.failed", classified=classified)
        _set_state(engine, status=ClassificationStatus.ERROR, error_message=str(exc))
        raise

    log.info("classify.complete", classified=classified)
    return classified


def classify_bookmarks(
    engine: sa.engine.Engine,
    reasoner: Reasoner,
    config: ClassificationConfig,
    log: structlog.stdlib.BoundLogger,
) -> int:
    """Assign every unclassified post to a category."""
    begin_classification(engine)
    return run_classification(engine, reasoner, config, log)
