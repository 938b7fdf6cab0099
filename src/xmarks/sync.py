"""Bookmark sync: fetch from the source CLI, flatten quotes, idempotent upsert.

The ``sync_state`` singleton is written only from here.
"""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, Protocol

import sqlalchemy as sa
import structlog

from xmarks.db import STATE_ROW_ID, Post, SyncState, insert_ignore, now_iso
from xmarks.errors import ConflictError, ParseError
from xmarks.models import BookmarksPage, PostRecord, SourcePost, SyncResult, SyncStateRecord
from xmarks.statuses import CLAIMABLE_SYNC_STATUSES, SyncStatus

# bird emits the classic Twitter format: "Sun Feb 22 18:55:16 +0000 2026"
SOURCE_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"


class BookmarkSource(Protocol):
    def fetch_bookmarks(self) -> BookmarksPage: ...

    def fetch_thread(self, post_id: str) -> list[SourcePost]: ...


def parse_post_date(value: str | None) -> str:
    """Normalize a source timestamp to ISO 8601 UTC."""
    if not value:
        raise ParseError("Missing post date")
    try:
        parsed = datetime.strptime(value, SOURCE_DATE_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise ParseError(f"Invalid post date: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).isoformat()


def flatten_quoted_posts(posts: Iterable[SourcePost]) -> list[SourcePost]:
    """Breadth-first walk over the quote relation, first occurrence of an id wins."""
    queue = deque(posts)
    collected: list[SourcePost] = []
    seen: set[str] = set()

    while queue:
        post = queue.popleft()
        if post.id in seen:
            continue
        seen.add(post.id)
        collected.append(post)
        if post.quoted_tweet is not None:
            queue.append(post.quoted_tweet)

    return collected


def _mutable_columns(post: SourcePost, fetched_at: str) -> dict[str, Any]:
    """Columns refreshed on every sync. ``bookmarked_at`` must never appear here."""
    handle = post.handle
    in_reply_to = post.in_reply_to_status_id or None
    media = [m.model_dump(by_alias=True, exclude_none=True) for m in post.media or []]
    return dict(
        text=post.text or "",
        author_id=post.author_id or "",
        author_name=post.author.name if post.author else "",
        author_handle=handle,
        fetched_at=fetched_at,
        reply_count=post.reply_count or 0,
        retweet_count=post.retweet_count or 0,
        like_count=post.like_count or 0,
        in_reply_to_id=in_reply_to,
        conversation_id=post.conversation_id,
        is_thread=in_reply_to is not None,
        media_json=json.dumps(media),
        quoted_post_id=post.quoted_tweet.id if post.quoted_tweet else None,
        url=f"https://x.com/{handle}/status/{post.id}",
        raw_json=post.model_dump_json(by_alias=True, exclude_unset=True),
    )


def _upsert_post(conn: sa.Connection, post: SourcePost, bookmarked_at: str) -> None:
    """Insert-if-absent, then refresh mutable fields. Insert must run first."""
    mutable = _mutable_columns(post, now_iso())
    insert_ignore(
        conn,
        Post,
        {
            "id": post.id,
            "created_at": parse_post_date(post.created_at),
            "bookmarked_at": bookmarked_at,
            "author_avatar_url": None,  # bird does not expose avatars
            **mutable,
        },
    )
    conn.execute(sa.update(Post).where(Post.id == post.id).values(**mutable))


# -- Sync state ----------------------------------------------------------------


def get_sync_state(engine: sa.engine.Engine) -> SyncStateRecord:
    """Current sync state; a missing row reads as idle."""
    with engine.connect() as conn:
        row = conn.execute(sa.select(SyncState).where(SyncState.id == STATE_ROW_ID)).first()
    if row is None:
        return SyncStateRecord()
    return SyncStateRecord.model_validate(row)


def _update_sync_state(engine: sa.engine.Engine, **values: Any) -> None:
    with engine.begin() as conn:
        conn.execute(sa.update(SyncState).where(SyncState.id == STATE_ROW_ID).values(**values))


def claim_sync(engine: sa.engine.Engine) -> None:
    """idle/error → syncing as one conditional update; ConflictError if already syncing."""
    with engine.begin() as conn:
        result = conn.execute(
            sa.update(SyncState)
            .where(SyncState.id == STATE_ROW_ID, SyncState.status.in_(CLAIMABLE_SYNC_STATUSES))
            .values(status=SyncStatus.SYNCING, error_message=None)
        )
        if result.rowcount == 0:
            current = conn.execute(sa.select(SyncState.status).where(SyncState.id == STATE_ROW_ID)).scalar()
            raise ConflictError("sync", current)


def reset_sync_state(engine: sa.engine.Engine) -> None:
    """Force the state back to idle, e.g. after a crashed run left it stuck."""
    _update_sync_state(engine, status=SyncStatus.IDLE, error_message=None)


# -- Orchestration -------------------------------------------------------------


def run_sync(engine: sa.engine.Engine, source: BookmarkSource, log: structlog.stdlib.BoundLogger) -> SyncResult:
    """Body of a sync pass. The caller must already hold the claim (see ``claim_sync``)."""
    log.info("sync.starting")
    try:
        page = source.fetch_bookmarks()
        bookmarked_at = now_iso()
        posts = flatten_quoted_posts(page.posts)

        # All-or-nothing: a bad row rolls back the whole pass
        with engine.begin() as conn:
            for post in posts:
                _upsert_post(conn, post, bookmarked_at)

        last_sync_at = now_iso()
        _update_sync_state(
            engine,
            last_sync_at=last_sync_at,
            last_cursor=page.next_cursor,
            total_synced=len(page.posts),
            status=SyncStatus.IDLE,
            error_message=None,
        )
    except Exception as exc:
        log.exception("sync.failed")
        _update_sync_state(engine, status=SyncStatus.ERROR, error_message=str(exc))
        raise

    log.info("sync.complete", synced=len(page.posts), stored=len(posts), next_cursor=page.next_cursor)
    return SyncResult(synced=len(page.posts), last_sync_at=last_sync_at)


def sync_bookmarks(engine: sa.engine.Engine, source: BookmarkSource, log: structlog.stdlib.BoundLogger) -> SyncResult:
    """Run one full sync pass. Raises ConflictError if a sync is already running."""
    claim_sync(engine)
    return run_sync(engine, source, log)


# -- Threads -------------------------------------------------------------------


def _source_to_record(post: SourcePost) -> PostRecord:
    return PostRecord(id=post.id, created_at=parse_post_date(post.created_at), **_mutable_columns(post, now_iso()))


def get_thread(
    engine: sa.engine.Engine,
    source: BookmarkSource,
    post_id: str,
    log: structlog.stdlib.BoundLogger,
) -> list[PostRecord]:
    """Posts in the conversation of ``post_id``, oldest first.

    Local rows are preferred; with fewer than two stored the source is asked.
    A failed fetch degrades to whatever is stored locally.
    """
    with engine.connect() as conn:
        conversation_id = conn.execute(sa.select(Post.conversation_id).where(Post.id == post_id)).scalar()
        condition = Post.conversation_id == conversation_id if conversation_id else Post.id == post_id
        rows = conn.execute(sa.select(Post).where(condition).order_by(Post.created_at.asc())).fetchall()
    local = [PostRecord.model_validate(row) for row in rows]

    if len(local) >= 2:
        return local

    try:
        fetched = [_source_to_record(post) for post in source.fetch_thread(post_id)]
    except Exception:
        log.warning("thread.fetch_failed", post_id=post_id, local_count=len(local), exc_info=True)
        return local

    log.info("thread.fetched", post_id=post_id, count=len(fetched))
    return fetched or local
