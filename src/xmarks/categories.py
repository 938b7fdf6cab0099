"""Category store: topic labels, per-post assignment, and classification state.

This module is the only writer of ``categories`` rows, of the
``posts.category_id`` / ``posts.classified_at`` columns, and of the
``classification_state`` singleton.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import sqlalchemy as sa

from xmarks.db import STATE_ROW_ID, Category, ClassificationState, Post, now_iso
from xmarks.errors import ConflictError
from xmarks.models import CategoryRecord, CategoryWithCount, ClassificationStateRecord, ClassificationStateUpdate
from xmarks.statuses import CLAIMABLE_CLASSIFICATION_STATUSES, ClassificationStatus

_CATEGORY_COLUMNS = (Category.id, Category.name, Category.description, Category.emoji, Category.created_at)


# -- Categories ----------------------------------------------------------------


def _insert_category(conn: sa.Connection, name: str, description: str | None, emoji: str | None) -> CategoryRecord:
    row = conn.execute(
        sa.insert(Category)
        .values(name=name, description=description, emoji=emoji)
        .returning(*_CATEGORY_COLUMNS)
    ).one()
    return CategoryRecord.model_validate(row)


def create_category(
    engine: sa.engine.Engine,
    name: str,
    description: str | None = None,
    emoji: str | None = None,
) -> CategoryRecord:
    """Create a category. Names are unique; a duplicate raises IntegrityError."""
    with engine.begin() as conn:
        return _insert_category(conn, name, description, emoji)


def get_categories(engine: sa.engine.Engine) -> list[CategoryRecord]:
    with engine.connect() as conn:
        rows = conn.execute(sa.select(*_CATEGORY_COLUMNS).order_by(Category.name.asc())).fetchall()
    return [CategoryRecord.model_validate(row) for row in rows]


def get_category(engine: sa.engine.Engine, category_id: int) -> CategoryRecord | None:
    with engine.connect() as conn:
        row = conn.execute(sa.select(*_CATEGORY_COLUMNS).where(Category.id == category_id)).first()
    return CategoryRecord.model_validate(row) if row else None


def get_category_by_name(engine: sa.engine.Engine, name: str) -> CategoryRecord | None:
    """Exact (case-sensitive) name lookup, matching the storage constraint."""
    with engine.connect() as conn:
        row = conn.execute(sa.select(*_CATEGORY_COLUMNS).where(Category.name == name)).first()
    return CategoryRecord.model_validate(row) if row else None


def delete_all_categories(engine: sa.engine.Engine) -> None:
    """Delete every category, clearing post assignments first."""
    with engine.begin() as conn:
        conn.execute(sa.update(Post).values(category_id=None, classified_at=None))
        conn.execute(sa.delete(Category))


def replace_categories(
    engine: sa.engine.Engine,
    categories: Iterable[tuple[str, str | None, str | None]],
) -> list[CategoryRecord]:
    """Swap the whole taxonomy in one transaction.

    Order: clear assignments, delete categories, insert the new set. No post
    ever points at a category id outside the new set.
    """
    with engine.begin() as conn:
        conn.execute(sa.update(Post).values(category_id=None, classified_at=None))
        conn.execute(sa.delete(Category))
        return [_insert_category(conn, name, description, emoji) for name, description, emoji in categories]


def get_category_post_count(engine: sa.engine.Engine, category_id: int) -> int:
    with engine.connect() as conn:
        return conn.execute(
            sa.select(sa.func.count()).select_from(Post).where(Post.category_id == category_id)
        ).scalar_one()


def get_categories_with_counts(engine: sa.engine.Engine) -> list[CategoryWithCount]:
    """All categories with post counts, zero-count ones included."""
    post_count = sa.func.count(Post.id).label("post_count")
    query = (
        sa.select(*_CATEGORY_COLUMNS, post_count)
        .select_from(Category)
        .outerjoin(Post, Post.category_id == Category.id)
        .group_by(*_CATEGORY_COLUMNS)
        .order_by(post_count.desc(), Category.name.asc())
    )
    with engine.connect() as conn:
        rows = conn.execute(query).fetchall()
    return [CategoryWithCount.model_validate(row) for row in rows]


# -- Assignments ---------------------------------------------------------------


def assign_category(engine: sa.engine.Engine, post_id: str, category_id: int) -> None:
    assign_categories(engine, {post_id: category_id})


def assign_categories(engine: sa.engine.Engine, assignments: Mapping[str, int]) -> None:
    """Write a batch of post → category assignments in one transaction."""
    if not assignments:
        return
    classified_at = now_iso()
    with engine.begin() as conn:
        for post_id, category_id in assignments.items():
            conn.execute(
                sa.update(Post)
                .where(Post.id == post_id)
                .values(category_id=category_id, classified_at=classified_at)
            )


def clear_all_assignments(engine: sa.engine.Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa.update(Post).values(category_id=None, classified_at=None))


def get_unclassified_count(engine: sa.engine.Engine) -> int:
    with engine.connect() as conn:
        return conn.execute(
            sa.select(sa.func.count()).select_from(Post).where(Post.category_id.is_(None))
        ).scalar_one()


def get_total_post_count(engine: sa.engine.Engine) -> int:
    with engine.connect() as conn:
        return conn.execute(sa.select(sa.func.count()).select_from(Post)).scalar_one()


# -- Classification state ------------------------------------------------------


def get_classification_state(engine: sa.engine.Engine) -> ClassificationStateRecord:
    """Current state; a missing row reads as idle."""
    with engine.connect() as conn:
        row = conn.execute(
            sa.select(ClassificationState).where(ClassificationState.id == STATE_ROW_ID)
        ).first()
    if row is None:
        return ClassificationStateRecord()
    return ClassificationStateRecord.model_validate(row)


def update_classification_state(engine: sa.engine.Engine, update: ClassificationStateUpdate) -> None:
    """Write only the fields set on ``update``. An empty update is a no-op."""
    values = update.changes()
    if not values:
        return
    with engine.begin() as conn:
        conn.execute(
            sa.update(ClassificationState).where(ClassificationState.id == STATE_ROW_ID).values(**values)
        )


def claim_classification(
    engine: sa.engine.Engine,
    status: ClassificationStatus,
    *,
    operation: str,
    phase: str | None,
    progress_total: int,
) -> None:
    """Atomically move the state from idle/error into ``status``.

    Raises ConflictError, leaving the row untouched, if another run holds it.
    """
    with engine.begin() as conn:
        result = conn.execute(
            sa.update(ClassificationState)
            .where(
                ClassificationState.id == STATE_ROW_ID,
                ClassificationState.status.in_(CLAIMABLE_CLASSIFICATION_STATUSES),
            )
            .values(
                status=status,
                phase=phase,
                progress_current=0,
                progress_total=progress_total,
                error_message=None,
                started_at=now_iso(),
            )
        )
        if result.rowcount == 0:
            current = conn.execute(
                sa.select(ClassificationState.status).where(ClassificationState.id == STATE_ROW_ID)
            ).scalar()
            raise ConflictError(operation, current)


def reset_classification_state(engine: sa.engine.Engine) -> None:
    """Force the state back to idle, e.g. after a crashed run left it stuck."""
    update_classification_state(
        engine,
        ClassificationStateUpdate(
            status=ClassificationStatus.IDLE, phase=None, progress_current=0, progress_total=0, error_message=None
        ),
    )
