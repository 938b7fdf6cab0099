"""Shared test fixtures: a fresh file-backed SQLite database per test."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa

from xmarks.db import Post, get_engine, init_db


@pytest.fixture
def engine(tmp_path):
    """SQLite engine with the schema and singleton state rows in place."""
    eng = get_engine(f"sqlite:///{tmp_path / 'xmarks.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def log():
    return MagicMock()


@pytest.fixture
def insert_post(engine):
    """Insert a posts row directly, bypassing sync."""

    def _insert(post_id: str, created_at: str = "2026-01-01T00:00:00+00:00", **values) -> str:
        row = {
            "id": post_id,
            "text": f"post {post_id}",
            "author_handle": "alice",
            "created_at": created_at,
            "fetched_at": created_at,
            "url": f"https://x.com/alice/status/{post_id}",
            **values,
        }
        with engine.begin() as conn:
            conn.execute(sa.insert(Post).values(**row))
        return post_id

    return _insert
