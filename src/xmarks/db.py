"""Database engine, ORM models, and schema bootstrap."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from xmarks.statuses import ClassificationStatus, SyncStatus

STATE_ROW_ID = 1
MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(UTC).isoformat()


class Base(DeclarativeBase):
    pass


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    emoji: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[str] = mapped_column(sa.Text, nullable=False, default=now_iso)


class Post(Base):
    __tablename__ = "posts"

    # Snowflake ids exceed 53 bits; never store them as numbers
    id: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    text: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    author_id: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    author_name: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    author_handle: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    author_avatar_url: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    bookmarked_at: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    fetched_at: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    reply_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    retweet_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    like_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    in_reply_to_id: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    conversation_id: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    is_thread: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, server_default=sa.false())
    media_json: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="[]")
    quoted_post_id: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    url: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="")
    raw_json: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(sa.ForeignKey("categories.id"), nullable=True)
    classified_at: Mapped[str | None] = mapped_column(sa.Text, nullable=True)


class SyncState(Base):
    __tablename__ = "sync_state"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    last_sync_at: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    last_cursor: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    total_synced: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default=SyncStatus.IDLE.value)
    error_message: Mapped[str | None] = mapped_column(sa.Text, nullable=True)


class ClassificationState(Base):
    __tablename__ = "classification_state"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    status: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default=ClassificationStatus.IDLE.value)
    phase: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    progress_current: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    progress_total: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="0")
    error_message: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    started_at: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    completed_at: Mapped[str | None] = mapped_column(sa.Text, nullable=True)


sa.Index("idx_posts_created_at", Post.created_at)
sa.Index("idx_posts_conversation_id", Post.conversation_id, sqlite_where=Post.conversation_id.isnot(None))
sa.Index("idx_posts_category_id", Post.category_id)
sa.Index("idx_posts_author_handle", Post.author_handle)


def insert_ignore(conn: sa.Connection, table: type[Base], values: dict) -> sa.CursorResult:
    """INSERT ... ON CONFLICT DO NOTHING for the connection's dialect."""
    insert = pg_insert if conn.dialect.name == "postgresql" else sqlite_insert
    stmt = insert(table).values(**values).on_conflict_do_nothing()
    return conn.execute(stmt)


def _set_sqlite_pragmas(dbapi_conn, connection_record):  # noqa: N802
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def get_engine(database_url: str) -> sa.engine.Engine:
    """Create a SQLAlchemy engine for the given database URL."""
    url = sa.engine.make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    engine = sa.create_engine(url, echo=False)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def migration_config(database_url: str | None = None) -> Config:
    """Alembic config pointing at the bundled migrations."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    if database_url:
        # configparser interpolation: a literal % in a password must be doubled
        cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


def init_db(engine: sa.engine.Engine) -> None:
    """Upgrade the schema to the latest migration and ensure the singleton state rows."""
    cfg = migration_config(engine.url.render_as_string(hide_password=False))
    with engine.begin() as conn:
        cfg.attributes["connection"] = conn
        command.upgrade(cfg, "head")
        insert_ignore(conn, SyncState, {"id": STATE_ROW_ID, "status": SyncStatus.IDLE})
        insert_ignore(conn, ClassificationState, {"id": STATE_ROW_ID, "status": ClassificationStatus.IDLE})
