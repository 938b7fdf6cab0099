"""Dagster resources for the xmarks pipeline."""

from __future__ import annotations

import dagster as dg
import sqlalchemy as sa

from xmarks.db import get_engine, init_db


class DatabaseResource(dg.ConfigurableResource):
    """SQLAlchemy engine resource."""

    database_url: str = dg.EnvVar("XMARKS_DATABASE_URL")

    def get_engine(self) -> sa.engine.Engine:
        engine = get_engine(self.database_url)
        init_db(engine)
        return engine
