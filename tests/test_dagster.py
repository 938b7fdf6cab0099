"""Tests for the classification sensor."""

from __future__ import annotations

import dagster as dg

from xmarks.categories import create_category, update_classification_state
from xmarks.dagster_defs.resources import DatabaseResource
from xmarks.dagster_defs.sensors import classification_sensor
from xmarks.models import ClassificationStateUpdate
from xmarks.statuses import ClassificationStatus


def _evaluate(engine, cursor: str | None = None) -> dg.SensorResult:
    database = DatabaseResource(database_url=engine.url.render_as_string(hide_password=False))
    context = dg.build_sensor_context(cursor=cursor, resources={"database": database})
    return classification_sensor(context)


class TestClassificationSensor:
    def test_skips_without_topics(self, engine, insert_post):
        insert_post("1")
        assert not _evaluate(engine).run_requests

    def test_skips_when_everything_is_classified(self, engine):
        create_category(engine, "AI", "Models")
        assert not _evaluate(engine).run_requests

    def test_skips_while_busy(self, engine, insert_post):
        create_category(engine, "AI", "Models")
        insert_post("1")
        update_classification_state(engine, ClassificationStateUpdate(status=ClassificationStatus.DISCOVERING))
        assert not _evaluate(engine).run_requests

    def test_requests_run_for_pending_posts(self, engine, insert_post):
        create_category(engine, "AI", "Models")
        insert_post("1")

        result = _evaluate(engine, cursor="4")

        assert [r.run_key for r in result.run_requests] == ["classify-5"]
        assert result.cursor == "5"
