"""Hourly sync schedule and a sensor that classifies new bookmarks.

Note: ``from __future__ import annotations`` is omitted because Dagster's
sensor decorator inspects type hints at decoration time and cannot resolve
deferred (stringified) annotations.
"""

import dagster as dg

from xmarks.categories import get_categories, get_classification_state, get_unclassified_count
from xmarks.dagster_defs.jobs import classify_job, sync_job
from xmarks.dagster_defs.resources import DatabaseResource
from xmarks.statuses import ClassificationStatus

sync_schedule = dg.ScheduleDefinition(
    name="hourly_sync",
    cron_schedule="0 * * * *",
    target=sync_job,
    default_status=dg.DefaultScheduleStatus.STOPPED,
)


@dg.sensor(target=classify_job, minimum_interval_seconds=300, default_status=dg.DefaultSensorStatus.STOPPED)
def classification_sensor(context: dg.SensorEvaluationContext, database: DatabaseResource) -> dg.SensorResult:
    """Request classification when unclassified bookmarks exist and a taxonomy is in place."""
    engine = database.get_engine()

    if get_classification_state(engine).status != ClassificationStatus.IDLE:
        return dg.SensorResult(skip_reason="Classification busy or in error")
    if not get_categories(engine):
        return dg.SensorResult(skip_reason="No topics discovered yet")

    pending = get_unclassified_count(engine)
    if pending == 0:
        return dg.SensorResult(skip_reason="No unclassified bookmarks")

    cursor = int(context.cursor or 0) + 1
    return dg.SensorResult(
        run_requests=[dg.RunRequest(run_key=f"classify-{cursor}")],
        cursor=str(cursor),
    )
