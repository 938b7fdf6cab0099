"""Dagster definitions for the xmarks pipeline."""

from __future__ import annotations

import dagster as dg

from xmarks.dagster_defs.jobs import classify_job, discover_job, sync_job
from xmarks.dagster_defs.resources import DatabaseResource
from xmarks.dagster_defs.sensors import classification_sensor, sync_schedule

defs = dg.Definitions(
    jobs=[sync_job, discover_job, classify_job],
    schedules=[sync_schedule],
    sensors=[classification_sensor],
    resources={
        "database": DatabaseResource(),
    },
)
