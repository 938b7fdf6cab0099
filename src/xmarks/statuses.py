"""Status enumerations for the singleton state rows."""

from __future__ import annotations

from enum import StrEnum


class SyncStatus(StrEnum):
    """Bookmark sync lifecycle."""
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


class ClassificationStatus(StrEnum):
    """Topic discovery / classification lifecycle."""
    IDLE = "idle"
    DISCOVERING = "discovering"
    CLASSIFYING = "classifying"
    ERROR = "error"


# States from which a new run may be started
CLAIMABLE_SYNC_STATUSES = (SyncStatus.IDLE, SyncStatus.ERROR)
CLAIMABLE_CLASSIFICATION_STATUSES = (ClassificationStatus.IDLE, ClassificationStatus.ERROR)
