"""Assessment engine services."""

from portage.services.lifecycle import (
    AssessmentLifecycleManager,
    AssessmentSession,
    FinalizeRejectedError,
)
from portage.services.registry import ChildRegistry
from portage.services.sync import (
    LoadFailedError,
    NotLoadedError,
    SaveFailedError,
    SyncController,
    SyncState,
)

__all__ = [
    "AssessmentLifecycleManager",
    "AssessmentSession",
    "FinalizeRejectedError",
    "ChildRegistry",
    "LoadFailedError",
    "NotLoadedError",
    "SaveFailedError",
    "SyncController",
    "SyncState",
]
