from syncwatch.core.models.events import (
    ItemProgress,
    LocalChange,
    RemoteEvent,
    RemoteEventKind,
    SUBSCRIBED_EVENTS,
)
from syncwatch.core.models.folder import FolderConfiguration
from syncwatch.core.models.tracked_path import Origin, TrackedPath

__all__ = [
    "FolderConfiguration",
    "ItemProgress",
    "LocalChange",
    "Origin",
    "RemoteEvent",
    "RemoteEventKind",
    "SUBSCRIBED_EVENTS",
    "TrackedPath",
]
