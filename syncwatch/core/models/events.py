from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class RemoteEventKind(str, Enum):
    """Syncthing event types the watcher reacts to, keyed by API name."""
    SYNC_STARTING = "RemoteIndexUpdated"
    ITEM_STARTED = "ItemStarted"
    ITEM_FINISHED = "ItemFinished"
    CONFIGURATION_CHANGED = "ConfigSaved"


SUBSCRIBED_EVENTS = ",".join(kind.value for kind in RemoteEventKind)


@dataclass(frozen=True)
class ItemProgress:
    """Remote progress for one folder item; an empty path means "sync starting"."""
    path: str
    finished: bool = False


@dataclass(frozen=True)
class LocalChange:
    """Something changed on disk at this folder-relative path."""
    path: str


@dataclass(frozen=True)
class RemoteEvent:
    """One entry of the ``/rest/events`` stream."""
    id: int
    type: str
    folder_id: str = ""
    item: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteEvent":
        payload = data.get("data")
        if not isinstance(payload, dict):
            payload = {}
        return cls(
            id=int(data["id"]),
            type=data.get("type", ""),
            folder_id=payload.get("folder") or "",
            item=payload.get("item") or "",
        )

    @property
    def kind(self) -> Optional[RemoteEventKind]:
        try:
            return RemoteEventKind(self.type)
        except ValueError:
            return None

    def to_progress(self) -> Optional[ItemProgress]:
        match self.kind:
            case RemoteEventKind.SYNC_STARTING:
                return ItemProgress(path="")
            case RemoteEventKind.ITEM_STARTED:
                return ItemProgress(path=self.item)
            case RemoteEventKind.ITEM_FINISHED:
                return ItemProgress(path=self.item, finished=True)
            case _:
                return None
