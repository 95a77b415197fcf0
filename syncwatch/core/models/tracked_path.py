from dataclasses import dataclass
from enum import Enum


class Origin(str, Enum):
    """Which stream most recently reported a tracked path."""
    LOCAL = "local"
    REMOTE = "remote"


@dataclass
class TrackedPath:
    """A folder-relative path currently believed to be in flux."""
    path: str
    origin: Origin
    observed_at: float

    def is_stale(self, now: float, stale_after: float) -> bool:
        return now - self.observed_at > stale_after
