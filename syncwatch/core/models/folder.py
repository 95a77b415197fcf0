from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict


@dataclass(frozen=True)
class FolderConfiguration:
    """One Syncthing folder as listed by ``/rest/system/config``."""
    id: str
    path: str
    read_only: bool = False
    rescan_interval_s: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "FolderConfiguration":
        return cls(
            id=data["id"],
            path=data["path"],
            read_only=bool(data.get("readOnly")) or data.get("type") == "sendonly",
            rescan_interval_s=int(data.get("rescanIntervalS") or 0),
        )

    @property
    def root(self) -> Path:
        """Folder path with ``~`` expanded to the home directory."""
        return Path(self.path).expanduser()
