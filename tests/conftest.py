from pathlib import Path
from typing import Callable, List, Sequence, Tuple

import pytest

from infra.exceptions import AuthorizationError, ServiceUnavailableError
from syncwatch.core.accumulator import AccumulatorSettings
from syncwatch.core.ports.notifier import Notifier


# =====================
# Filesystem helpers
# =====================

def create_paths(root: Path, *paths: str) -> List[str]:
    """Create files (``a/b``) and directories (``a/b/``) below ``root``."""
    created = []
    for path in paths:
        target = root / path
        if path.endswith("/"):
            target.mkdir(parents=True, exist_ok=True)
            created.append(path.rstrip("/"))
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.touch()
            created.append(path)
    return created


@pytest.fixture
def tree(tmp_path) -> Callable[..., List[str]]:
    def _create(*paths: str) -> List[str]:
        return create_paths(tmp_path, *paths)
    return _create


# =====================
# Test doubles
# =====================

class RecordingNotifier(Notifier):
    """Remembers every call; can be told to fail the next ``failures`` notifies."""

    def __init__(self, failures: int = 0, unauthorized: bool = False):
        self.calls: List[Tuple[str, List[str]]] = []
        self.reminders: List[str] = []
        self.failures = failures
        self.unauthorized = unauthorized

    async def notify(self, folder_id: str, targets: Sequence[str]) -> None:
        if self.unauthorized:
            raise AuthorizationError("POST /rest/db/scan: status 403")
        if self.failures > 0:
            self.failures -= 1
            raise ServiceUnavailableError("POST /rest/db/scan: status 503")
        self.calls.append((folder_id, list(targets)))

    async def extend_rescan(self, folder_id: str) -> None:
        self.reminders.append(folder_id)

    @property
    def targets(self) -> List[List[str]]:
        return [targets for _, targets in self.calls]


class FakeClock:

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fast_settings() -> AccumulatorSettings:
    return AccumulatorSettings(
        debounce=0.02,
        remote_index=0.03,
        idle=0.05,
        dir_vs_files=10,
        max_files=5000,
        stale_after=600.0,
        reminder=1800.0,
        failure_backoff=0.01,
    )
