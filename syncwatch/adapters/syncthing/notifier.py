from typing import Sequence

from infra.logger import get_logger
from syncwatch.adapters.syncthing.client import SyncthingClient
from syncwatch.core.ports.notifier import Notifier

log = get_logger("syncwatch.notifier")

# always present in a Syncthing folder, cheap to scan
REMINDER_TARGET = ".stfolder"


class SyncthingNotifier(Notifier):
    """Turns aggregated targets into ``/rest/db/scan`` calls."""

    def __init__(self, client: SyncthingClient, rescan_delay: int = 3600):
        self.client = client
        self.rescan_delay = rescan_delay

    async def notify(self, folder_id: str, targets: Sequence[str]) -> None:
        log.info("notifier.scan", folder=folder_id, targets=list(targets))
        await self.client.scan(folder_id, targets)

    async def extend_rescan(self, folder_id: str) -> None:
        if not self.rescan_delay:
            return
        log.debug("notifier.extend_rescan", folder=folder_id, delay=self.rescan_delay)
        await self.client.scan(folder_id, [REMINDER_TARGET], next_s=self.rescan_delay)
