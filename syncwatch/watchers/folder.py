"""
Folder Watcher

Everything needed to keep one Syncthing folder in sync with its disk: the
folder's ignore patterns, a local inotify source and a Change Accumulator
feeding the Notifier.
"""

import asyncio
from typing import Callable, List, Optional

from infra.exceptions import RETRYABLE_ERRORS
from infra.logger import get_logger
from infra.reconnect import retry_forever
from syncwatch.adapters.syncthing.client import SyncthingClient
from syncwatch.core.accumulator import AccumulatorSettings, ChangeAccumulator
from syncwatch.core.classifier import PathClassifier
from syncwatch.core.ignore import IgnoreMatcher
from syncwatch.core.models import FolderConfiguration, ItemProgress
from syncwatch.core.ports.notifier import Notifier
from syncwatch.sources.inotify_source import InotifySource

# below this Syncthing's own periodic scans make the watcher pointless
RECOMMENDED_RESCAN_INTERVAL_S = 1800

SourceFactory = Callable[..., InotifySource]


class FolderWatcher:

    def __init__(
        self,
        folder: FolderConfiguration,
        client: SyncthingClient,
        notifier: Notifier,
        settings: Optional[AccumulatorSettings] = None,
        *,
        retry_interval: float = 5.0,
        source_factory: SourceFactory = InotifySource,
        classifier: Optional[PathClassifier] = None,
    ):
        self.folder = folder
        self.client = client
        self.log = get_logger("syncwatch.folder", folder=folder.id)
        self.retry_interval = retry_interval
        self.source_factory = source_factory

        self.accumulator = ChangeAccumulator(
            folder.id,
            folder.root,
            notifier,
            settings,
            classifier=classifier,
            log=self.log,
        )
        self.ignore: Optional[IgnoreMatcher] = None
        self.source: Optional[InotifySource] = None
        self._stopped = False

    async def load_ignores(self) -> IgnoreMatcher:
        """Fetch and compile the folder's ignore patterns, waiting out outages."""
        patterns: List[str] = await retry_forever(
            lambda: self.client.get_ignore_patterns(self.folder.id),
            base_delay=self.retry_interval,
            max_delay=self.retry_interval,
            retryable_exceptions=list(RETRYABLE_ERRORS),
            jitter=False,
            name="folder.ignores",
        )
        self.ignore = IgnoreMatcher.from_strings(patterns)
        self.log.info("folder.ignores.loaded", patterns=len(self.ignore))
        return self.ignore

    async def run(self) -> None:
        self.log.info("folder.starting", path=str(self.folder.root))
        if 0 < self.folder.rescan_interval_s < RECOMMENDED_RESCAN_INTERVAL_S:
            self.log.info(
                "folder.rescan_interval.hint",
                rescan_interval_s=self.folder.rescan_interval_s,
                recommended=RECOMMENDED_RESCAN_INTERVAL_S,
            )

        await self.load_ignores()
        if self._stopped:
            return

        self.source = self.source_factory(
            self.folder.root,
            self.accumulator.submit_local,
            ignore=self.ignore,
            log=self.log,
        )
        await self.source.start()

        tasks = [
            asyncio.create_task(self.source.run(), name=f"inotify:{self.folder.id}"),
            asyncio.create_task(self.accumulator.run(), name=f"accumulator:{self.folder.id}"),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self.source.stop()
            self.accumulator.stop()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
        self.log.info("folder.stopped")

    def submit_remote(self, progress: ItemProgress) -> None:
        self.accumulator.submit_remote(progress)

    def stop(self) -> None:
        self._stopped = True
        if self.source is not None:
            self.source.stop()
        self.accumulator.stop()
