"""
Remote event source: long-polls Syncthing's event stream and routes item
progress to the accumulator of the folder it belongs to.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from infra.config import Timeouts
from infra.exceptions import AuthorizationError
from infra.logger import get_logger
from syncwatch.adapters.syncthing.client import SyncthingClient
from syncwatch.core.models import ItemProgress, RemoteEvent, RemoteEventKind


class RemoteEventPoller:

    def __init__(
        self,
        client: SyncthingClient,
        dispatch: Callable[[str, ItemProgress], None],
        on_config_changed: Optional[Callable[[], Awaitable[None]]] = None,
        *,
        retry_interval: float = Timeouts.CONFIG_SYNC,
        log=None,
    ):
        self.client = client
        self.dispatch = dispatch
        self.on_config_changed = on_config_changed
        self.retry_interval = retry_interval
        self.log = log or get_logger("syncwatch.events")

        self.since = 0
        self._stop_event = asyncio.Event()
        self._reconfigure_task: Optional[asyncio.Task] = None

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        self.log.info("events.started")
        try:
            while not self._stop_event.is_set():
                try:
                    events = await self.client.get_events(self.since)
                except AuthorizationError:
                    raise
                except (ConnectionError, RuntimeError, ValueError, KeyError) as e:
                    # Syncthing restarted or answered garbage, its event ids start over
                    self.log.warning("events.poll.failed", error=str(e), since=self.since)
                    self.since = 0
                    await self._pause()
                    continue

                for event in events:
                    self.handle(event)
        finally:
            if self._reconfigure_task is not None and not self._reconfigure_task.done():
                self._reconfigure_task.cancel()
            self.log.info("events.stopped", since=self.since)

    def handle(self, event: RemoteEvent) -> None:
        self.since = max(self.since, event.id)

        if event.kind is RemoteEventKind.CONFIGURATION_CHANGED:
            self._reconfigure()
            return

        progress = event.to_progress()
        if progress is None or not event.folder_id:
            return
        self.log.debug("events.item", folder=event.folder_id, path=progress.path, finished=progress.finished)
        self.dispatch(event.folder_id, progress)

    def _reconfigure(self) -> None:
        if self.on_config_changed is None:
            return
        if self._reconfigure_task is not None and not self._reconfigure_task.done():
            self.log.debug("events.config.pending")
            return
        self.log.info("events.config.changed")
        self._reconfigure_task = asyncio.create_task(self.on_config_changed())

    async def _pause(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.retry_interval)
        except asyncio.TimeoutError:
            pass
