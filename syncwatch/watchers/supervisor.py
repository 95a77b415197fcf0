"""
Folder Supervisor

Owns one FolderWatcher per selected Syncthing folder, routes remote progress
to them and follows configuration changes without restarting the process.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Sequence

from infra.exceptions import AuthorizationError, FatalValidationError
from infra.logger import get_logger
from syncwatch.adapters.syncthing.client import SyncthingClient
from syncwatch.core.models import FolderConfiguration, ItemProgress
from syncwatch.watchers.folder import FolderWatcher

log = get_logger("syncwatch.supervisor")

WatcherFactory = Callable[[FolderConfiguration], FolderWatcher]


def select_folders(
    folders: Iterable[FolderConfiguration],
    watch: Sequence[str] = (),
    skip: Sequence[str] = (),
) -> List[FolderConfiguration]:
    """Apply the allow list (``watch``) or the deny list (``skip``)."""
    selected = []
    for folder in folders:
        if watch and folder.id not in watch:
            continue
        if folder.id in skip:
            continue
        selected.append(folder)
    return selected


class FolderSupervisor:

    def __init__(
        self,
        client: SyncthingClient,
        watcher_factory: WatcherFactory,
        *,
        watch: Sequence[str] = (),
        skip: Sequence[str] = (),
        config_sync_interval: float = 5.0,
    ):
        self.client = client
        self.watcher_factory = watcher_factory
        self.watch = list(watch)
        self.skip = list(skip)
        self.config_sync_interval = config_sync_interval

        self.watchers: Dict[str, FolderWatcher] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    def select(self, folders: Iterable[FolderConfiguration]) -> List[FolderConfiguration]:
        return select_folders(folders, self.watch, self.skip)

    async def start(self, folders: Iterable[FolderConfiguration]) -> None:
        selected = self.select(folders)
        if not selected:
            raise FatalValidationError("No folders to watch")
        async with self._lock:
            for folder in selected:
                self._start_watcher(folder)
        log.info("supervisor.started", folders=[f.id for f in selected])

    async def reconcile(self, folders: Iterable[FolderConfiguration]) -> None:
        """Bring the running watchers in line with ``folders``."""
        wanted = {f.id: f for f in self.select(folders)}

        async with self._lock:
            for folder_id in list(self.watchers):
                current = self.watchers[folder_id].folder
                new = wanted.get(folder_id)
                if new is None:
                    log.info("supervisor.folder.removed", folder=folder_id)
                    await self._stop_watcher(folder_id)
                elif new.path != current.path:
                    log.info("supervisor.folder.changed", folder=folder_id, path=new.path)
                    await self._stop_watcher(folder_id)

            for folder_id, folder in wanted.items():
                if folder_id not in self.watchers:
                    self._start_watcher(folder)

        log.info("supervisor.reconciled", folders=sorted(self.watchers))

    async def on_config_changed(self) -> None:
        """Re-read Syncthing's folder list once its configuration has settled."""
        try:
            await self.client.wait_for_config_sync(self.config_sync_interval)
            folders = await self.client.get_folders()
        except (ConnectionError, RuntimeError) as e:
            log.warning("supervisor.reconfigure.failed", error=str(e))
            return
        await self.reconcile(folders)

    def route(self, folder_id: str, progress: ItemProgress) -> None:
        watcher = self.watchers.get(folder_id)
        if watcher is not None:
            watcher.submit_remote(progress)

    async def stop(self) -> None:
        async with self._lock:
            for folder_id in list(self.watchers):
                await self._stop_watcher(folder_id)
        log.info("supervisor.stopped")

    # === Internals ===

    def _start_watcher(self, folder: FolderConfiguration) -> None:
        watcher = self.watcher_factory(folder)
        self.watchers[folder.id] = watcher
        self._tasks[folder.id] = asyncio.create_task(
            self._supervise(watcher), name=f"folder:{folder.id}"
        )

    async def _stop_watcher(self, folder_id: str) -> None:
        watcher = self.watchers.pop(folder_id)
        task = self._tasks.pop(folder_id, None)
        watcher.stop()
        if task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=5.0)
        except asyncio.TimeoutError:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _supervise(self, watcher: FolderWatcher) -> None:
        folder_id = watcher.folder.id
        try:
            await watcher.run()
        except asyncio.CancelledError:
            raise
        except (FatalValidationError, AuthorizationError) as e:
            log.error("supervisor.folder.fatal", folder=folder_id, error=str(e))
            await self.client.report_error(f"Folder {folder_id}: {e}")
        except Exception as e:
            log.error("supervisor.folder.crashed", folder=folder_id, error=str(e), exc_info=True)
            await self.client.report_error(f"Folder {folder_id}: {e}")
        finally:
            if self.watchers.get(folder_id) is watcher:
                del self.watchers[folder_id]
                self._tasks.pop(folder_id, None)
