"""
syncwatch entry point

Starts, in order:
1. Syncthing connection (waits until the REST API answers)
2. one FolderWatcher per selected folder
3. the remote event poller, which also drives reconfiguration
"""

import asyncio
import signal
import sys
from typing import Awaitable, Optional, TypeVar

from dotenv import load_dotenv

from infra.exceptions import (
    AuthorizationError,
    FatalValidationError,
    RETRYABLE_ERRORS,
)
from infra.logger import get_logger, setup_logging
from infra.reconnect import retry_forever
from syncwatch import __version__
from syncwatch.adapters.syncthing import SyncthingClient, SyncthingNotifier, discover_gui_settings
from syncwatch.config import WatcherConfig
from syncwatch.core.models import FolderConfiguration
from syncwatch.sources.remote_events import RemoteEventPoller
from syncwatch.watchers.folder import FolderWatcher
from syncwatch.watchers.supervisor import FolderSupervisor

T = TypeVar("T")


def _install_signal_handlers(shutdown: asyncio.Event, log) -> None:

    def _handler(signame: str):
        log.info("syncwatch.shutdown.signal", signal=signame)
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handler, sig.name)


async def _until_shutdown(aw: Awaitable[T], shutdown: asyncio.Event) -> Optional[T]:
    """Await ``aw`` unless shutdown is requested first (then ``None``)."""
    task = asyncio.ensure_future(aw)
    waiter = asyncio.create_task(shutdown.wait())
    await asyncio.wait([task, waiter], return_when=asyncio.FIRST_COMPLETED)
    waiter.cancel()
    if task.done():
        return task.result()
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    return None


async def main() -> None:
    load_dotenv(override=False)
    config = WatcherConfig()

    setup_logging(log_level=config.LOG_LEVEL, env=config.ENV)
    log = get_logger("syncwatch")
    log.info("syncwatch.boot", version=__version__, config=config.to_dict_public())

    shutdown = asyncio.Event()
    _install_signal_handlers(shutdown, log)

    gui = discover_gui_settings(config.syncthing_home)
    async with SyncthingClient.from_config(config, gui) as client:

        # === Startup ===

        await _until_shutdown(client.wait_until_ready(), shutdown)
        if shutdown.is_set():
            log.info("syncwatch.shutdown.complete")
            return

        folders = await _until_shutdown(
            retry_forever(
                client.get_folders,
                base_delay=config.CONFIG_SYNC_TIMEOUT_S,
                max_delay=config.CONFIG_SYNC_TIMEOUT_S,
                retryable_exceptions=list(RETRYABLE_ERRORS),
                jitter=False,
                name="syncwatch.folders",
            ),
            shutdown,
        )
        if folders is None:
            log.info("syncwatch.shutdown.complete")
            return

        notifier = SyncthingNotifier(client, rescan_delay=config.RESCAN_DELAY_S)
        settings = config.accumulator_settings()

        def make_watcher(folder: FolderConfiguration) -> FolderWatcher:
            return FolderWatcher(
                folder,
                client,
                notifier,
                settings,
                retry_interval=config.CONFIG_SYNC_TIMEOUT_S,
            )

        supervisor = FolderSupervisor(
            client,
            make_watcher,
            watch=config.watch_folders,
            skip=config.skip_folders,
            config_sync_interval=config.CONFIG_SYNC_TIMEOUT_S,
        )
        await supervisor.start(folders)

        poller = RemoteEventPoller(
            client,
            supervisor.route,
            supervisor.on_config_changed,
            retry_interval=config.CONFIG_SYNC_TIMEOUT_S,
        )
        poller_task = asyncio.create_task(poller.run(), name="remote-events")

        # === Main loop ===

        log.info("syncwatch.running", folders=sorted(supervisor.watchers))
        shutdown_task = asyncio.create_task(shutdown.wait())
        await asyncio.wait([poller_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED)
        shutdown_task.cancel()

        log.info("syncwatch.stopping")
        poller.stop()
        if not poller_task.done():
            # a long-poll may be in flight
            poller_task.cancel()
        await asyncio.gather(poller_task, return_exceptions=True)
        await supervisor.stop()

        if not poller_task.cancelled() and poller_task.exception() is not None:
            raise poller_task.exception()

    log.info("syncwatch.shutdown.complete")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except (FatalValidationError, AuthorizationError) as e:
        get_logger("syncwatch").error("syncwatch.fatal", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    run()
