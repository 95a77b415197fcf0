"""
Change Accumulator

Per-folder control loop. Local filesystem changes and Syncthing item progress
arrive on one inbox and update a tracking table; a periodic timer turns the
tracked local changes into a batch, aggregates it and hands it to the Notifier.

A local change on a path Syncthing is currently writing is Syncthing's own
doing and is dropped, so remote writes are never echoed back as scans.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Union

from infra.exceptions import AuthorizationError
from infra.logger import get_logger
from syncwatch.core.aggregator import TreeAggregator
from syncwatch.core.classifier import PathClassifier
from syncwatch.core.models import ItemProgress, LocalChange, Origin, TrackedPath
from syncwatch.core.paths import ROOT, normalize_path
from syncwatch.core.ports.notifier import Notifier


class AccumulatorState(str, Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


@dataclass(frozen=True)
class AccumulatorSettings:
    """Timing and sizing knobs of one accumulator (seconds unless noted)."""
    debounce: float = 0.5
    remote_index: float = 0.6
    idle: float = 2.0
    dir_vs_files: int = 256
    max_files: int = 5000
    stale_after: float = 600.0
    reminder: float = 1800.0
    failure_backoff: float = 1.0


_STOP = object()

Inbound = Union[LocalChange, ItemProgress]


class ChangeAccumulator:

    def __init__(
        self,
        folder_id: str,
        root: Path,
        notifier: Notifier,
        settings: Optional[AccumulatorSettings] = None,
        *,
        classifier: Optional[PathClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
        log=None,
    ):
        self.folder_id = folder_id
        self.root = Path(root)
        self.notifier = notifier
        self.settings = settings or AccumulatorSettings()
        self.aggregator = TreeAggregator(self.root, self.settings.dir_vs_files, classifier)
        self.log = (log or get_logger("syncwatch.accumulator")).bind(folder=folder_id)

        self._clock = clock
        self._tracked: dict[str, TrackedPath] = {}
        self._interval = self.settings.idle
        # first timer tick announces the extended rescan interval
        self._next_reminder = clock()
        # a local change was dropped because the table was full
        self._overflowed = False

        self._inbox: asyncio.Queue = asyncio.Queue()
        self._stop_event = asyncio.Event()

    # === Introspection ===

    @property
    def state(self) -> AccumulatorState:
        return AccumulatorState.ACCUMULATING if self._tracked or self._overflowed else AccumulatorState.IDLE

    @property
    def tracked(self) -> Mapping[str, TrackedPath]:
        return MappingProxyType(self._tracked)

    @property
    def interval(self) -> float:
        return self._interval

    # === Inbound (called by the event sources) ===

    def submit_local(self, path: str) -> None:
        self._inbox.put_nowait(LocalChange(path))

    def submit_remote(self, progress: ItemProgress) -> None:
        self._inbox.put_nowait(progress)

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._inbox.put_nowait(_STOP)

    # === Transitions ===

    def handle_remote(self, progress: ItemProgress) -> None:
        if not progress.path:
            # Syncthing has queued work, more item events are coming
            self._interval = self.settings.remote_index
            self.log.debug("accumulator.remote.incoming", interval=self._interval)
            return

        path = normalize_path(progress.path)
        if progress.finished:
            if self._tracked.pop(path, None) is not None:
                self.log.debug("accumulator.remote.finished", path=path)
            return

        if not self._has_room(path):
            self.log.debug("accumulator.remote.saturated", path=path)
            return
        self._tracked[path] = TrackedPath(path, Origin.REMOTE, self._clock())
        self.log.debug("accumulator.remote.tracking", path=path)

    def handle_local(self, path: str) -> None:
        path = normalize_path(path)
        self._interval = self.settings.debounce

        entry = self._tracked.get(path)
        if entry is not None and entry.origin is Origin.REMOTE:
            # written by Syncthing itself
            del self._tracked[path]
            self.log.debug("accumulator.local.suppressed", path=path)
            return

        if not self._has_room(path):
            self._overflowed = True
            self.log.debug("accumulator.local.saturated", path=path)
            return
        self._tracked[path] = TrackedPath(path, Origin.LOCAL, self._clock())
        self.log.debug("accumulator.local.tracking", path=path)

    async def on_timer(self) -> None:
        now = self._clock()
        if now >= self._next_reminder:
            await self._remind(now)

        if not self._tracked and not self._overflowed:
            self._interval = self.settings.idle
            return

        batch = self._collect_batch(now)
        if not batch and not self._overflowed:
            self.log.debug("accumulator.batch.empty", waiting=len(self._tracked))
            return

        if self._overflowed or len(self._tracked) >= self.settings.max_files:
            self.log.info(
                "accumulator.saturated",
                tracked=len(self._tracked),
                max_files=self.settings.max_files,
            )
            targets = [ROOT]
        else:
            targets = self.aggregator.aggregate(batch)

        try:
            await self.notifier.notify(self.folder_id, targets)
        except AuthorizationError:
            raise
        except Exception as e:
            self.log.warning(
                "accumulator.notify.failed",
                error=str(e),
                changes=len(batch),
                targets=len(targets),
                retryable=True,
            )
            await self._backoff()
            return

        for path in batch:
            self._tracked.pop(path, None)
        self._overflowed = False
        self._next_reminder = self._clock() + self.settings.reminder
        self.log.info("accumulator.notified", changes=len(batch), targets=targets)

    # === Control loop ===

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._interval
        self.log.info("accumulator.started", root=str(self.root))

        try:
            while not self._stop_event.is_set():
                try:
                    item = await asyncio.wait_for(
                        self._inbox.get(), timeout=max(deadline - loop.time(), 0.0)
                    )
                except asyncio.TimeoutError:
                    await self._tick()
                    deadline = loop.time() + self._interval
                    continue

                if item is _STOP:
                    break
                self._dispatch(item)
        finally:
            self.log.info("accumulator.stopped", tracked=len(self._tracked))

    async def _tick(self) -> None:
        try:
            await self.on_timer()
        except AuthorizationError:
            raise
        except Exception as e:
            self.log.error("accumulator.tick.failed", error=str(e), exc_info=True)

    def _dispatch(self, item: Inbound) -> None:
        if isinstance(item, LocalChange):
            self.handle_local(item.path)
        else:
            self.handle_remote(item)

    # === Internals ===

    def _has_room(self, path: str) -> bool:
        return path in self._tracked or len(self._tracked) < self.settings.max_files

    def _collect_batch(self, now: float) -> List[str]:
        batch: List[str] = []
        for path, entry in list(self._tracked.items()):
            if entry.is_stale(now, self.settings.stale_after):
                del self._tracked[path]
                self.log.debug("accumulator.expired", path=path, origin=entry.origin.value)
                continue
            if entry.origin is Origin.LOCAL:
                batch.append(path)
            else:
                self.log.debug("accumulator.waiting", path=path)
        return batch

    async def _remind(self, now: float) -> None:
        self._next_reminder = now + self.settings.reminder
        try:
            await self.notifier.extend_rescan(self.folder_id)
        except AuthorizationError:
            raise
        except Exception as e:
            self.log.warning("accumulator.reminder.failed", error=str(e))

    async def _backoff(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.settings.failure_backoff)
        except asyncio.TimeoutError:
            pass
