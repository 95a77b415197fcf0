"""
Local event source backed by native inotify (inotify_simple).

inotify watches are not recursive, so every directory of the folder gets its
own watch; directories created or moved in later are picked up as they
appear. The event itself is reduced to "something changed here": the
accumulator re-classifies the path when it aggregates.
"""

import asyncio
import os
from pathlib import Path
from typing import Callable, Dict, Optional

import inotify_simple
from inotify_simple import flags

from infra.logger import get_logger
from syncwatch.core.errors import WatchInstallError
from syncwatch.core.ignore import IgnoreMatcher
from syncwatch.core.paths import ROOT, relative_path

WATCH_MASK = (
    flags.CREATE
    | flags.DELETE
    | flags.MODIFY
    | flags.CLOSE_WRITE
    | flags.ATTRIB
    | flags.MOVED_FROM
    | flags.MOVED_TO
    | flags.DELETE_SELF
    | flags.MOVE_SELF
)


class InotifySource:

    def __init__(
        self,
        root: Path,
        on_change: Callable[[str], None],
        *,
        ignore: Optional[IgnoreMatcher] = None,
        poll_interval: float = 0.05,
        log=None,
    ):
        self.root = Path(root)
        self.on_change = on_change
        self.ignore = ignore
        self.poll_interval = poll_interval
        self.log = log or get_logger("syncwatch.inotify")

        self.inotify: Optional[inotify_simple.INotify] = None
        self._watches: Dict[int, Path] = {}
        self._stop_event = asyncio.Event()

    @property
    def watch_count(self) -> int:
        return len(self._watches)

    async def start(self) -> None:
        """Install watches on the whole tree; raises ``WatchInstallError``."""
        try:
            self.inotify = inotify_simple.INotify()
            self._add_watch(self.root)
        except OSError as e:
            self._close()
            raise WatchInstallError(f"Cannot watch {self.root}: {e}") from e

        await asyncio.to_thread(self._add_tree, self.root)
        self.log.info("inotify.started", root=str(self.root), watches=len(self._watches))

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        if self.inotify is None:
            await self.start()

        try:
            while not self._stop_event.is_set():
                events = self.inotify.read(timeout=0)
                if not events:
                    await self._idle()
                    continue
                for event in events:
                    await self._handle(event)
        finally:
            self._close()
            self.log.info("inotify.stopped", root=str(self.root))

    # === Internals ===

    async def _idle(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass

    async def _handle(self, event) -> None:
        if event.mask & flags.Q_OVERFLOW:
            self.log.warning("inotify.overflow", root=str(self.root))
            self.on_change(ROOT)
            return

        if event.mask & flags.IGNORED:
            # the kernel dropped the watch, its directory is gone
            self._watches.pop(event.wd, None)
            return

        base = self._watches.get(event.wd)
        if base is None:
            return
        path = base / event.name if event.name else base
        rel = relative_path(path, self.root)

        if self.ignore is not None and self.ignore.should_ignore(rel):
            return

        if event.mask & flags.ISDIR:
            if event.mask & (flags.CREATE | flags.MOVED_TO):
                await asyncio.to_thread(self._add_tree, path)
            elif event.mask & flags.MOVED_FROM:
                self._drop_tree(path)

        self.log.debug("inotify.event", path=rel, mask=event.mask)
        self.on_change(rel)

    def _add_watch(self, directory: Path) -> None:
        wd = self.inotify.add_watch(directory, WATCH_MASK)
        self._watches[wd] = directory

    def _add_tree(self, top: Path) -> None:
        if top != self.root:
            try:
                self._add_watch(top)
            except OSError as e:
                self.log.debug("inotify.watch.skipped", path=str(top), error=str(e))
                return

        for dirpath, dirnames, _ in os.walk(top):
            kept = []
            for name in dirnames:
                child = Path(dirpath) / name
                if self.ignore is not None and self.ignore.should_ignore(relative_path(child, self.root)):
                    continue
                try:
                    self._add_watch(child)
                except OSError as e:
                    # removed between listing and watching
                    self.log.debug("inotify.watch.skipped", path=str(child), error=str(e))
                    continue
                kept.append(name)
            dirnames[:] = kept

    def _drop_tree(self, top: Path) -> None:
        for wd, directory in list(self._watches.items()):
            if directory != top and top not in directory.parents:
                continue
            del self._watches[wd]
            try:
                self.inotify.rm_watch(wd)
            except OSError as e:
                # already released by the kernel
                self.log.debug("inotify.unwatch.skipped", path=str(directory), error=str(e))

    def _close(self) -> None:
        if self.inotify is not None:
            self.inotify.close()
            self.inotify = None
        self._watches.clear()
