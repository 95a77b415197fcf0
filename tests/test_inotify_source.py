import asyncio
import sys
import time

import pytest

from conftest import create_paths
from syncwatch.core.errors import WatchInstallError
from syncwatch.core.ignore import IgnoreMatcher
from syncwatch.sources.inotify_source import InotifySource

pytestmark = [
    pytest.mark.linux,
    pytest.mark.skipif(not sys.platform.startswith("linux"), reason="inotify is Linux only"),
]


async def wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate() and loop.time() < deadline:
        await asyncio.sleep(0.01)


@pytest.fixture
def changes():
    return []


@pytest.fixture
def make_source(tmp_path, changes):
    sources = []

    def _make(ignore=None):
        source = InotifySource(tmp_path, changes.append, ignore=ignore, poll_interval=0.01)
        sources.append(source)
        return source

    yield _make
    for source in sources:
        source.stop()


@pytest.mark.component
class TestInotifySource:

    @pytest.mark.asyncio
    async def test_reports_nested_changes(self, tmp_path, tree, changes, make_source):
        tree("a/b/")
        source = make_source()
        await source.start()
        task = asyncio.create_task(source.run())

        (tmp_path / "a" / "b" / "file").write_text("x")
        await wait_for(lambda: "a/b/file" in changes)

        source.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert "a/b/file" in changes

    @pytest.mark.asyncio
    async def test_watches_new_directories(self, tmp_path, changes, make_source):
        source = make_source()
        await source.start()
        task = asyncio.create_task(source.run())

        (tmp_path / "new").mkdir()
        await wait_for(lambda: "new" in changes)
        (tmp_path / "new" / "file").write_text("x")
        await wait_for(lambda: "new/file" in changes)

        source.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert "new/file" in changes

    @pytest.mark.asyncio
    async def test_ignored_paths_are_dropped(self, tmp_path, tree, changes, make_source):
        tree(".stversions/", "build/")
        source = make_source(IgnoreMatcher.from_strings(["^build"]))
        await source.start()
        watched = source.watch_count
        task = asyncio.create_task(source.run())

        (tmp_path / ".stversions" / "old").write_text("x")
        (tmp_path / "build" / "out.o").write_text("x")
        (tmp_path / "kept").write_text("x")
        await wait_for(lambda: "kept" in changes)

        source.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert watched == 1
        assert all(not c.startswith((".stversions", "build")) for c in changes)

    @pytest.mark.asyncio
    async def test_stop_releases_inotify(self, make_source):
        source = make_source()
        await source.start()
        task = asyncio.create_task(source.run())

        source.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert source.inotify is None
        assert source.watch_count == 0

    @pytest.mark.asyncio
    async def test_missing_root_fails(self, tmp_path, changes):
        source = InotifySource(tmp_path / "missing", changes.append)
        with pytest.raises(WatchInstallError):
            await source.start()

    @pytest.mark.asyncio
    async def test_initial_walk_leaves_loop_responsive(self, tree, make_source, monkeypatch):
        tree("a/b/", "c/")
        source = make_source()
        walk = source._add_tree

        def slow_walk(top):
            time.sleep(0.2)
            walk(top)

        monkeypatch.setattr(source, "_add_tree", slow_walk)
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0.01)

        ticking = asyncio.create_task(ticker())
        await source.start()
        ticking.cancel()
        await asyncio.gather(ticking, return_exceptions=True)

        assert ticks > 5
        assert source.watch_count == 4

    @pytest.mark.asyncio
    async def test_directory_moved_out_is_forgotten(self, tmp_path, changes):
        root = tmp_path / "folder"
        create_paths(root, "a/b/")
        source = InotifySource(root, changes.append, poll_interval=0.01)
        await source.start()
        task = asyncio.create_task(source.run())

        (root / "a").rename(tmp_path / "outside")
        await wait_for(lambda: "a" in changes)
        (tmp_path / "outside" / "b" / "file").write_text("x")
        (root / "kept").write_text("x")
        await wait_for(lambda: "kept" in changes)

        source.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert "a" in changes
        assert not any(c.startswith("a/") for c in changes)
