"""Tests for EventBus — ordered pluggy dispatch."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from closuredeps.plugins.event_bus import EventBus
from closuredeps.plugins.hookspecs import hookimpl
from closuredeps.plugins.manager import PluginManager


class RecordingPlugin:
    """Plugin that records all hook calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.threads: set[str] = set()

    @hookimpl
    def module_changed(self, path: str, change: str) -> None:
        self.threads.add(threading.current_thread().name)
        self.calls.append(("module_changed", {"path": path, "change": change}))

    @hookimpl
    def graph_ready(self, module_count: int) -> None:
        self.calls.append(("graph_ready", {"module_count": module_count}))


class FailingPlugin:
    @hookimpl
    def module_changed(self, path: str, change: str) -> None:
        raise RuntimeError("subscriber exploded")


@pytest.fixture
def manager() -> PluginManager:
    return PluginManager()


class TestSyncDispatch:
    def test_calls_hook_inline(self, manager: PluginManager) -> None:
        plugin = RecordingPlugin()
        manager.register_plugin(plugin)
        bus = EventBus(manager, sync=True)
        bus.dispatch("module_changed", path="/a.js", change="added")
        assert plugin.calls == [("module_changed", {"path": "/a.js", "change": "added"})]
        assert plugin.threads == {threading.current_thread().name}

    def test_unknown_hook_ignored(self, manager: PluginManager) -> None:
        EventBus(manager, sync=True).dispatch("no_such_hook", x=1)

    def test_failure_is_warning(self, manager: PluginManager, caplog: pytest.LogCaptureFixture) -> None:
        manager.register_plugin(FailingPlugin())
        bus = EventBus(manager, sync=True)
        bus.dispatch("module_changed", path="/a.js", change="added")
        assert "Subscriber failed handling module_changed" in caplog.text


class TestAsyncDispatch:
    def test_order_preserved(self, manager: PluginManager) -> None:
        plugin = RecordingPlugin()
        manager.register_plugin(plugin)
        bus = EventBus(manager)
        try:
            for i in range(50):
                bus.dispatch("module_changed", path=f"/{i}.js", change="updated")
            bus.drain()
        finally:
            bus.shutdown()
        assert [c[1]["path"] for c in plugin.calls] == [f"/{i}.js" for i in range(50)]
        assert plugin.threads and all(t.startswith("closuredeps-events") for t in plugin.threads)

    def test_concurrent_dispatch_drained(self, manager: PluginManager) -> None:
        plugin = RecordingPlugin()
        manager.register_plugin(plugin)
        bus = EventBus(manager)
        start = threading.Barrier(8)

        def emit(worker: int) -> None:
            start.wait()
            for i in range(100):
                bus.dispatch("module_changed", path=f"/{worker}/{i}.js", change="updated")

        threads = [threading.Thread(target=emit, args=(n,)) for n in range(8)]
        try:
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
            bus.drain()
            assert len(plugin.calls) == 800
        finally:
            bus.shutdown()

    def test_dispatch_after_shutdown_is_inline(self, manager: PluginManager) -> None:
        plugin = RecordingPlugin()
        manager.register_plugin(plugin)
        bus = EventBus(manager)
        bus.shutdown()
        bus.dispatch("graph_ready", module_count=1)
        assert plugin.calls == [("graph_ready", {"module_count": 1})]

    def test_shutdown_delivers_pending(self, manager: PluginManager) -> None:
        plugin = RecordingPlugin()
        manager.register_plugin(plugin)
        bus = EventBus(manager)
        bus.dispatch("graph_ready", module_count=3)
        bus.shutdown()
        assert plugin.calls == [("graph_ready", {"module_count": 3})]

    def test_shutdown_twice(self, manager: PluginManager) -> None:
        bus = EventBus(manager)
        bus.shutdown()
        bus.shutdown()
