"""Tests for PluginManager — subscriber registration."""

from __future__ import annotations

from closuredeps.plugins.hookspecs import hookimpl
from closuredeps.plugins.manager import PluginManager


class ReadyCounter:
    def __init__(self) -> None:
        self.counts: list[int] = []

    @hookimpl
    def graph_ready(self, module_count: int) -> None:
        self.counts.append(module_count)


class TestRegistration:
    def test_register_and_call(self) -> None:
        pm = PluginManager()
        plugin = ReadyCounter()
        pm.register_plugin(plugin)
        pm.hook.graph_ready(module_count=7)
        assert plugin.counts == [7]
        assert plugin in pm.get_plugins()

    def test_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(ReadyCounter())
        assert pm.list_plugin_names()[0].startswith("ReadyCounter-")

    def test_explicit_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(ReadyCounter(), name="counter")
        assert pm.list_plugin_names() == ["counter"]

    def test_two_instances_of_one_class(self) -> None:
        pm = PluginManager()
        pm.register_plugin(ReadyCounter())
        pm.register_plugin(ReadyCounter())
        assert len(pm.get_plugins()) == 2

    def test_unregister(self) -> None:
        pm = PluginManager()
        plugin = ReadyCounter()
        pm.register_plugin(plugin)
        pm.unregister(plugin)
        pm.hook.graph_ready(module_count=1)
        assert plugin.counts == []

    def test_unregister_unknown_is_noop(self) -> None:
        PluginManager().unregister(ReadyCounter())


class TestDiscover:
    def test_discover_without_entry_points(self) -> None:
        pm = PluginManager()
        assert pm.discover() == []

    def test_class_plugins_are_instantiated(self) -> None:
        pm = PluginManager()
        pm._pm.register(ReadyCounter, name="cls")
        pm._normalize_plugin_instances()
        [plugin] = pm.get_plugins()
        assert isinstance(plugin, ReadyCounter)
        assert pm.list_plugin_names() == ["cls"]
