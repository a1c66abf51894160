"""Pluggy hook specifications for graph lifecycle events.

Subscribers (the dev server, build watchers, tests) implement any subset
of these hooks and register with :meth:`GraphService.subscribe`.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("closuredeps")
hookimpl = pluggy.HookimplMarker("closuredeps")


class ClosuredepsHookSpec:
    """Hook specifications for the closuredeps event stream."""

    @hookspec
    def graph_ready(self, module_count: int) -> None:
        """Called after a bulk scan has been applied to the module set."""

    @hookspec
    def module_changed(self, path: str, change: str) -> None:
        """Called after a module was ``added``, ``updated`` or ``removed``."""

    @hookspec
    def graph_error(self, code: str, message: str, detail: dict[str, Any]) -> None:
        """Called when a load or reload failed and was not applied."""
