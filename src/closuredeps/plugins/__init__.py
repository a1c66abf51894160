"""Extension layer — event subscribers via pluggy.

INVARIANT: Plugin failures are warnings, never errors.
"""

from closuredeps.plugins.event_bus import EventBus
from closuredeps.plugins.hookspecs import hookimpl
from closuredeps.plugins.manager import PluginManager

__all__ = ["EventBus", "PluginManager", "hookimpl"]
