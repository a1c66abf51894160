"""Ordered event dispatch via pluggy + ThreadPoolExecutor.

A single worker thread keeps events in emission order, so subscribers see
``module_changed`` notifications in the order the module set changed.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from closuredeps.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class EventBus:
    """Dispatch hook calls to registered subscribers.

    Parameters:
        plugin_manager: PluginManager holding the subscribers.
        sync: Dispatch on the calling thread (useful for testing / ``--sync``).
    """

    def __init__(self, plugin_manager: PluginManager, *, sync: bool = False) -> None:
        self._pm = plugin_manager
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=1, thread_name_prefix="closuredeps-events")
        )
        self._futures: list[Future[None]] = []
        self._futures_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, hook_name: str, **payload: Any) -> None:
        """Call *hook_name* on every subscriber (async unless ``sync``)."""
        with self._futures_lock:
            executor = self._executor
            if executor is not None:
                self._futures = [f for f in self._futures if not f.done()]
                self._futures.append(executor.submit(self._execute_hook, hook_name, payload))
                return
        self._execute_hook(hook_name, payload)

    def drain(self, timeout: float | None = 30) -> None:
        """Block until every dispatched event has been delivered."""
        with self._futures_lock:
            pending = list(self._futures)
        for future in pending:
            future.result(timeout=timeout)
        with self._futures_lock:
            self._futures = [f for f in self._futures if not f.done()]

    def shutdown(self) -> None:
        """Deliver pending events, then stop the worker thread."""
        self.drain()
        with self._futures_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute_hook(self, hook_name: str, payload: dict[str, Any]) -> None:
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return
        try:
            hook_fn(**payload)
        except Exception:
            logger.warning("Subscriber failed handling %s", hook_name, exc_info=True)
