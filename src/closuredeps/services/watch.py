"""WatchCoordinator — filesystem events to module reloads.

A watchdog ``Observer`` watches the literal root directory of every
configured pattern. Matching file events are queued per path and applied
by a single worker thread in delivery order; a path that is already
queued is not queued twice. The callback decides between reload and
removal by looking at the disk, so a burst of events for one file
collapses into a single update.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import TypeAlias

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from closuredeps.domain.modules import ModuleRole
from closuredeps.infrastructure.filesystem import PathPattern, canonical_path

logger = logging.getLogger(__name__)

ChangeCallback: TypeAlias = Callable[[Path, ModuleRole], None]

# Roles in precedence order when a path matches several patterns.
_ROLE_PRECEDENCE = (ModuleRole.ENTRY, ModuleRole.BUNDLED, ModuleRole.LIBRARY)


def role_for(patterns: Iterable[tuple[PathPattern, ModuleRole]], path: Path) -> ModuleRole | None:
    """Return the role of *path* under *patterns*, or None if none match."""
    matched = {role for pattern, role in patterns if pattern.matches(path)}
    for role in _ROLE_PRECEDENCE:
        if role in matched:
            return role
    return None


class _ModuleEventHandler(FileSystemEventHandler):
    """Forward file (not directory) events to the coordinator."""

    def __init__(self, coordinator: WatchCoordinator) -> None:
        super().__init__()
        self._coordinator = coordinator

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in ("opened", "closed_no_write"):
            return
        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)
        for raw in paths:
            if isinstance(raw, bytes):
                raw = raw.decode()
            self._coordinator.notify(Path(raw))


class WatchCoordinator:
    """Watch pattern roots and feed changed paths to *on_change*.

    Parameters:
        patterns: ``(pattern, role)`` pairs to watch.
        on_change: Called with ``(canonical_path, role)`` for every
            matching path whose file was created, modified, moved or deleted.
        coalesce_seconds: Delay before applying a queued path, giving
            editors time to finish writing.
        sync: Apply changes on the notifying thread instead of the worker
            (tests and one-shot tools).
    """

    def __init__(
        self,
        patterns: Sequence[tuple[PathPattern, ModuleRole]],
        on_change: ChangeCallback,
        *,
        coalesce_seconds: float = 0.05,
        sync: bool = False,
    ) -> None:
        self._patterns: list[tuple[PathPattern, ModuleRole]] = list(patterns)
        self._on_change = on_change
        self._coalesce = coalesce_seconds
        self._sync = sync
        self._pending: dict[Path, ModuleRole] = {}
        self._cond = threading.Condition()
        self._stopping = threading.Event()
        self._observer: Observer | None = None
        self._worker: threading.Thread | None = None
        self._watched: set[Path] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the observer (and the worker thread unless ``sync``)."""
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.daemon = True
        self._schedule_roots()
        self._observer.start()
        if not self._sync:
            self._worker = threading.Thread(
                target=self._run, name="closuredeps-watch", daemon=True
            )
            self._worker.start()
        logger.debug("Watching %d root(s)", len(self._watched))

    def stop(self) -> None:
        """Release watch subscriptions and drop queued changes."""
        self._stopping.set()
        with self._cond:
            self._pending.clear()
            self._cond.notify_all()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=2.0)
            self._observer = None
        if self._worker is not None:
            self._worker.join(timeout=2.0)
            self._worker = None
        self._watched.clear()

    @property
    def running(self) -> bool:
        return self._observer is not None and not self._stopping.is_set()

    @property
    def watched_roots(self) -> list[Path]:
        return sorted(self._watched)

    def add_patterns(self, patterns: Sequence[tuple[PathPattern, ModuleRole]]) -> None:
        """Watch additional patterns (roots are scheduled if running)."""
        self._patterns.extend(patterns)
        if self._observer is not None:
            self._schedule_roots()

    def _schedule_roots(self) -> None:
        assert self._observer is not None
        roots = sorted({pattern.root for pattern, _role in self._patterns})
        for root in roots:
            if root in self._watched:
                continue
            # Nested roots are covered by their recursive ancestor.
            if any(root.is_relative_to(w) for w in self._watched):
                continue
            if not root.is_dir():
                logger.warning("Not watching missing directory %s", root)
                continue
            self._observer.schedule(_ModuleEventHandler(self), str(root), recursive=True)
            self._watched.add(root)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def role_for(self, path: Path) -> ModuleRole | None:
        """Return the role of *path*, or None if no pattern matches."""
        return role_for(self._patterns, path)

    def notify(self, path: Path) -> None:
        """Queue (or, in sync mode, apply) a change to *path*."""
        if self._stopping.is_set():
            return
        path = canonical_path(path)
        role = self.role_for(path)
        if role is None:
            return
        if self._sync:
            self._apply(path, role)
            return
        with self._cond:
            if path in self._pending:
                logger.debug("Coalesced event for %s", path)
                return
            self._pending[path] = role
            self._cond.notify()

    def _run(self) -> None:
        while not self._stopping.is_set():
            with self._cond:
                while not self._pending and not self._stopping.is_set():
                    self._cond.wait()
            if self._stopping.wait(self._coalesce):
                return
            with self._cond:
                if not self._pending:
                    continue
                path = next(iter(self._pending))
                role = self._pending.pop(path)
            self._apply(path, role)

    def _apply(self, path: Path, role: ModuleRole) -> None:
        try:
            self._on_change(path, role)
        except Exception:
            # The watcher thread must survive a failing callback.
            logger.exception("Failed to apply change to %s", path)
