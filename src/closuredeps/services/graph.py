"""GraphService — the owner of the module set and its load orderings.

The module set lives in an immutable snapshot. Every mutation (bulk scan,
watch event, direct add/update/remove) builds a new snapshot under a lock
and publishes it with a single reference swap, so:

- mutations never interleave;
- a reader works on whichever snapshot it picked up, fully old or fully new;
- each snapshot carries its own ordering cache, so publishing a new one
  invalidates every cached ordering at once.

Bulk scans read and parse files on a worker thread and apply their result
in one step. A scan abandoned by :meth:`GraphService.stop` applies nothing.

Subscribers receive ``graph_ready``, ``module_changed`` and ``graph_error``
hooks through the :class:`~closuredeps.plugins.event_bus.EventBus`.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeAlias

from closuredeps.domain.errors import (
    DuplicateProvide,
    GraphError,
    MissingBase,
    MultipleBases,
    UnknownModule,
)
from closuredeps.domain.modules import ModuleRecord, ModuleRole
from closuredeps.infrastructure.filesystem import (
    PathPattern,
    canonical_path,
    compile_patterns,
    load_module,
)
from closuredeps.infrastructure.graph.index import GraphIndex, ownership_conflicts
from closuredeps.infrastructure.javascript import DeclarationExtractor
from closuredeps.plugins.event_bus import EventBus
from closuredeps.plugins.manager import PluginManager
from closuredeps.services.resolver import find_problems, resolve
from closuredeps.services.result import ServiceError, ServiceResult
from closuredeps.services.watch import WatchCoordinator, role_for

if TYPE_CHECKING:
    from closuredeps.config.settings import DepsSettings

logger = logging.getLogger(__name__)

PathArg: TypeAlias = str | os.PathLike[str]


@dataclass(frozen=True)
class ScanReport:
    """Outcome of a bulk scan.

    Attributes:
        loaded: Paths applied to the module set, in enumeration order.
        errors: Load failures skipped under the ``best_effort`` policy.
    """

    loaded: tuple[Path, ...] = ()
    errors: tuple[GraphError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


class _Snapshot:
    """An immutable module set plus its lazily built index and ordering cache."""

    def __init__(self, modules: dict[Path, ModuleRecord], version: int, root: str) -> None:
        self.modules: Mapping[Path, ModuleRecord] = MappingProxyType(modules)
        self.version = version
        self.root = root
        self.orderings: dict[Path | None, tuple[ModuleRecord, ...]] = {}
        self._index: GraphIndex | None = None

    def index(self) -> GraphIndex:
        if self._index is None:
            self._index = GraphIndex.build(self.modules.values(), root=self.root)
        return self._index


class GraphService:
    """Façade over the live module graph.

    Usage::

        service = GraphService(settings)
        service.start().result()          # initial scan + watcher
        paths = service.get_paths("main.js")
        service.stop()
    """

    def __init__(
        self,
        settings: DepsSettings,
        *,
        plugin_manager: PluginManager | None = None,
    ) -> None:
        self._settings = settings
        self._cwd = settings.root
        self._namespace_root = settings.graph.namespace_root
        self._allow_cycles = settings.resolve.cycles == "ignore"
        self._fail_fast = settings.resolve.reload_policy == "fail_fast"
        self._extractor = DeclarationExtractor(root=self._namespace_root)

        # Discovery order: library, bundled, entry.
        self._patterns: list[tuple[PathPattern, ModuleRole]] = [
            *self._compile(settings.graph.lib, ModuleRole.LIBRARY),
            *self._compile(settings.graph.bundled, ModuleRole.BUNDLED),
            *self._compile(settings.graph.main, ModuleRole.ENTRY),
        ]

        self._lock = threading.RLock()
        self._state = _Snapshot({}, 0, self._namespace_root)
        if plugin_manager is None:
            plugin_manager = PluginManager()
            plugin_manager.discover()
        self._plugins = plugin_manager
        self._events = EventBus(self._plugins, sync=settings.events.sync)
        self._scanner = ThreadPoolExecutor(max_workers=1, thread_name_prefix="closuredeps-scan")
        self._stopping = threading.Event()
        self._ready = threading.Event()
        self._watcher: WatchCoordinator | None = None

    def _compile(self, patterns: Iterable[str], role: ModuleRole) -> list[tuple[PathPattern, ModuleRole]]:
        return [(pattern, role) for pattern in compile_patterns(patterns, self._cwd)]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> Future[ScanReport]:
        """Scan the configured patterns and start watching them.

        Returns a future resolving to the :class:`ScanReport` once the
        initial module set is applied and the service is ready.
        """
        self._ensure_running()
        if self._settings.watch.enabled and self._watcher is None:
            # Started before the scan so no change is missed; the scan never
            # overwrites a record the watcher replaced meanwhile.
            self._watcher = WatchCoordinator(
                self._patterns,
                self._on_file_change,
                coalesce_seconds=self._settings.watch.coalesce_seconds,
            )
            self._watcher.start()
        return self._submit_scan(list(self._patterns), mark_ready=True)

    def stop(self) -> None:
        """Abandon scans, release watch subscriptions and stop event delivery."""
        if self._stopping.is_set():
            return
        self._stopping.set()
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self._scanner.shutdown(wait=True, cancel_futures=True)
        self._events.shutdown()
        logger.debug("Graph service stopped")

    def __enter__(self) -> GraphService:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def ready(self) -> bool:
        """True once an initial scan has been applied."""
        return self._ready.is_set()

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.running

    def _ensure_running(self) -> None:
        if self._stopping.is_set():
            msg = "GraphService has been stopped"
            raise RuntimeError(msg)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, plugin: object, name: str | None = None) -> None:
        """Register *plugin* for ``graph_ready``/``module_changed``/``graph_error``."""
        self._plugins.register_plugin(plugin, name=name)

    def unsubscribe(self, plugin: object) -> None:
        self._plugins.unregister(plugin)

    def drain_events(self, timeout: float | None = 30) -> None:
        """Block until all emitted events have been delivered."""
        self._events.drain(timeout)

    def _emit_error(self, exc: GraphError) -> None:
        logger.warning("%s", exc.message)
        self._events.dispatch("graph_error", code=exc.code, message=exc.message, detail=exc.detail)

    # ------------------------------------------------------------------
    # Bulk scans
    # ------------------------------------------------------------------

    def add_paths(
        self,
        patterns: str | Sequence[str],
        *,
        role: ModuleRole = ModuleRole.LIBRARY,
    ) -> Future[ScanReport]:
        """Load every file matching *patterns* and add it to the module set.

        The patterns are also watched when the watcher is running. Under
        the ``fail_fast`` reload policy the future fails with the first load
        error and nothing is applied; under ``best_effort`` loadable files
        are applied and failures are listed in the report.
        """
        self._ensure_running()
        if isinstance(patterns, str):
            patterns = [patterns]
        compiled = self._compile(patterns, role)
        with self._lock:
            self._patterns.extend(compiled)
            if self._watcher is not None:
                self._watcher.add_patterns(compiled)
        return self._submit_scan(compiled, mark_ready=False)

    def _submit_scan(
        self,
        patterns: list[tuple[PathPattern, ModuleRole]],
        *,
        mark_ready: bool,
    ) -> Future[ScanReport]:
        return self._scanner.submit(self._scan, patterns, mark_ready)

    def _scan(
        self,
        patterns: list[tuple[PathPattern, ModuleRole]],
        mark_ready: bool,
    ) -> ScanReport:
        before = self._state.modules
        files: dict[Path, ModuleRole] = {}
        for pattern, role in patterns:
            for path in pattern.discover():
                files.setdefault(path, role_for(self._patterns, path) or role)

        records: list[ModuleRecord] = []
        errors: list[GraphError] = []
        for path, role in files.items():
            if self._stopping.is_set():
                raise CancelledError
            try:
                records.append(
                    load_module(path, role, cwd=self._cwd, extractor=self._extractor)
                )
            except GraphError as exc:
                self._emit_error(exc)
                if self._fail_fast:
                    raise
                errors.append(exc)

        with self._lock:
            if self._stopping.is_set():
                raise CancelledError
            modules = dict(self._state.modules)
            loaded: list[Path] = []
            for record in records:
                if modules.get(record.identity) is not before.get(record.identity):
                    # Changed by the watcher while this scan was reading.
                    continue
                modules[record.identity] = record
                loaded.append(record.identity)
            self._publish(modules)
            if mark_ready:
                self._ready.set()
            self._events.dispatch("graph_ready", module_count=len(modules))

        logger.debug("Scan applied %d module(s), %d error(s)", len(loaded), len(errors))
        return ScanReport(loaded=tuple(loaded), errors=tuple(errors))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _publish(self, modules: dict[Path, ModuleRecord]) -> None:
        """Swap in a new snapshot. Caller holds the lock."""
        self._state = _Snapshot(modules, self._state.version + 1, self._namespace_root)

    def add_module(self, record: ModuleRecord) -> None:
        """Add a new record.

        Raises:
            ValueError: A module with the same identity is already managed.
        """
        with self._lock:
            if record.identity in self._state.modules:
                msg = f"Module with same identity already added: {record.identity}"
                raise ValueError(msg)
            modules = dict(self._state.modules)
            modules[record.identity] = record
            self._publish(modules)
            self._events.dispatch("module_changed", path=str(record.identity), change="added")

    def update_module(self, record: ModuleRecord) -> None:
        """Replace the record with the same identity, keeping its position.

        Raises:
            UnknownModule: No module with that identity is managed.
        """
        with self._lock:
            if record.identity not in self._state.modules:
                raise UnknownModule(record.identity)
            modules = dict(self._state.modules)
            modules[record.identity] = record
            self._publish(modules)
            self._events.dispatch("module_changed", path=str(record.identity), change="updated")

    def remove_module(self, identity: PathArg) -> ModuleRecord:
        """Remove and return the record for *identity*.

        Raises:
            UnknownModule: No module with that identity is managed.
        """
        path = canonical_path(identity, self._cwd)
        with self._lock:
            if path not in self._state.modules:
                raise UnknownModule(path)
            modules = dict(self._state.modules)
            record = modules.pop(path)
            self._publish(modules)
            self._events.dispatch("module_changed", path=str(path), change="removed")
        return record

    def reload_path(self, path: PathArg, role: ModuleRole = ModuleRole.LIBRARY) -> bool:
        """Bring *path* in line with the file on disk.

        A missing file is removed from the set, unless it is the only base
        module, whose record is kept.
        An existing file is loaded and replaces (or joins) the set unless
        loading fails or it would introduce a new ownership conflict. In
        both rejected cases the previous state is kept and ``graph_error``
        is emitted.

        Returns True if the module set changed.
        """
        identity = canonical_path(path, self._cwd)
        if not identity.exists():
            with self._lock:
                current = self._state.modules
                if identity not in current:
                    return False
                if self._is_last_base(current, identity):
                    lost: GraphError | None = MissingBase(self._namespace_root)
                else:
                    lost = None
                    self.remove_module(identity)
            if lost is not None:
                logger.warning("Keeping deleted base module %s", identity)
                self._emit_error(lost)
                return False
            logger.info("Removed %s", identity)
            return True

        try:
            record = load_module(identity, role, cwd=self._cwd, extractor=self._extractor)
        except GraphError as exc:
            self._emit_error(exc)
            return False

        with self._lock:
            current = self._state.modules
            previous = current.get(identity)
            if previous is not None and previous.source == record.source and previous.role == role:
                return False
            candidate = dict(current)
            candidate[identity] = record
            conflict = self._new_conflict(current, candidate, identity)
            if conflict is not None:
                self._emit_error(conflict)
                return False
            self._publish(candidate)
            change = "added" if previous is None else "updated"
            self._events.dispatch("module_changed", path=str(identity), change=change)
        logger.info("%s %s", change.capitalize(), identity)
        return True

    def _new_conflict(
        self,
        current: Mapping[Path, ModuleRecord],
        candidate: Mapping[Path, ModuleRecord],
        identity: Path,
    ) -> GraphError | None:
        """Return an ownership conflict *candidate* has and *current* lacks."""
        before = ownership_conflicts(current.values())
        for namespace, owners in ownership_conflicts(candidate.values()).items():
            if before.get(namespace) == owners:
                continue
            if namespace == self._namespace_root:
                return MultipleBases(namespace, list(owners))
            # Blame the reloaded module against the module that already owned it.
            first = next((p for p in owners if p != identity), identity)
            return DuplicateProvide(namespace, first, identity)
        return None

    def _is_last_base(self, modules: Mapping[Path, ModuleRecord], identity: Path) -> bool:
        """True if *identity* is the only module providing the root namespace."""
        root = self._namespace_root
        if root not in modules[identity].provides:
            return False
        return not any(root in r.provides for p, r in modules.items() if p != identity)

    def _on_file_change(self, path: Path, role: ModuleRole) -> None:
        if self._stopping.is_set():
            return
        self.reload_path(path, role)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def modules(self) -> tuple[ModuleRecord, ...]:
        """The current module set in enumeration order."""
        return tuple(self._state.modules.values())

    @property
    def version(self) -> int:
        """Incremented on every published change."""
        return self._state.version

    def get_module(self, identity: PathArg) -> ModuleRecord | None:
        """Return the record for *identity*, or None if it is not managed."""
        return self._state.modules.get(canonical_path(identity, self._cwd))

    def get_ordering(self, entry: PathArg | None = None) -> tuple[ModuleRecord, ...]:
        """Return modules in load order for *entry* (or all library modules).

        Served from the snapshot's cache when available.

        Raises:
            GraphError: Any resolution error (see :func:`resolve`).
        """
        state = self._state
        key = canonical_path(entry, self._cwd) if entry is not None else None
        cached = state.orderings.get(key)
        if cached is not None:
            return cached
        ordering = resolve(
            state.index(),
            key,
            root=self._namespace_root,
            allow_cycles=self._allow_cycles,
        )
        state.orderings[key] = ordering
        return ordering

    def get_paths(
        self,
        entry: PathArg | None = None,
        extra: Iterable[PathArg] = (),
    ) -> list[Path]:
        """Ordered module paths followed by *extra* source paths (for compilers)."""
        paths = [record.identity for record in self.get_ordering(entry)]
        paths.extend(canonical_path(p, self._cwd) for p in extra)
        return paths

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def order(
        self,
        entry: PathArg | None = None,
        extra: Iterable[PathArg] = (),
    ) -> ServiceResult:
        """Ordering as a ServiceResult (CLI-facing)."""
        try:
            paths = self.get_paths(entry, extra)
        except GraphError as exc:
            return ServiceResult.failure("order", exc)
        return ServiceResult(
            ok=True,
            op="order",
            data={
                "entry": str(canonical_path(entry, self._cwd)) if entry is not None else None,
                "count": len(paths),
                "paths": [str(p) for p in paths],
            },
        )

    def check(self) -> ServiceResult:
        """Report every graph problem in the current module set."""
        state = self._state
        problems = find_problems(state.modules.values(), root=self._namespace_root)
        items: list[dict[str, Any]] = [
            {"code": p.code, "message": p.message, "detail": p.detail} for p in problems
        ]
        data = {"module_count": len(state.modules), "count": len(items), "problems": items}
        if not problems:
            return ServiceResult(ok=True, op="check", data=data)
        return ServiceResult(
            ok=False,
            op="check",
            data=data,
            error=ServiceError(
                code="GRAPH_INVALID",
                message=f"{len(problems)} problem(s) found",
                detail={"codes": sorted({p.code for p in problems})},
            ),
        )
