"""Dependency resolution — deterministic depth-first load ordering.

The base module is always first. After it, modules are emitted in
post-order (requires before the requiring module), visiting seeds in
module-set enumeration order:

- With an entry point, the only seed is the entry module.
- Without one, every ``library`` module is a seed. ``entry`` and
  ``bundled`` modules appear only when something requires them.

Modules that neither provide nor require anything are left out, except
the base module. The traversal is iterative, so deep require chains are
not limited by the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from closuredeps.domain.declarations import DEFAULT_ROOT
from closuredeps.domain.errors import (
    CyclicDependency,
    GraphError,
    UnknownEntryPoint,
    UnsatisfiedRequire,
)
from closuredeps.domain.modules import ModuleRecord, ModuleRole
from closuredeps.infrastructure.graph.index import GraphIndex

logger = logging.getLogger(__name__)


def _traverse(
    index: GraphIndex,
    seed: ModuleRecord,
    settled: set[Path],
    *,
    allow_cycles: bool,
) -> Iterator[ModuleRecord]:
    """Yield *seed*'s unsettled closure in post-order, marking it settled."""
    if seed.identity in settled:
        return
    # Each frame: (record, iterator over its providers).
    stack: list[tuple[ModuleRecord, Iterator[ModuleRecord]]] = []
    active: dict[Path, int] = {}

    def push(record: ModuleRecord) -> None:
        missing = index.missing(record.identity)
        if missing:
            raise UnsatisfiedRequire(missing[0], record.identity)
        active[record.identity] = len(stack)
        stack.append((record, iter(index.dependencies(record.identity))))

    push(seed)
    while stack:
        record, providers = stack[-1]
        for dep in providers:
            if dep.identity in settled:
                continue
            if dep.identity in active:
                if allow_cycles:
                    # Tolerated cycle: treat the in-progress module as settled.
                    logger.debug("Ignoring require cycle %s -> %s", record.identity, dep.identity)
                    continue
                start = active[dep.identity]
                cycle = [frame[0].identity for frame in stack[start:]]
                raise CyclicDependency([*cycle, dep.identity])
            push(dep)
            break
        else:
            stack.pop()
            del active[record.identity]
            settled.add(record.identity)
            yield record


def resolve(
    modules: Iterable[ModuleRecord] | GraphIndex,
    entry: Path | None = None,
    *,
    root: str = DEFAULT_ROOT,
    allow_cycles: bool = False,
) -> tuple[ModuleRecord, ...]:
    """Return *modules* in dependency order.

    Args:
        modules: The active module set (in enumeration order), or an
            already built :class:`GraphIndex` over it.
        entry: Canonical path of an entry module; None orders every
            library module.
        root: Root namespace owned by the base module.
        allow_cycles: Tolerate require cycles instead of raising.

    Raises:
        DuplicateProvide: A namespace has two owners.
        MissingBase: No base module.
        MultipleBases: More than one base module.
        UnknownEntryPoint: *entry* is not in the module set.
        UnsatisfiedRequire: A visited module requires an unprovided namespace.
        CyclicDependency: A require cycle was found (unless *allow_cycles*).
    """
    index = modules if isinstance(modules, GraphIndex) else GraphIndex.build(modules, root=root)
    base = index.base

    if entry is not None:
        if entry not in index:
            raise UnknownEntryPoint(entry)
        seeds = [index.record(entry)]
    else:
        seeds = [record for record in index if record.role is ModuleRole.LIBRARY]

    # The base module bootstraps the namespace system; its requires are not followed.
    settled: set[Path] = {base.identity}
    ordered: list[ModuleRecord] = [base]
    for seed in seeds:
        for record in _traverse(index, seed, settled, allow_cycles=allow_cycles):
            if not record.declarations.empty:
                ordered.append(record)

    logger.debug(
        "Resolved %d of %d modules for %s",
        len(ordered),
        len(index),
        entry or "all library modules",
    )
    return tuple(ordered)


def find_problems(
    modules: Iterable[ModuleRecord],
    *,
    root: str = DEFAULT_ROOT,
) -> list[GraphError]:
    """Collect every graph problem instead of stopping at the first.

    Reports duplicate provides, base-module problems, every unsatisfied
    require and every require cycle, in that order.
    """
    index = GraphIndex.build(modules, root=root, strict=False)
    problems: list[GraphError] = list(index.conflicts)
    try:
        _ = index.base
    except GraphError as exc:
        problems.append(exc)
    for record in index:
        for namespace in index.missing(record.identity):
            problems.append(UnsatisfiedRequire(namespace, record.identity))
    for cycle in index.cycles():
        problems.append(CyclicDependency(cycle))
    return problems
