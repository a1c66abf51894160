"""GraphIndex — namespace ownership and require edges as a NetworkX DiGraph.

Nodes are module identities (carrying the record as ``record``), added in
module-set enumeration order. An edge ``a -> b`` means module ``a``
requires a namespace provided by ``b``; successors keep require order.
Requires with no provider are kept per node under ``missing`` so the
resolver can report them only for modules it actually visits.

Built once per module-set snapshot and shared by every ordering request
on that snapshot.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TypeAlias

import networkx as nx

from closuredeps.domain.declarations import DEFAULT_ROOT
from closuredeps.domain.errors import DuplicateProvide, MissingBase, MultipleBases
from closuredeps.domain.modules import ModuleRecord

_Graph: TypeAlias = nx.DiGraph


def ownership_conflicts(modules: Iterable[ModuleRecord]) -> dict[str, tuple[Path, ...]]:
    """Namespaces provided by more than one module, with their owners in order."""
    owners: dict[str, list[Path]] = {}
    for record in modules:
        for namespace in record.provides:
            owners.setdefault(namespace, []).append(record.identity)
    return {ns: tuple(paths) for ns, paths in owners.items() if len(paths) > 1}


class GraphIndex:
    """Namespace -> owner lookup plus the require graph."""

    def __init__(self, root: str = DEFAULT_ROOT) -> None:
        self.root = root
        self.graph: _Graph = nx.DiGraph()
        self.conflicts: list[DuplicateProvide] = []
        self._owners: dict[str, ModuleRecord] = {}
        self._bases: list[ModuleRecord] = []

    @classmethod
    def build(
        cls,
        modules: Iterable[ModuleRecord],
        *,
        root: str = DEFAULT_ROOT,
        strict: bool = True,
    ) -> GraphIndex:
        """Index *modules* in enumeration order.

        Args:
            modules: The active module set.
            root: Root namespace owned by the base module.
            strict: Raise on the first duplicate provide. When False,
                duplicates are collected in :attr:`conflicts` and the first
                owner wins.

        Raises:
            DuplicateProvide: A non-root namespace has two owners (strict only).
        """
        index = cls(root)
        records = list(modules)
        for record in records:
            index.graph.add_node(record.identity, record=record, missing=[])
            for namespace in record.provides:
                index._claim(namespace, record, strict=strict)

        for record in records:
            missing: list[str] = index.graph.nodes[record.identity]["missing"]
            for namespace in record.requires:
                owner = index._owners.get(namespace)
                if owner is None:
                    missing.append(namespace)
                elif owner.identity != record.identity:
                    index.graph.add_edge(record.identity, owner.identity, namespace=namespace)
        return index

    def _claim(self, namespace: str, record: ModuleRecord, *, strict: bool) -> None:
        if namespace == self.root:
            # Competing bases are reported as MultipleBases, not duplicates.
            self._bases.append(record)
            self._owners.setdefault(namespace, record)
            return
        current = self._owners.get(namespace)
        if current is None:
            self._owners[namespace] = record
            return
        conflict = DuplicateProvide(namespace, current.identity, record.identity)
        if strict:
            raise conflict
        self.conflicts.append(conflict)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __contains__(self, identity: object) -> bool:
        return identity in self.graph

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def __iter__(self) -> Iterator[ModuleRecord]:
        for identity in self.graph.nodes:
            yield self.record(identity)

    def owner(self, namespace: str) -> ModuleRecord | None:
        """Return the module providing *namespace*, if any."""
        return self._owners.get(namespace)

    def record(self, identity: Path) -> ModuleRecord:
        record: ModuleRecord = self.graph.nodes[identity]["record"]
        return record

    def dependencies(self, identity: Path) -> list[ModuleRecord]:
        """Providers required by *identity*, in require order."""
        return [self.record(dep) for dep in self.graph.successors(identity)]

    def missing(self, identity: Path) -> list[str]:
        """Required namespaces of *identity* that nobody provides."""
        missing: list[str] = self.graph.nodes[identity]["missing"]
        return missing

    @property
    def base(self) -> ModuleRecord:
        """The unique module providing the root namespace.

        Raises:
            MissingBase: No module provides the root namespace.
            MultipleBases: More than one module does.
        """
        if not self._bases:
            raise MissingBase(self.root)
        if len(self._bases) > 1:
            raise MultipleBases(self.root, [b.identity for b in self._bases])
        return self._bases[0]

    def cycles(self) -> list[list[Path]]:
        """Every elementary require cycle, each closed on its first module."""
        found: list[list[Path]] = []
        for cycle in nx.simple_cycles(self.graph):
            found.append([*cycle, cycle[0]])
        return sorted(found, key=lambda c: [str(p) for p in c])
