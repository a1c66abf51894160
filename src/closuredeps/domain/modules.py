"""ModuleRecord — an immutable snapshot of one source module.

INVARIANT: A record never changes. Provides and requires are computed
once from ``source`` and cached; a changed file produces a new record.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TypeAlias

from closuredeps.domain.declarations import Declarations

Extractor: TypeAlias = Callable[[str], Declarations]


class ModuleRole(StrEnum):
    """How a module takes part in blanket orderings."""

    LIBRARY = "library"
    ENTRY = "entry"
    BUNDLED = "bundled"


@dataclass(frozen=True)
class ModuleRecord:
    """A source module keyed by its canonical path.

    Attributes:
        identity: Canonical absolute path of the file.
        source: Raw text at load time.
        role: Library, entry or bundled.
        extractor: Turns ``source`` into :class:`Declarations`.
    """

    identity: Path
    source: str
    role: ModuleRole = ModuleRole.LIBRARY
    extractor: Extractor = field(default=lambda _source: Declarations(), compare=False, repr=False)

    @functools.cached_property
    def declarations(self) -> Declarations:
        """Declarations extracted from ``source`` (computed once)."""
        return self.extractor(self.source)

    @property
    def provides(self) -> tuple[str, ...]:
        return self.declarations.provides

    @property
    def requires(self) -> tuple[str, ...]:
        return self.declarations.requires

    @property
    def is_base(self) -> bool:
        return self.declarations.is_base

    @property
    def name(self) -> str:
        """File name, for display."""
        return self.identity.name
