"""Error kinds raised while loading modules and resolving orderings.

Every error carries a stable ``code`` and a ``detail`` mapping with enough
context (paths, namespaces) for a collaborator to render an actionable
message.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class GraphError(Exception):
    """Base class for all closuredeps errors."""

    code = "GRAPH_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = {
            key: str(value) if isinstance(value, Path) else value
            for key, value in detail.items()
        }


# ---------------------------------------------------------------------------
# Load-time errors
# ---------------------------------------------------------------------------


class ReadError(GraphError):
    """A module file could not be read."""

    code = "READ_ERROR"

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}", path=path, reason=reason)
        self.path = path


class ParseError(GraphError):
    """Source text is not valid JavaScript."""

    code = "PARSE_ERROR"

    def __init__(
        self,
        line: int,
        column: int,
        text: str,
        *,
        path: Path | None = None,
    ) -> None:
        where = f"{path}:{line}:{column}" if path else f"line {line}, column {column}"
        super().__init__(
            f"Syntax error at {where} near {text!r}",
            line=line,
            column=column,
            text=text,
            path=path,
        )
        self.line = line
        self.column = column
        self.text = text
        self.path = path

    def with_path(self, path: Path) -> ParseError:
        """Return a copy of this error located in *path*."""
        return ParseError(self.line, self.column, self.text, path=path)


class InvalidBaseModule(GraphError):
    """The base module also declares explicit provides."""

    code = "INVALID_BASE"

    def __init__(self, provides: list[str], *, path: Path | None = None) -> None:
        where = f" in {path}" if path else ""
        super().__init__(
            f"Base module{where} must not call provide (found {', '.join(provides)})",
            provides=provides,
            path=path,
        )
        self.provides = provides
        self.path = path

    def with_path(self, path: Path) -> InvalidBaseModule:
        return InvalidBaseModule(self.provides, path=path)


# ---------------------------------------------------------------------------
# Graph errors (raised at resolution time)
# ---------------------------------------------------------------------------


class DuplicateProvide(GraphError):
    """A namespace is provided by two modules."""

    code = "DUPLICATE_PROVIDE"

    def __init__(self, namespace: str, first: Path, second: Path) -> None:
        super().__init__(
            f'Redundant provide "{namespace}" in {second} - already provided by {first}',
            namespace=namespace,
            first=first,
            second=second,
        )
        self.namespace = namespace
        self.first = first
        self.second = second


class MissingBase(GraphError):
    """No module provides the root namespace."""

    code = "MISSING_BASE"

    def __init__(self, root: str) -> None:
        super().__init__(f'No base module providing "{root}" found', root=root)
        self.root = root


class MultipleBases(GraphError):
    """More than one module provides the root namespace."""

    code = "MULTIPLE_BASES"

    def __init__(self, root: str, paths: list[Path]) -> None:
        listed = ", ".join(str(p) for p in paths)
        super().__init__(
            f'Multiple base modules provide "{root}": {listed}',
            root=root,
            paths=[str(p) for p in paths],
        )
        self.root = root
        self.paths = paths


class UnsatisfiedRequire(GraphError):
    """A required namespace has no provider."""

    code = "UNSATISFIED_REQUIRE"

    def __init__(self, namespace: str, path: Path) -> None:
        super().__init__(
            f'Unsatisfied dependency "{namespace}" in {path}',
            namespace=namespace,
            path=path,
        )
        self.namespace = namespace
        self.path = path


class CyclicDependency(GraphError):
    """Modules require each other in a cycle."""

    code = "CYCLIC_DEPENDENCY"

    def __init__(self, cycle: list[Path]) -> None:
        chain = " -> ".join(str(p) for p in cycle)
        super().__init__(f"Circular requires: {chain}", cycle=[str(p) for p in cycle])
        self.cycle = cycle


class UnknownEntryPoint(GraphError):
    """The requested entry point is not a managed module."""

    code = "UNKNOWN_ENTRY_POINT"

    def __init__(self, path: Path) -> None:
        super().__init__(f"Entry point is not a managed module: {path}", path=path)
        self.path = path


class UnknownModule(GraphError):
    """An update or removal named a module that is not managed."""

    code = "UNKNOWN_MODULE"

    def __init__(self, path: Path) -> None:
        super().__init__(f"Module not being managed: {path}", path=path)
        self.path = path
