"""Filesystem operations for module discovery and loading.

INVARIANT: Files are truth. The module graph is derived from source files
only and rebuilt from them on every start.

Glob patterns are split into a literal root directory and a remainder that
is compiled with pathspec's ``gitwildmatch`` syntax, anchored at the root.
``lib/**/*.js`` therefore matches every ``.js`` file below ``lib/`` and
``*.js`` matches only files directly inside the pattern root. Discovery and
watch-event filtering share the same :class:`PathPattern`, so a file is
picked up by the watcher exactly when a fresh scan would find it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pathspec import PathSpec

from closuredeps.domain.errors import InvalidBaseModule, ParseError, ReadError
from closuredeps.domain.modules import Extractor, ModuleRecord, ModuleRole
from closuredeps.infrastructure.javascript import extract

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


def canonical_path(path: str | os.PathLike[str], cwd: Path | None = None) -> Path:
    """Resolve *path* (relative to *cwd*) to a canonical absolute path."""
    p = Path(path)
    if not p.is_absolute():
        p = (cwd or Path.cwd()) / p
    return p.resolve()


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathPattern:
    """A glob pattern split into a literal root and a compiled remainder."""

    pattern: str
    root: Path
    spec: PathSpec

    @classmethod
    def compile(cls, pattern: str, cwd: Path) -> PathPattern:
        """Compile *pattern*, resolving its literal prefix against *cwd*."""
        parts = PurePosixPath(pattern.replace(os.sep, "/")).parts
        literal: list[str] = []
        for part in parts:
            if any(ch in _GLOB_CHARS for ch in part):
                break
            literal.append(part)

        if len(literal) == len(parts):
            # No glob characters: the pattern names a single file.
            root_parts, rest = literal[:-1], literal[-1:]
        else:
            root_parts, rest = literal, list(parts[len(literal) :])

        root = canonical_path(Path(*root_parts) if root_parts else Path("."), cwd)
        spec = PathSpec.from_lines("gitwildmatch", ["/" + "/".join(rest)])
        return cls(pattern=pattern, root=root, spec=spec)

    def matches(self, path: Path) -> bool:
        """Return True if the canonical *path* matches this pattern."""
        if not path.is_relative_to(self.root):
            return False
        relative = path.relative_to(self.root).as_posix()
        return relative != "." and self.spec.match_file(relative)

    def discover(self) -> list[Path]:
        """Return all existing files matching this pattern, sorted."""
        if not self.root.is_dir():
            return []
        results: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            base = Path(dirpath)
            for filename in filenames:
                path = base / filename
                if self.matches(path):
                    results.append(path.resolve())
        return sorted(results)


def compile_patterns(patterns: Iterable[str], cwd: Path) -> list[PathPattern]:
    """Compile every pattern in *patterns* against *cwd*."""
    return [PathPattern.compile(p, cwd) for p in patterns]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def read_source(path: Path) -> str:
    """Read a module file as UTF-8 text.

    Raises:
        ReadError: The file is missing, unreadable or not valid UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ReadError(path, "no such file") from exc
    except IsADirectoryError as exc:
        raise ReadError(path, "is a directory") from exc
    except PermissionError as exc:
        raise ReadError(path, "permission denied") from exc
    except UnicodeDecodeError as exc:
        raise ReadError(path, f"not valid UTF-8 ({exc.reason})") from exc
    except OSError as exc:
        raise ReadError(path, exc.strerror or str(exc)) from exc


def load_module(
    path: str | os.PathLike[str],
    role: ModuleRole = ModuleRole.LIBRARY,
    *,
    cwd: Path | None = None,
    extractor: Extractor = extract,
) -> ModuleRecord:
    """Read and parse the module at *path*.

    Declarations are extracted eagerly so syntax problems fail the load
    instead of a later ordering request.

    Raises:
        ReadError: The file cannot be read.
        ParseError: The file is not valid JavaScript (carries the path).
        InvalidBaseModule: The base module also calls provide (carries the path).
    """
    identity = canonical_path(path, cwd)
    source = read_source(identity)
    record = ModuleRecord(identity=identity, source=source, role=role, extractor=extractor)
    try:
        _ = record.declarations
    except (ParseError, InvalidBaseModule) as exc:
        raise exc.with_path(identity) from exc
    logger.debug("Loaded %s (%s)", identity, role)
    return record
