"""Structural shape matching over generic syntax trees.

A syntax node is any :class:`~collections.abc.Mapping`; children are
sequences of mappings. Templates are plain dicts, lists and scalars where
the string ``"*"`` matches any present value. Mapping keys must match
exactly, so a template names every key of the node it describes.

Pure functions, no parser dependency. The JavaScript adapter in
:mod:`closuredeps.infrastructure.javascript` exposes tree-sitter nodes
through this interface.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

ANY = "*"

# Every generic syntax node exposes exactly these keys.
NODE_KEYS = ("type", "text", "operator", "children")

_MISSING = object()


def like(obj: Any, test: Any) -> bool:
    """Return True if *obj* matches the template *test*.

    ``"*"`` matches any value that is present (including None).
    Lists match element-wise and must have the same length. Mappings
    must have the same key set, and every value must match. Wildcard
    values are not read, so lazily computed node fields stay unevaluated.
    Scalars compare by type and value (``True`` does not match ``1``).
    """
    if isinstance(test, str) and test == ANY:
        return obj is not _MISSING
    if isinstance(test, Mapping):
        if not isinstance(obj, Mapping) or set(obj.keys()) != set(test.keys()):
            return False
        return all(
            expected == ANY or like(obj.get(key, _MISSING), expected)
            for key, expected in test.items()
        )
    if isinstance(test, Sequence) and not isinstance(test, str):
        if isinstance(obj, str) or not isinstance(obj, Sequence):
            return False
        if len(obj) != len(test):
            return False
        return all(like(o, t) for o, t in zip(obj, test, strict=True))
    return type(obj) is type(test) and obj == test


def shape(
    node_type: str,
    *,
    text: Any = ANY,
    operator: Any = ANY,
    children: Any = ANY,
) -> dict[str, Any]:
    """Build a node template with wildcards for unspecified keys."""
    return {"type": node_type, "text": text, "operator": operator, "children": children}


def identifier(name: str, *, node_type: str = "identifier") -> dict[str, Any]:
    """Template for a named identifier leaf."""
    return shape(node_type, text=name, children=[])
