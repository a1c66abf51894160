"""Provide/require declaration extraction from a parsed program.

Only top-level statements are inspected, in source order:

- ``goog.provide('a.b');`` adds ``a.b`` to provides
- ``goog.require('a.b');`` adds ``a.b`` to requires
- ``var goog = goog || {};`` (or the bare assignment) marks the base module,
  which provides exactly the root namespace

``goog`` is the default root; any root identifier can be configured.
Pure functions over the generic tree of :mod:`closuredeps.domain.shapes`.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from closuredeps.domain.errors import InvalidBaseModule
from closuredeps.domain.shapes import identifier, like, shape

DEFAULT_ROOT = "goog"


@dataclass(frozen=True)
class Declarations:
    """Namespaces declared by one module."""

    provides: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()
    is_base: bool = False

    @property
    def empty(self) -> bool:
        """True when the module carries no graph information."""
        return not self.provides and not self.requires


@dataclass(frozen=True)
class DeclarationShapes:
    """Statement templates for one root namespace."""

    provide: dict[str, Any]
    require: dict[str, Any]
    base: tuple[dict[str, Any], ...]


def _call_statement(root: str, method: str) -> dict[str, Any]:
    callee = shape(
        "member_expression",
        children=[identifier(root), identifier(method, node_type="property_identifier")],
    )
    return shape(
        "expression_statement",
        children=[
            shape(
                "call_expression",
                children=[callee, shape("arguments", children=[shape("string")])],
            )
        ],
    )


@functools.cache
def shapes_for(root: str = DEFAULT_ROOT) -> DeclarationShapes:
    """Return (cached) declaration templates for *root*."""
    root_or_empty = shape(
        "binary_expression",
        operator="||",
        children=[identifier(root), shape("object", children=[])],
    )
    var_form = shape(
        "variable_declaration",
        children=[shape("variable_declarator", children=[identifier(root), root_or_empty])],
    )
    assign_form = shape(
        "expression_statement",
        children=[shape("assignment_expression", children=[identifier(root), root_or_empty])],
    )
    return DeclarationShapes(
        provide=_call_statement(root, "provide"),
        require=_call_statement(root, "require"),
        base=(var_form, assign_form),
    )


_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _unescape(sequence: str) -> str:
    """Decode one JavaScript escape sequence (``\\n``, ``\\x41``, ``\\u{1F600}``...)."""
    body = sequence[1:]
    if body[:1] in ("x", "u") and len(body) > 1:
        return chr(int(body[1:].strip("{}"), 16))
    if body[:1] in ("\n", "\r", "\u2028", "\u2029"):
        # Line continuation.
        return ""
    return _SIMPLE_ESCAPES.get(body, body)


def _string_value(literal: Mapping[str, Any]) -> str:
    """Return the value of a string literal node, escapes decoded."""
    parts: list[str] = []
    for part in literal["children"]:
        if part["type"] == "escape_sequence":
            parts.append(_unescape(part["text"]))
        else:
            parts.append(part["text"])
    return "".join(parts)


def _string_argument(statement: Mapping[str, Any]) -> str:
    """Return the literal argument of a matched provide/require call."""
    call = statement["children"][0]
    return _string_value(call["children"][1]["children"][0])


def extract_declarations(program: Mapping[str, Any], *, root: str = DEFAULT_ROOT) -> Declarations:
    """Extract provides and requires from the top-level statements of *program*.

    Raises:
        InvalidBaseModule: The base shape is present alongside explicit
            provide calls.
    """
    templates = shapes_for(root)
    provides: list[str] = []
    requires: list[str] = []
    is_base = False

    for statement in program["children"]:
        if like(statement, templates.provide):
            provides.append(_string_argument(statement))
        elif like(statement, templates.require):
            requires.append(_string_argument(statement))
        elif any(like(statement, base) for base in templates.base):
            is_base = True

    if is_base:
        if provides:
            raise InvalidBaseModule(provides)
        provides = [root]

    return Declarations(provides=tuple(provides), requires=tuple(requires), is_base=is_base)
