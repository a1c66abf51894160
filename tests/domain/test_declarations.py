"""Tests for provide/require extraction over generic syntax trees."""

from __future__ import annotations

from typing import Any

import pytest

from closuredeps.domain.declarations import (
    DEFAULT_ROOT,
    Declarations,
    extract_declarations,
    shapes_for,
)
from closuredeps.domain.errors import InvalidBaseModule


def node(node_type: str, *children: dict[str, Any], text: str = "", operator: str | None = None) -> dict[str, Any]:
    return {"type": node_type, "text": text, "operator": operator, "children": list(children)}


def call(root: str, method: str, namespace: str) -> dict[str, Any]:
    callee = node(
        "member_expression",
        node("identifier", text=root),
        node("property_identifier", text=method),
    )
    literal = node("string", node("string_fragment", text=namespace), text=f"'{namespace}'")
    return node("expression_statement", node("call_expression", callee, node("arguments", literal)))


def base_var(root: str = DEFAULT_ROOT) -> dict[str, Any]:
    value = node(
        "binary_expression",
        node("identifier", text=root),
        node("object", text="{}"),
        operator="||",
    )
    return node("variable_declaration", node("variable_declarator", node("identifier", text=root), value))


def base_assign(root: str = DEFAULT_ROOT) -> dict[str, Any]:
    value = node(
        "binary_expression",
        node("identifier", text=root),
        node("object", text="{}"),
        operator="||",
    )
    return node(
        "expression_statement",
        node("assignment_expression", node("identifier", text=root), value),
    )


def program(*statements: dict[str, Any]) -> dict[str, Any]:
    return node("program", *statements)


class TestExtractDeclarations:
    def test_provides_and_requires_in_source_order(self) -> None:
        tree = program(
            call("goog", "provide", "app.b"),
            call("goog", "require", "lib.z"),
            call("goog", "provide", "app.a"),
            call("goog", "require", "lib.y"),
        )
        decls = extract_declarations(tree)
        assert decls.provides == ("app.b", "app.a")
        assert decls.requires == ("lib.z", "lib.y")
        assert decls.is_base is False

    def test_other_statements_ignored(self) -> None:
        tree = program(node("function_declaration"), call("goog", "require", "a"))
        assert extract_declarations(tree).requires == ("a",)

    def test_other_root_is_ignored(self) -> None:
        tree = program(call("other", "provide", "a"))
        assert extract_declarations(tree).empty

    def test_unknown_method_is_ignored(self) -> None:
        tree = program(call("goog", "scope", "a"))
        assert extract_declarations(tree).empty

    def test_non_string_argument_is_ignored(self) -> None:
        callee = node(
            "member_expression",
            node("identifier", text="goog"),
            node("property_identifier", text="provide"),
        )
        stmt = node(
            "expression_statement",
            node("call_expression", callee, node("arguments", node("identifier", text="name"))),
        )
        assert extract_declarations(program(stmt)).empty

    def test_nested_calls_are_not_seen(self) -> None:
        block = node("statement_block", call("goog", "provide", "hidden"))
        tree = program(node("if_statement", node("true"), block))
        assert extract_declarations(tree).empty

    def test_custom_root(self) -> None:
        tree = program(call("my", "provide", "my.app"), call("goog", "provide", "ignored"))
        assert extract_declarations(tree, root="my").provides == ("my.app",)


class TestBaseModule:
    @pytest.mark.parametrize("statement", [base_var(), base_assign()])
    def test_base_provides_root(self, statement: dict[str, Any]) -> None:
        decls = extract_declarations(program(statement))
        assert decls == Declarations(provides=("goog",), requires=(), is_base=True)

    def test_base_may_require(self) -> None:
        decls = extract_declarations(program(base_var(), call("goog", "require", "x")))
        assert decls.provides == ("goog",)
        assert decls.requires == ("x",)

    def test_base_with_provide_is_invalid(self) -> None:
        tree = program(base_var(), call("goog", "provide", "goog.extra"))
        with pytest.raises(InvalidBaseModule) as exc_info:
            extract_declarations(tree)
        assert exc_info.value.provides == ["goog.extra"]

    def test_wrong_operator_is_not_base(self) -> None:
        value = node(
            "binary_expression",
            node("identifier", text="goog"),
            node("object", text="{}"),
            operator="&&",
        )
        stmt = node("variable_declaration", node("variable_declarator", node("identifier", text="goog"), value))
        assert extract_declarations(program(stmt)).is_base is False

    def test_non_empty_object_is_not_base(self) -> None:
        value = node(
            "binary_expression",
            node("identifier", text="goog"),
            node("object", node("pair"), text="{a: 1}"),
            operator="||",
        )
        stmt = node("variable_declaration", node("variable_declarator", node("identifier", text="goog"), value))
        assert extract_declarations(program(stmt)).is_base is False

    def test_custom_root_base(self) -> None:
        decls = extract_declarations(program(base_var("my")), root="my")
        assert decls.provides == ("my",)


class TestShapesFor:
    def test_cached_per_root(self) -> None:
        assert shapes_for("goog") is shapes_for("goog")
        assert shapes_for("goog") is not shapes_for("my")


class TestDeclarations:
    def test_empty(self) -> None:
        assert Declarations().empty
        assert not Declarations(requires=("a",)).empty


class TestStringValues:
    def _provide(self, *parts: dict[str, Any]) -> dict[str, Any]:
        callee = node(
            "member_expression",
            node("identifier", text="goog"),
            node("property_identifier", text="provide"),
        )
        literal = node("string", *parts)
        return node("expression_statement", node("call_expression", callee, node("arguments", literal)))

    def test_escape_sequences_decoded(self) -> None:
        stmt = self._provide(
            node("string_fragment", text="a"),
            node("escape_sequence", text="\\'"),
            node("string_fragment", text="b."),
            node("escape_sequence", text="\\x41"),
            node("escape_sequence", text="\\u{42}"),
            node("escape_sequence", text="\\u0043"),
        )
        assert extract_declarations(program(stmt)).provides == ("a'b.ABC",)

    def test_empty_string(self) -> None:
        assert extract_declarations(program(self._provide())).provides == ("",)
