"""JavaScript parsing via tree-sitter.

Exposes tree-sitter nodes as generic mappings (see
:mod:`closuredeps.domain.shapes`) so declaration extraction never touches
the parser API directly. Node fields are computed on access, so matching a
template against a large statement only walks the parts the template names.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

import tree_sitter_javascript as ts_javascript
from tree_sitter import Language, Node, Parser

from closuredeps.domain.declarations import DEFAULT_ROOT, Declarations, extract_declarations
from closuredeps.domain.errors import ParseError
from closuredeps.domain.shapes import NODE_KEYS

JAVASCRIPT = Language(ts_javascript.language())

# Offending text longer than this is truncated in error messages.
_MAX_ERROR_TEXT = 40


class SyntaxNode(Mapping[str, Any]):
    """Read-only mapping view of a tree-sitter node.

    Keys: ``type``, ``text`` (source text), ``operator`` (text of the
    ``operator`` field, or None) and ``children`` (named children only,
    comments left out).
    """

    __slots__ = ("_node",)

    def __init__(self, node: Node) -> None:
        self._node = node

    def __getitem__(self, key: str) -> Any:
        node = self._node
        if key == "type":
            return node.type
        if key == "text":
            return _decode(node.text)
        if key == "operator":
            op = node.child_by_field_name("operator")
            return _decode(op.text) if op is not None else None
        if key == "children":
            return [SyntaxNode(child) for child in node.named_children if child.type != "comment"]
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(NODE_KEYS)

    def __len__(self) -> int:
        return len(NODE_KEYS)

    def __repr__(self) -> str:
        return f"SyntaxNode({self._node.type!r})"


def _decode(raw: bytes | None) -> str:
    return raw.decode("utf-8", errors="replace") if raw is not None else ""


def _first_error(root: Node) -> Node | None:
    """Return the first ERROR or MISSING node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        # Only subtrees flagged with errors can contain one.
        stack.extend(child for child in reversed(node.children) if child.has_error or child.is_missing)
    return None


def parse(source: str) -> SyntaxNode:
    """Parse *source* and return the program node.

    Raises:
        ParseError: The text is not valid JavaScript. The error carries the
            1-based line and column of the first problem and the offending text.
    """
    parser = Parser(JAVASCRIPT)
    tree = parser.parse(source.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root) or root
        row, column = bad.start_point
        text = _decode(bad.text).strip() if not bad.is_missing else f"missing {bad.type}"
        if len(text) > _MAX_ERROR_TEXT:
            text = text[:_MAX_ERROR_TEXT] + "..."
        raise ParseError(row + 1, column + 1, text)
    return SyntaxNode(root)


class DeclarationExtractor:
    """Callable turning source text into :class:`Declarations`.

    Usage::

        extract = DeclarationExtractor(root="goog")
        decls = extract("goog.provide('app');")
    """

    def __init__(self, root: str = DEFAULT_ROOT) -> None:
        self.root = root

    def __call__(self, source: str) -> Declarations:
        return extract_declarations(parse(source), root=self.root)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DeclarationExtractor) and other.root == self.root

    def __hash__(self) -> int:
        return hash((DeclarationExtractor, self.root))


extract = DeclarationExtractor()
