"""Tolerant syntax view of Python source, built on tree-sitter.

Pipeline code is queried while it is being typed, so the tree must survive
half-written calls such as ``node(func, "raw_`` without giving up on the
rest of the file.  tree-sitter keeps every token it has seen and marks the
broken region with ``ERROR`` nodes, which is what the reference matcher
needs to recognise a slot in an unfinished call.

Offsets handed to this module are UTF-8 byte offsets, the unit tree-sitter
works in.  :meth:`SourceTree.byte_offset` and :meth:`SourceTree.position_of`
convert from and to ``(line, character)`` pairs counted in code points.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import tree_sitter_python
from tree_sitter import Language, Node, Parser

PY_LANGUAGE = Language(tree_sitter_python.language())

IMPORT_NODE_TYPES = frozenset({"import_statement", "import_from_statement", "future_import_statement"})
STRING_NODE_TYPE = "string"

# Reported as one token by :meth:`SourceTree.leaves`.
_ATOMIC_NODE_TYPES = frozenset({STRING_NODE_TYPE, "comment"})

_STRING_PREFIX = re.compile(r"^[rRbBuUfF]*")


class SourceTree:
    """A parsed Python file."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.source = text.encode("utf-8")
        self.tree = Parser(PY_LANGUAGE).parse(self.source)
        self._line_starts = [0] + [match.end() for match in re.finditer(b"\n", self.source)]
        self._leaves: Optional[List[Node]] = None
        self._leaf_ends: Optional[List[int]] = None
        self._imports: Optional[List[str]] = None
        self._strings: Optional[List[Node]] = None

    @property
    def root(self) -> Node:
        return self.tree.root_node

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def element_at(self, offset: int) -> "SyntaxElement":
        """Smallest node covering *offset* (a byte offset)."""

        offset = min(max(offset, 0), len(self.source))
        node = self.root.descendant_for_byte_range(offset, offset) or self.root
        return SyntaxElement(self, node, offset)

    def string_at(self, offset: int) -> Optional["SyntaxElement"]:
        return self.element_at(offset).enclosing_string()

    def element(self, node: Node) -> "SyntaxElement":
        return SyntaxElement(self, node, node.start_byte)

    def text_of(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def import_texts(self) -> List[str]:
        """Source text of every import statement, wherever it appears."""

        if self._imports is None:
            self._imports = [self.text_of(node) for node in self._walk() if node.type in IMPORT_NODE_TYPES]
        return list(self._imports)

    def string_literals(self) -> List[Node]:
        if self._strings is None:
            self._strings = [node for node in self._walk() if node.type == STRING_NODE_TYPE]
        return list(self._strings)

    def leaves(self) -> List[Node]:
        """Tokens in source order; strings and comments count as one token."""

        if self._leaves is None:
            leaves: List[Node] = []
            stack = [self.root]
            while stack:
                node = stack.pop()
                if node.type in _ATOMIC_NODE_TYPES or node.child_count == 0:
                    if not node.is_missing and node.end_byte > node.start_byte:
                        leaves.append(node)
                    continue
                stack.extend(reversed(node.children))
            self._leaves = leaves
            self._leaf_ends = [leaf.end_byte for leaf in leaves]
        return self._leaves

    def leaves_before(self, offset: int) -> List[Node]:
        """Tokens that end at or before *offset*."""

        leaves = self.leaves()
        assert self._leaf_ends is not None
        return leaves[: bisect.bisect_right(self._leaf_ends, offset)]

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------
    def byte_offset(self, line: int, character: int) -> int:
        if line < 0:
            return 0
        if line >= len(self._line_starts):
            return len(self.source)
        start = self._line_starts[line]
        end = self._line_starts[line + 1] - 1 if line + 1 < len(self._line_starts) else len(self.source)
        row = self.source[start:end].decode("utf-8", errors="replace")
        return start + len(row[: max(character, 0)].encode("utf-8"))

    def position_of(self, offset: int) -> Tuple[int, int]:
        offset = min(max(offset, 0), len(self.source))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        start = self._line_starts[line]
        character = len(self.source[start:offset].decode("utf-8", errors="replace"))
        return line, character

    def _walk(self) -> Iterator[Node]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class SyntaxElement:
    """A node of a :class:`SourceTree` plus the offset it was looked up at."""

    tree: SourceTree
    node: Node
    cursor: int

    @property
    def kind(self) -> str:
        return self.node.type

    @property
    def text(self) -> str:
        return self.tree.text_of(self.node)

    @property
    def is_string(self) -> bool:
        return self.node.type == STRING_NODE_TYPE

    @property
    def parent(self) -> Optional["SyntaxElement"]:
        parent = self.node.parent
        if parent is None:
            return None
        return SyntaxElement(self.tree, parent, self.cursor)

    def ancestors(self) -> Iterator["SyntaxElement"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def enclosing(self, kind: str) -> Optional["SyntaxElement"]:
        """This element or its nearest ancestor of type *kind*."""

        if self.kind == kind:
            return self
        for ancestor in self.ancestors():
            if ancestor.kind == kind:
                return ancestor
        return None

    def enclosing_string(self) -> Optional["SyntaxElement"]:
        return self.enclosing(STRING_NODE_TYPE)

    def string_value(self) -> Optional[str]:
        if not self.is_string:
            return None
        return literal_value(self.tree, self.node)

    @property
    def start(self) -> Tuple[int, int]:
        return self.tree.position_of(self.node.start_byte)

    @property
    def end(self) -> Tuple[int, int]:
        return self.tree.position_of(self.node.end_byte)


def literal_value(tree: SourceTree, node: Node) -> Optional[str]:
    """Contents of a plain string literal, without prefix or quotes.

    f-strings with interpolations have no static value and give ``None``.
    """

    start = end = None
    for child in node.children:
        if child.type == "interpolation":
            return None
        if child.type == "string_start":
            start = child
        elif child.type == "string_end" and not child.is_missing:
            end = child
    if start is not None:
        stop = end.start_byte if end is not None else node.end_byte
        return tree.source[start.end_byte : stop].decode("utf-8", errors="replace")
    text = _STRING_PREFIX.sub("", tree.text_of(node))
    for quote in ('"""', "'''", '"', "'"):
        if text.startswith(quote):
            text = text[len(quote) :]
            if text.endswith(quote):
                text = text[: -len(quote)]
            break
    return text


__all__ = ["PY_LANGUAGE", "SourceTree", "SyntaxElement", "literal_value"]
