"""Decide whether a place in Python source is a catalog dataset reference.

Kedro pipelines name their datasets in ``node`` calls::

    from kedro.pipeline import node

    node(preprocess, "companies", "preprocessed_companies")
    node(func=preprocess, inputs=["companies", "shuttles"], outputs="model_input")

A string is a confirmed reference when it sits in a closed call whose callee
name contains the node token, the file imports that token from the Kedro
library, and the string is in the inputs or outputs slot: positional
argument 1 or 2, or the value of an ``input``/``inputs``/``output``/
``outputs`` keyword.  A keyword always decides over the position, so
``node(f, inputs="a", 1, outputs="b")`` still resolves both keywords.

While the user is typing the call is usually unfinished.  The weaker
"potential" result covers that case from the tokens before the cursor so
completion can still offer dataset names.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from tree_sitter import Node

from kedro_catalog.config import CatalogSettings
from kedro_catalog.source.syntax import STRING_NODE_TYPE, SourceTree, SyntaxElement

CATALOG_ARGUMENT_POSITIONS = (1, 2)

_SLOT_KEYWORD = re.compile(r"(in|out)puts?")
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_OPENERS = frozenset({"(", "[", "{"})
_CLOSERS = frozenset({")", "]", "}"})
_STATEMENT_KEYWORDS = frozenset({"def", "class", "import", "from", "return", "with", "for", "while", "if"})
_SKIPPED_ARGUMENTS = frozenset({"comment", "ERROR"})


class MatchResult(Enum):
    NOT_A_REFERENCE = "not_a_reference"
    CONFIRMED_REFERENCE = "confirmed_reference"
    POTENTIAL_REFERENCE = "potential_reference"


@dataclass(frozen=True)
class CallSlot:
    """The argument slot an element occupies in a call."""

    callee: str
    keyword: Optional[str] = None
    position: Optional[int] = None
    complete: bool = True

    @property
    def is_catalog_slot(self) -> bool:
        if self.keyword is not None:
            return _SLOT_KEYWORD.fullmatch(self.keyword) is not None
        return self.position in CATALOG_ARGUMENT_POSITIONS


_NO_SLOT = CallSlot(callee="")


class ReferenceMatcher:
    """Classifies syntax elements against the Kedro ``node(...)`` pattern."""

    def __init__(self, node_token: str = "node", library: str = "kedro") -> None:
        self.node_token = node_token.lower()
        self.library = library.lower()

    @classmethod
    def from_settings(cls, settings: CatalogSettings) -> "ReferenceMatcher":
        return cls(node_token=settings.node_token, library=settings.library)

    def classify(self, element: SyntaxElement) -> MatchResult:
        slot = self.closed_slot(element)
        if slot is not None:
            if slot.is_catalog_slot and self.callable_matches(slot.callee) and self.imports_match(element.tree):
                return MatchResult.CONFIRMED_REFERENCE
            return MatchResult.NOT_A_REFERENCE
        slot = self.open_slot(element)
        if slot is not None and slot.is_catalog_slot:
            if self.callable_matches(slot.callee) and self.imports_match(element.tree):
                return MatchResult.POTENTIAL_REFERENCE
        return MatchResult.NOT_A_REFERENCE

    def callable_matches(self, callee: str) -> bool:
        return bool(callee) and self.node_token in callee.lower()

    def imports_match(self, tree: SourceTree) -> bool:
        for text in tree.import_texts():
            lowered = text.lower()
            if self.library in lowered and self.node_token in lowered:
                return True
        return False

    # ------------------------------------------------------------------
    # Closed calls
    # ------------------------------------------------------------------
    def closed_slot(self, element: SyntaxElement) -> Optional[CallSlot]:
        """Slot of *element* inside the nearest complete call.

        Returns ``None`` when there is no such call or the element is not a
        concrete argument of it, which leaves the decision to
        :meth:`open_slot`.
        """

        path = [element.node]
        parent = element.node.parent
        while parent is not None:
            path.append(parent)
            parent = parent.parent

        for depth, node in enumerate(path):
            if node.type == "call":
                break
        else:
            return None

        call = path[depth]
        arguments = call.child_by_field_name("arguments")
        if depth == 0 or arguments is None or path[depth - 1] != arguments:
            # Inside the callee, or a generator-expression argument.
            return _NO_SLOT if depth > 0 else None
        if arguments.type != "argument_list" or depth < 2:
            return None
        argument = path[depth - 2]
        if not argument.is_named or argument.type in _SKIPPED_ARGUMENTS:
            return None
        if not _is_closed(arguments):
            return None

        inner = path[: depth - 2]
        if _is_mapping_key(inner + [argument]):
            return _NO_SLOT

        callee = callee_name(element.tree, call)
        if argument.type == "keyword_argument":
            value = argument.child_by_field_name("value")
            if value is None or not any(node == value for node in inner + [argument]):
                return _NO_SLOT
            name = argument.child_by_field_name("name")
            keyword = element.tree.text_of(name) if name is not None else ""
            return CallSlot(callee=callee, keyword=keyword)

        positional = [child for child in arguments.named_children if child.type not in _SKIPPED_ARGUMENTS]
        position = next(index for index, child in enumerate(positional) if child == argument)
        return CallSlot(callee=callee, position=position)

    # ------------------------------------------------------------------
    # Unfinished calls
    # ------------------------------------------------------------------
    def open_slot(self, element: SyntaxElement) -> Optional[CallSlot]:
        """Best-effort slot from the tokens that precede *element*.

        Walks backwards to the unmatched ``(`` of the surrounding call,
        counting the top-level commas on the way and remembering a
        ``keyword=`` that starts the current argument.  A list or dict
        literal around the element is stepped over, so
        ``node(f, ["a", |`` still counts as argument 1.
        """

        tree = element.tree
        leaves = tree.leaves_before(_scan_boundary(element))
        depth = 0
        commas = 0
        keyword: Optional[str] = None
        innermost = True
        after_colon = False
        for index in range(len(leaves) - 1, -1, -1):
            leaf = leaves[index]
            kind = leaf.type
            if kind in _CLOSERS:
                depth += 1
                continue
            if kind in _OPENERS:
                if depth > 0:
                    depth -= 1
                    continue
                previous = leaves[index - 1] if index > 0 else None
                if kind == "(" and previous is not None and previous.type == "identifier":
                    return CallSlot(
                        callee=tree.text_of(previous),
                        keyword=keyword,
                        position=None if keyword is not None else commas,
                        complete=False,
                    )
                if innermost and kind == "{" and not after_colon:
                    # A dict key names a function parameter, not a dataset.
                    return None
                innermost = False
                # A literal or a parenthesised group holding the element.
                commas = 0
                keyword = None
                continue
            if depth > 0:
                continue
            if kind == ",":
                commas += 1
            elif kind == ":" and innermost and commas == 0:
                after_colon = True
            elif kind == "=" and commas == 0 and keyword is None and index > 0:
                previous = leaves[index - 1]
                if previous.type == "identifier":
                    keyword = tree.text_of(previous)
            elif kind in _STATEMENT_KEYWORDS:
                return None
        return None


def callee_name(tree: SourceTree, call: Node) -> str:
    """Last identifier of a call's callee: ``pipeline.node(...)`` -> ``node``."""

    function = call.child_by_field_name("function")
    if function is None:
        return ""
    if function.type == "identifier":
        return tree.text_of(function)
    if function.type == "attribute":
        attribute = function.child_by_field_name("attribute")
        if attribute is not None:
            return tree.text_of(attribute)
    names = _IDENTIFIER.findall(tree.text_of(function))
    return names[-1] if names else ""


def _is_closed(arguments: Node) -> bool:
    if arguments.child_count == 0:
        return False
    last = arguments.children[-1]
    return last.type == ")" and not last.is_missing


def _is_mapping_key(path: List[Node]) -> bool:
    for below, node in zip(path, path[1:]):
        if node.type == "pair" and node.child_by_field_name("key") == below:
            return True
    return False


def _scan_boundary(element: SyntaxElement) -> int:
    node = element.node
    string = element.enclosing_string()
    if string is not None:
        node = string.node
    if node.type in (STRING_NODE_TYPE, "identifier") and node.start_byte <= element.cursor <= node.end_byte:
        return node.start_byte
    if node.start_byte < element.cursor < node.end_byte and node.child_count == 0:
        return node.start_byte
    return element.cursor


__all__ = ["CATALOG_ARGUMENT_POSITIONS", "CallSlot", "MatchResult", "ReferenceMatcher", "callee_name"]
