"""Structural view of a catalog YAML file.

PyYAML's composer resolves every alias to the very node object it points at,
which loses the information that an alias was written there.  The composer
below keeps it: each ``*name`` becomes an :class:`AliasNode` that records the
alias name and its target, and the document keeps the anchor table so an
alias can be traced back to the top-level entry that defined it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import yaml
from yaml.composer import ComposerError
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from kedro_catalog.errors import CatalogSyntaxError

MERGE_KEY = "<<"
NULL_TAG = "tag:yaml.org,2002:null"


class AliasNode(Node):
    """A ``*name`` occurrence, pointing at the node anchored as ``&name``."""

    id = "alias"

    def __init__(self, anchor: str, target: Node, start_mark, end_mark) -> None:
        super().__init__(target.tag, None, start_mark, end_mark)
        self.anchor = anchor
        self.target = target


class _CatalogComposer(yaml.SafeLoader):
    def __init__(self, stream: str) -> None:
        super().__init__(stream)
        self.document_anchors: Dict[str, Node] = {}

    def compose_document(self):  # noqa: D401 - mirrors yaml.composer.Composer
        self.get_event()
        node = self.compose_node(None, None)
        self.get_event()
        self.document_anchors = dict(self.anchors)
        self.anchors = {}
        return node

    def compose_node(self, parent, index):
        if self.check_event(yaml.AliasEvent):
            event = self.get_event()
            anchor = event.anchor
            if anchor not in self.anchors:
                raise ComposerError(
                    None, None, f"found undefined alias {anchor!r}", event.start_mark
                )
            return AliasNode(anchor, self.anchors[anchor], event.start_mark, event.end_mark)
        return super().compose_node(parent, index)


@dataclass(frozen=True)
class YamlEntry:
    """A key/value pair of a mapping whose key is a plain scalar."""

    key: str
    key_node: ScalarNode
    value: Node

    @property
    def is_placeholder(self) -> bool:
        return self.key.startswith("_")


class CatalogDocument:
    """One parsed catalog file."""

    def __init__(self, source: str, root: Optional[Node], anchors: Dict[str, Node]) -> None:
        self.source = source
        self.root = root
        self.anchors = anchors
        self._entries: Optional[List[YamlEntry]] = None

    @classmethod
    def parse(cls, text: str, source: str = "") -> "CatalogDocument":
        """Compose *text*; raise :class:`CatalogSyntaxError` when it is not YAML."""

        if not text.strip():
            return cls(source, None, {})
        loader = _CatalogComposer(text)
        try:
            root = loader.get_single_node()
            anchors = loader.document_anchors
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            problem = getattr(exc, "problem", None) or str(exc)
            raise CatalogSyntaxError(
                f"Invalid catalog YAML: {problem}",
                path=source or None,
                line=mark.line + 1 if mark is not None else None,
                column=mark.column + 1 if mark is not None else None,
            ) from exc
        finally:
            loader.dispose()
        return cls(source, root, anchors)

    @property
    def is_empty(self) -> bool:
        return not self.entries()

    def entries(self) -> List[YamlEntry]:
        """Top-level entries in document order."""

        if self._entries is None:
            self._entries = [
                entry for entry in mapping_entries(self.root) if entry.key != MERGE_KEY
            ]
        return list(self._entries)

    def keys(self) -> List[str]:
        return [entry.key for entry in self.entries()]

    def anchor_owner(self, anchor: str) -> Optional[str]:
        """Return the top-level key whose value carries ``&anchor``."""

        target = self.anchors.get(anchor)
        if target is None:
            return None
        for entry in self.entries():
            if entry.value is target:
                return entry.key
        return None


def mapping_entries(node: Optional[Node]) -> List[YamlEntry]:
    if not isinstance(node, MappingNode):
        return []
    entries: List[YamlEntry] = []
    for key_node, value_node in node.value:
        if isinstance(key_node, ScalarNode):
            entries.append(YamlEntry(key=str(key_node.value), key_node=key_node, value=value_node))
    return entries


def scalar_text(node: Optional[Node]) -> Optional[str]:
    """Text of a scalar, following a single alias to a scalar target."""

    if isinstance(node, AliasNode):
        node = node.target
    if isinstance(node, ScalarNode) and node.tag != NULL_TAG:
        value = str(node.value)
        return value if value else None
    return None


def iter_aliases(node: Optional[Node]) -> Iterator[AliasNode]:
    """Yield alias nodes under *node* in document order.

    Aliases are not followed, so a self-referencing anchor cannot recurse.
    """

    if node is None:
        return
    stack: List[Node] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, AliasNode):
            yield current
        elif isinstance(current, MappingNode):
            children: List[Node] = []
            for key_node, value_node in current.value:
                children.extend((key_node, value_node))
            stack.extend(reversed(children))
        elif isinstance(current, SequenceNode):
            stack.extend(reversed(current.value))


def has_alias(node: Optional[Node]) -> bool:
    return next(iter_aliases(node), None) is not None


def key_span(entry: YamlEntry) -> Tuple[int, int, int, int]:
    start = entry.key_node.start_mark
    end = entry.key_node.end_mark
    return start.line, start.column, end.line, end.column


__all__ = [
    "AliasNode",
    "CatalogDocument",
    "YamlEntry",
    "has_alias",
    "iter_aliases",
    "key_span",
    "mapping_entries",
    "scalar_text",
]
