"""Turn one catalog YAML document into dataset records.

Top-level keys starting with ``_`` are placeholders: templates that exist
only to be merged into real entries through YAML aliases, e.g.::

    _csv: &csv
      type: pandas.CSVDataset
      layer: raw

    companies:
      <<: *csv
      filepath: data/01_raw/companies.csv
      layer: intermediate

Only the ``type`` and ``layer`` attributes are projected.  Attributes written
on the entry itself win over anything interpolated from a placeholder, and
when several aliases are merged into one entry the later alias wins.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from yaml.nodes import MappingNode, Node

from kedro_catalog.catalog.models import UNKNOWN_TYPE, DatasetRecord, DeclarationAnchor
from kedro_catalog.catalog.yaml_tree import (
    AliasNode,
    CatalogDocument,
    YamlEntry,
    has_alias,
    iter_aliases,
    key_span,
    mapping_entries,
    scalar_text,
)

logger = logging.getLogger(__name__)

ATTRIBUTES = ("type", "layer")

Attributes = Dict[str, str]


def extract(document: CatalogDocument) -> List[DatasetRecord]:
    """Return one record per dataset entry of *document*, in document order."""

    entries = document.entries()
    if not entries:
        return []

    placeholders: Dict[str, Attributes] = {}
    candidates: List[YamlEntry] = []
    for entry in entries:
        if entry.is_placeholder:
            if isinstance(entry.value, MappingNode):
                placeholders[entry.key] = project_attributes(entry.value)
        else:
            candidates.append(entry)

    own: Dict[str, Attributes] = {}
    for entry in candidates:
        if _is_mapping(entry.value):
            own[entry.key] = project_attributes(entry.value)
        else:
            logger.debug("Skipping non-mapping catalog entry %r in %s", entry.key, document.source)

    records: Dict[str, DatasetRecord] = {}
    for entry in candidates:
        if entry.key not in own:
            continue
        if has_alias(entry.value):
            attributes = _interpolate(entry, document, placeholders, own)
        else:
            attributes = own[entry.key]
        if entry.key in records:
            logger.debug("Duplicate key %r in %s; keeping the last one", entry.key, document.source)
            del records[entry.key]
        records[entry.key] = _make_record(entry, attributes, document.source)
    return list(records.values())


def extract_text(text: str, source: str = "") -> List[DatasetRecord]:
    """Parse and extract in one step; raises ``CatalogSyntaxError`` on invalid YAML."""

    return extract(CatalogDocument.parse(text, source))


def project_attributes(node: Optional[Node]) -> Attributes:
    """Scalar ``type``/``layer`` values written directly on a mapping."""

    attributes: Attributes = {}
    for entry in mapping_entries(node):
        if entry.key in ATTRIBUTES:
            text = scalar_text(entry.value)
            if text is not None:
                attributes[entry.key] = text
    if "layer" not in attributes:
        layer = _viz_layer(node)
        if layer is not None:
            attributes["layer"] = layer
    return attributes


def _viz_layer(node: Optional[Node]) -> Optional[str]:
    # metadata: {kedro-viz: {layer: ...}}
    for entry in mapping_entries(node):
        if entry.key != "metadata":
            continue
        for inner in mapping_entries(entry.value):
            if inner.key != "kedro-viz":
                continue
            for leaf in mapping_entries(inner.value):
                if leaf.key == "layer":
                    return scalar_text(leaf.value)
    return None


def _interpolate(
    entry: YamlEntry,
    document: CatalogDocument,
    placeholders: Dict[str, Attributes],
    own: Dict[str, Attributes],
) -> Attributes:
    merged: Attributes = {}
    for alias in iter_aliases(entry.value):
        merged.update(_alias_attributes(alias, entry.key, document, placeholders, own))
    merged.update(own.get(entry.key, {}))
    return merged


def _alias_attributes(
    alias: AliasNode,
    owner_key: str,
    document: CatalogDocument,
    placeholders: Dict[str, Attributes],
    own: Dict[str, Attributes],
) -> Attributes:
    anchor_owner = document.anchor_owner(alias.anchor)
    if anchor_owner is not None:
        if anchor_owner in placeholders:
            return placeholders[anchor_owner]
        if anchor_owner in own and anchor_owner != owner_key:
            return own[anchor_owner]
    conventional = f"_{alias.anchor}"
    if conventional in placeholders:
        return placeholders[conventional]
    if isinstance(alias.target, MappingNode):
        return project_attributes(alias.target)
    return {}


def _is_mapping(node: Node) -> bool:
    if isinstance(node, AliasNode):
        node = node.target
    return isinstance(node, MappingNode)


def _make_record(entry: YamlEntry, attributes: Attributes, source: str) -> DatasetRecord:
    line, column, end_line, end_column = key_span(entry)
    return DatasetRecord(
        name=entry.key,
        type=attributes.get("type") or UNKNOWN_TYPE,
        layer=attributes.get("layer"),
        source=source,
        anchor=DeclarationAnchor(
            source=source,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
        ),
    )


__all__ = ["ATTRIBUTES", "extract", "extract_text", "project_attributes"]
