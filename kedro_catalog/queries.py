"""Read-only catalog queries consumed by editor surfaces.

Every query is gated by the reference matcher and answers from the index as
it is at call time.  Queries never raise: a failure is logged and degrades
to "no result" so the editor stays responsive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from kedro_catalog.catalog.models import DatasetRecord, DeclarationAnchor, short_type
from kedro_catalog.project import ProjectContext
from kedro_catalog.source.matcher import MatchResult, ReferenceMatcher
from kedro_catalog.source.syntax import SyntaxElement

logger = logging.getLogger(__name__)

_SUGGESTIBLE = (MatchResult.CONFIRMED_REFERENCE, MatchResult.POTENTIAL_REFERENCE)


@dataclass(frozen=True)
class DatasetAnnotation:
    name: str
    type: str
    layer: Optional[str] = None
    source: str = ""

    def describe(self) -> str:
        suffix = f" ({self.layer})" if self.layer else ""
        return f"{self.type}{suffix}"


@dataclass(frozen=True)
class DatasetSuggestion:
    name: str
    type: str
    layer: Optional[str] = None

    @property
    def detail(self) -> str:
        """``CSVDataset (raw)``: short type name plus layer."""

        suffix = f" ({self.layer})" if self.layer else ""
        return f"{short_type(self.type)}{suffix}"

    @property
    def insert_text(self) -> str:
        return f'"{self.name}"'


class CatalogQueries:
    """annotate / resolve / suggest over one project's catalog index."""

    def __init__(self, context: ProjectContext, matcher: Optional[ReferenceMatcher] = None) -> None:
        self.context = context
        self.matcher = matcher or ReferenceMatcher.from_settings(context.settings)

    def annotate(self, element: SyntaxElement) -> Optional[DatasetAnnotation]:
        try:
            record = self._referenced_record(element)
        except Exception:  # noqa: BLE001 - queries degrade to no result
            logger.exception("Catalog annotation failed")
            return None
        if record is None:
            return None
        return DatasetAnnotation(name=record.name, type=record.type, layer=record.layer, source=record.source)

    def resolve(self, element: SyntaxElement) -> Optional[DeclarationAnchor]:
        try:
            record = self._referenced_record(element)
        except Exception:  # noqa: BLE001 - queries degrade to no result
            logger.exception("Catalog resolution failed")
            return None
        return record.anchor if record is not None else None

    def suggest(self, element: SyntaxElement) -> List[DatasetSuggestion]:
        try:
            if self.context.disposed:
                return []
            if self.matcher.classify(_target(element)) not in _SUGGESTIBLE:
                return []
            records = self.context.index.all()
        except Exception:  # noqa: BLE001 - queries degrade to no result
            logger.exception("Catalog suggestion failed")
            return []
        return [
            DatasetSuggestion(name=record.name, type=record.type, layer=record.layer)
            for record in sorted(records, key=lambda record: record.key)
        ]

    def _referenced_record(self, element: SyntaxElement) -> Optional[DatasetRecord]:
        if self.context.disposed:
            return None
        string = element.enclosing_string()
        if string is None:
            return None
        if self.matcher.classify(string) is not MatchResult.CONFIRMED_REFERENCE:
            return None
        value = string.string_value()
        if value is None:
            return None
        return self.context.index.by_name(value)


def _target(element: SyntaxElement) -> SyntaxElement:
    string = element.enclosing_string()
    return string if string is not None else element


__all__ = ["CatalogQueries", "DatasetAnnotation", "DatasetSuggestion"]
