"""Shared protocol helpers for the catalog language server."""

from __future__ import annotations

from typing import Optional

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    Diagnostic,
    DiagnosticSeverity,
    Location,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
)
from pygls.uris import from_fs_path

from kedro_catalog.catalog.models import DeclarationAnchor
from kedro_catalog.catalog.sync import CatalogProblem
from kedro_catalog.queries import DatasetAnnotation, DatasetSuggestion

DIAGNOSTIC_SOURCE = "kedro-catalog"

_PROBLEM_SEVERITY = {
    "malformed": DiagnosticSeverity.Error,
    "duplicate": DiagnosticSeverity.Warning,
}


def source_uri(source: str) -> str:
    return from_fs_path(source) or source


def anchor_range(anchor: DeclarationAnchor) -> Range:
    return Range(
        start=Position(line=anchor.line, character=anchor.column),
        end=Position(line=anchor.end_line, character=anchor.end_column),
    )


def anchor_location(anchor: DeclarationAnchor) -> Location:
    return Location(uri=source_uri(anchor.source), range=anchor_range(anchor))


def annotation_markup(annotation: DatasetAnnotation) -> MarkupContent:
    lines = [f"**{annotation.name}**", "", f"Type: `{annotation.type}`"]
    if annotation.layer:
        lines.append(f"Layer: `{annotation.layer}`")
    if annotation.source:
        lines.extend(["", f"Declared in `{annotation.source.rsplit('/', 1)[-1]}`"])
    return MarkupContent(kind=MarkupKind.Markdown, value="\n".join(lines))


def suggestion_item(suggestion: DatasetSuggestion, *, quoted: bool) -> CompletionItem:
    return CompletionItem(
        label=suggestion.name,
        kind=CompletionItemKind.Struct,
        detail=suggestion.detail,
        documentation=suggestion.type,
        sort_text=f"0_{suggestion.name.lower()}",
        filter_text=suggestion.name,
        insert_text=suggestion.insert_text if quoted else suggestion.name,
    )


def problem_diagnostic(problem: CatalogProblem, *, width: Optional[int] = None) -> Diagnostic:
    start = Position(line=problem.line, character=problem.column)
    end = Position(line=problem.line, character=problem.column + (width or 1))
    return Diagnostic(
        range=Range(start=start, end=end),
        message=problem.message,
        severity=_PROBLEM_SEVERITY.get(problem.kind, DiagnosticSeverity.Information),
        source=DIAGNOSTIC_SOURCE,
        code=problem.kind,
    )


__all__ = [
    "DIAGNOSTIC_SOURCE",
    "anchor_location",
    "anchor_range",
    "annotation_markup",
    "problem_diagnostic",
    "source_uri",
    "suggestion_item",
]
