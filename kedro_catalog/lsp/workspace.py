"""Workspace level state for the catalog language server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from lsprotocol.types import (
    CompletionList,
    CompletionParams,
    Diagnostic,
    DidChangeWatchedFilesParams,
    DocumentSymbol,
    FileChangeType,
    Hover,
    HoverParams,
    InlayHint,
    InlayHintKind,
    InlayHintParams,
    Location,
    SymbolInformation,
    SymbolKind,
    TextDocumentContentChangeEvent,
    TextDocumentIdentifier,
    TextDocumentItem,
    TextDocumentPositionParams,
    WorkspaceSymbolParams,
)
from pygls.uris import to_fs_path
from pygls.workspace import PositionCodec

from kedro_catalog.catalog.discovery import source_id
from kedro_catalog.catalog.models import short_type
from kedro_catalog.catalog.sync import ChangeKind, FileChange, IndexUpdate, read_catalog_text
from kedro_catalog.config import load_settings
from kedro_catalog.project import ProjectContext
from kedro_catalog.queries import CatalogQueries

from .protocol import (
    anchor_location,
    anchor_range,
    annotation_markup,
    problem_diagnostic,
    source_uri,
    suggestion_item,
)
from .state import DocumentState

_CHANGE_KINDS = {
    FileChangeType.Created: ChangeKind.CREATED,
    FileChangeType.Changed: ChangeKind.MODIFIED,
    FileChangeType.Deleted: ChangeKind.DELETED,
}

IndexListener = Callable[[IndexUpdate], None]
Scheduler = Callable[[Callable[[], None]], object]


class CatalogWorkspace:
    """Owns the project context for the workspace root and the open documents."""

    def __init__(self, root_uri: Optional[str] = None, *, options: Optional[Mapping[str, Any]] = None) -> None:
        self.logger = logging.getLogger("kedro_catalog.lsp.workspace")
        self.root_uri = root_uri
        self.root_path = self._resolve_root(root_uri)
        self._options: Dict[str, Any] = dict(options or {})
        self._call_later: Optional[Scheduler] = None
        self._listeners: List[IndexListener] = []
        self._open_documents: Dict[str, DocumentState] = {}
        self._published: Set[str] = set()
        self.position_codec = PositionCodec()
        self.project = self._create_project()
        self.queries = CatalogQueries(self.project)

    def set_root(self, root_uri: Optional[str]) -> None:
        self.root_uri = root_uri
        self.root_path = self._resolve_root(root_uri)
        self._reset_project()

    def configure(self, options: Optional[Mapping[str, Any]]) -> None:
        self._options = dict(options or {})
        self._reset_project()

    def attach_scheduler(self, call_later: Optional[Scheduler]) -> None:
        self._call_later = call_later
        self.project.tasks.attach(call_later)

    def set_position_codec(self, codec: PositionCodec) -> None:
        """Count LSP characters the way the client negotiated."""

        self.position_codec = codec
        for document in self._open_documents.values():
            document.codec = codec

    def add_index_listener(self, listener: IndexListener) -> None:
        self._listeners.append(listener)
        self.project.add_listener(listener)

    def refresh_index(self) -> None:
        self.project.synchronizer.initialize()

    def flush(self) -> int:
        """Run queued catalog work now; return how many tasks ran."""

        return self.project.tasks.run_pending()

    def dispose(self) -> None:
        self.project.dispose()

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------
    def did_open(self, item: TextDocumentItem) -> None:
        document = DocumentState(uri=item.uri, text=item.text, version=item.version, codec=self.position_codec)
        self._open_documents[item.uri] = document
        self._resync_catalog(document.path)

    def did_change(
        self,
        uri: str,
        version: int,
        changes: Sequence[TextDocumentContentChangeEvent],
    ) -> None:
        document = self._open_documents.get(uri)
        if document is None:
            document = DocumentState(
                uri=uri,
                text=self._read_document_from_fs(uri),
                version=version,
                codec=self.position_codec,
            )
            self._open_documents[uri] = document
        next_text = self._apply_content_changes(document, changes)
        document.update(next_text, version)
        self._resync_catalog(document.path)

    def did_close(self, uri: str) -> None:
        document = self._open_documents.pop(uri, None)
        if document is not None:
            self._resync_catalog(document.path)

    def did_save(self, uri: str) -> None:
        self._resync_catalog(self._path_for(uri))

    def did_change_watched_files(self, params: DidChangeWatchedFilesParams) -> None:
        changes: List[FileChange] = []
        for event in params.changes:
            kind = _CHANGE_KINDS.get(event.type)
            if kind is None:
                continue
            changes.append(FileChange(kind=kind, path=self._path_for(event.uri)))
        self.project.synchronizer.on_files_changed(changes)

    def document(self, uri: str) -> Optional[DocumentState]:
        return self._open_documents.get(uri)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def catalog_diagnostics(self) -> Dict[str, List[Diagnostic]]:
        """Diagnostics for every catalog file, keyed by URI.

        URIs that had diagnostics last time and have none now map to an
        empty list so the client clears them.
        """

        published: Dict[str, List[Diagnostic]] = {}
        for source in self.project.synchronizer.tracked_files():
            published[source_uri(source)] = []
        for problem in self.project.synchronizer.problems():
            width = len(problem.name) if problem.name else None
            published.setdefault(source_uri(problem.source), []).append(problem_diagnostic(problem, width=width))
        for uri in self._published - set(published):
            published[uri] = []
        self._published = {uri for uri, diagnostics in published.items() if diagnostics}
        return published

    # ------------------------------------------------------------------
    # Hover / definition / completion
    # ------------------------------------------------------------------
    def hover(self, params: HoverParams) -> Optional[Hover]:
        document = self._python_document(params.text_document.uri)
        if document is None:
            return None
        element = document.element_at(params.position)
        annotation = self.queries.annotate(element)
        if annotation is None:
            return None
        string = element.enclosing_string()
        return Hover(
            contents=annotation_markup(annotation),
            range=document.range_of(string) if string is not None else None,
        )

    def definition(self, params: TextDocumentPositionParams) -> Optional[Location]:
        document = self._python_document(params.text_document.uri)
        if document is None:
            return None
        anchor = self.queries.resolve(document.element_at(params.position))
        if anchor is None:
            return None
        return anchor_location(anchor)

    def completion(self, params: CompletionParams) -> CompletionList:
        document = self._python_document(params.text_document.uri)
        if document is None:
            return CompletionList(is_incomplete=False, items=[])
        element = document.element_at(params.position)
        suggestions = self.queries.suggest(element)
        quoted = element.enclosing_string() is None
        items = [suggestion_item(suggestion, quoted=quoted) for suggestion in suggestions]
        return CompletionList(is_incomplete=False, items=items)

    # ------------------------------------------------------------------
    # Inlay hints
    # ------------------------------------------------------------------
    def inlay_hints(self, params: InlayHintParams) -> List[InlayHint]:
        document = self._python_document(params.text_document.uri)
        if document is None:
            return []
        tree = document.tree
        first = document.from_client(params.range.start)
        last = document.from_client(params.range.end)
        start = tree.byte_offset(first.line, first.character)
        end = tree.byte_offset(last.line, last.character)
        hints: List[InlayHint] = []
        for node in tree.string_literals():
            if node.end_byte < start or node.start_byte > end:
                continue
            annotation = self.queries.annotate(tree.element(node))
            if annotation is None:
                continue
            line, character = tree.position_of(node.end_byte)
            hints.append(
                InlayHint(
                    position=document.to_client(line, character),
                    label=f": {short_type(annotation.type)}",
                    kind=InlayHintKind.Type,
                    tooltip=annotation.describe(),
                    padding_left=False,
                )
            )
        return hints

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------
    def document_symbols(self, identifier: TextDocumentIdentifier) -> List[DocumentSymbol]:
        path = self._path_for(identifier.uri)
        if not self.project.synchronizer.is_catalog_file(path):
            return []
        records = [record for record in self.project.index.by_file(source_id(path)) if record.anchor]
        records.sort(key=lambda record: (record.anchor.line, record.anchor.column))
        return [
            DocumentSymbol(
                name=record.name,
                detail=record.describe(),
                kind=SymbolKind.Object,
                range=anchor_range(record.anchor),
                selection_range=anchor_range(record.anchor),
                children=None,
            )
            for record in records
        ]

    def workspace_symbols(self, params: WorkspaceSymbolParams) -> List[SymbolInformation]:
        query = (params.query or "").lower()
        results: List[SymbolInformation] = []
        for record in sorted(self.project.index.all(), key=lambda record: record.key):
            if record.anchor is None:
                continue
            if query and query not in record.name.lower():
                continue
            results.append(
                SymbolInformation(
                    name=record.name,
                    kind=SymbolKind.Object,
                    location=anchor_location(record.anchor),
                    container_name=record.layer,
                )
            )
        return results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _create_project(self) -> ProjectContext:
        settings = load_settings(self.root_path, self._options)
        project = ProjectContext(
            self.root_path,
            settings,
            reader=self._read_catalog,
            call_later=self._call_later,
        )
        for listener in self._listeners:
            project.add_listener(listener)
        return project

    def _reset_project(self) -> None:
        self.project.dispose()
        self._published.clear()
        self.project = self._create_project()
        self.queries = CatalogQueries(self.project)

    def _resync_catalog(self, path: Path) -> None:
        synchronizer = self.project.synchronizer
        if synchronizer.is_catalog_file(path) or synchronizer.is_tracked(path):
            synchronizer.on_files_changed([FileChange(kind=ChangeKind.MODIFIED, path=path)])

    def _read_catalog(self, path: Path) -> str:
        # Unsaved editor buffers win over the file on disk.
        target = source_id(path)
        for document in self._open_documents.values():
            if source_id(document.path) == target:
                return document.text
        return read_catalog_text(path)

    def _python_document(self, uri: str) -> Optional[DocumentState]:
        document = self.document(uri)
        if document is None or not document.is_python:
            return None
        return document

    def _apply_content_changes(
        self,
        document: DocumentState,
        changes: Sequence[TextDocumentContentChangeEvent],
    ) -> str:
        text = document.text
        for change in changes:
            change_range = getattr(change, "range", None)
            if change_range is None:
                text = change.text
            else:
                start = document.offset_at(change_range.start)
                end = document.offset_at(change_range.end)
                text = text[:start] + change.text + text[end:]
            # Later ranges are relative to the text after this change.
            document.update(text, document.version)
        return text

    def _read_document_from_fs(self, uri: str) -> str:
        try:
            return self._path_for(uri).read_text(encoding="utf-8")
        except OSError:
            return ""

    def _path_for(self, uri: str) -> Path:
        try:
            return Path(to_fs_path(uri))
        except (TypeError, ValueError):
            return Path(uri)

    def _resolve_root(self, root_uri: Optional[str]) -> Path:
        if root_uri:
            return self._path_for(root_uri)
        return Path.cwd()


__all__ = ["CatalogWorkspace"]
