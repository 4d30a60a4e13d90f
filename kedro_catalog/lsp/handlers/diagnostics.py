"""Diagnostics and lifecycle handlers."""

from __future__ import annotations

from lsprotocol.types import (
    DidChangeTextDocumentParams,
    DidChangeWatchedFilesParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    PublishDiagnosticsParams,
)

from ..workspace import CatalogWorkspace


def publish_catalog_diagnostics(ls) -> None:
    workspace: CatalogWorkspace = ls.catalog_workspace
    for uri, diagnostics in workspace.catalog_diagnostics().items():
        ls.text_document_publish_diagnostics(PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics))


def register(server) -> None:
    workspace: CatalogWorkspace = server.catalog_workspace

    @server.feature("textDocument/didOpen")
    async def _did_open(ls, params: DidOpenTextDocumentParams) -> None:
        workspace.did_open(params.text_document)

    @server.feature("textDocument/didChange")
    async def _did_change(ls, params: DidChangeTextDocumentParams) -> None:
        if not params.content_changes:
            return
        workspace.did_change(
            params.text_document.uri,
            params.text_document.version or 0,
            params.content_changes,
        )

    @server.feature("textDocument/didClose")
    async def _did_close(ls, params: DidCloseTextDocumentParams) -> None:
        workspace.did_close(params.text_document.uri)

    @server.feature("textDocument/didSave")
    async def _did_save(ls, params: DidSaveTextDocumentParams) -> None:
        workspace.did_save(params.text_document.uri)

    @server.feature("workspace/didChangeWatchedFiles")
    async def _did_change_watched_files(ls, params: DidChangeWatchedFilesParams) -> None:
        workspace.did_change_watched_files(params)
