"""pygls based Language Server entrypoint."""

from __future__ import annotations

import asyncio
import logging
import os
from functools import partial

from lsprotocol.types import (
    DidChangeWatchedFilesRegistrationOptions,
    FileSystemWatcher,
    InitializedParams,
    InitializeParams,
    MessageType,
    Registration,
    RegistrationParams,
    ShowMessageParams,
)
from pygls.lsp.server import LanguageServer

from kedro_catalog import __version__
from kedro_catalog.catalog.sync import IndexUpdate

from .handlers import register_all
from .handlers.diagnostics import publish_catalog_diagnostics
from .workspace import CatalogWorkspace

logger = logging.getLogger(__name__)

WATCHER_REGISTRATION_ID = "kedro-catalog-files"


class KedroCatalogLanguageServer(LanguageServer):
    """Concrete LanguageServer holding the catalog workspace."""

    def __init__(self) -> None:
        super().__init__(name="kedro-catalog-lsp", version=__version__)
        self.catalog_workspace = CatalogWorkspace()
        register_all(self)
        self._register_lifecycle_handlers()

    def _register_lifecycle_handlers(self) -> None:
        workspace = self.catalog_workspace

        @self.feature("initialize")
        def _on_initialize(ls: "KedroCatalogLanguageServer", params: InitializeParams) -> None:
            options = params.initialization_options
            if isinstance(options, dict):
                workspace.configure(options)

        @self.feature("initialized")
        async def _on_initialized(ls: "KedroCatalogLanguageServer", params: InitializedParams) -> None:  # noqa: ARG001
            workspace.set_root(ls.workspace.root_uri)
            workspace.set_position_codec(ls.workspace.position_codec)
            workspace.attach_scheduler(asyncio.get_running_loop().call_soon)
            workspace.add_index_listener(partial(_on_index_updated, ls))
            workspace.refresh_index()
            _watch_catalog_files(ls)
            logger.info("Catalog index scheduled for %s", workspace.root_path)


def _on_index_updated(ls: KedroCatalogLanguageServer, update: IndexUpdate) -> None:
    publish_catalog_diagnostics(ls)
    if update.duplicates:
        names = ", ".join(update.duplicates)
        ls.window_show_message(
            ShowMessageParams(type=MessageType.Warning, message=f"There are multiple datasets named: {names}")
        )


def _watch_catalog_files(ls: KedroCatalogLanguageServer) -> None:
    capabilities = ls.client_capabilities
    watched = getattr(getattr(capabilities, "workspace", None), "did_change_watched_files", None)
    if not getattr(watched, "dynamic_registration", False):
        logger.debug("Client cannot watch files for us; relying on document events")
        return
    extensions = ",".join(ls.catalog_workspace.project.settings.extensions)
    ls.client_register_capability(
        RegistrationParams(
            registrations=[
                Registration(
                    id=WATCHER_REGISTRATION_ID,
                    method="workspace/didChangeWatchedFiles",
                    register_options=DidChangeWatchedFilesRegistrationOptions(
                        watchers=[FileSystemWatcher(glob_pattern=f"**/*.{{{extensions}}}")]
                    ),
                )
            ]
        )
    )


def create_server() -> KedroCatalogLanguageServer:
    return KedroCatalogLanguageServer()


def main() -> None:
    server = create_server()
    logger.info("Starting kedro-catalog LSP (pid=%s)", os.getpid())
    server.start_io()


if __name__ == "__main__":  # pragma: no cover
    main()
