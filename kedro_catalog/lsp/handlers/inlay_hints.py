"""Inlay hints showing the dataset type next to each catalog reference."""

from __future__ import annotations

from lsprotocol.types import InlayHintParams


def register(server) -> None:
    workspace = server.catalog_workspace

    @server.feature("textDocument/inlayHint")
    async def _inlay_hints(ls, params: InlayHintParams):
        return workspace.inlay_hints(params)
