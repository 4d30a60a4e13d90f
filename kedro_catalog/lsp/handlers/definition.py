"""Definition handler."""

from __future__ import annotations

from lsprotocol.types import DefinitionParams


def register(server) -> None:
    workspace = server.catalog_workspace

    @server.feature("textDocument/definition")
    async def _definition(ls, params: DefinitionParams):
        return workspace.definition(params)
