from __future__ import annotations

from lsprotocol.types import SymbolKind, WorkspaceSymbolParams

from kedro_catalog.lsp.workspace import CatalogWorkspace

from tests.lsp.conftest import CATALOG, PIPELINE, identifier, open_document


def test_document_symbols_list_catalog_datasets_in_order(workspace: CatalogWorkspace) -> None:
    document = open_document(workspace, CATALOG)
    symbols = workspace.document_symbols(identifier(document))
    assert [symbol.name for symbol in symbols] == [
        "companies",
        "reviews",
        "shuttles",
        "preprocessed_companies",
        "model_input_table",
    ]
    assert all(symbol.kind == SymbolKind.Object for symbol in symbols)
    assert symbols[1].detail == "pandas.CSVDataset (intermediate)"


def test_python_files_have_no_catalog_symbols(workspace: CatalogWorkspace) -> None:
    document = open_document(workspace, PIPELINE)
    assert workspace.document_symbols(identifier(document)) == []


def test_workspace_symbols_search_by_substring(workspace: CatalogWorkspace) -> None:
    results = workspace.workspace_symbols(WorkspaceSymbolParams(query="COMPAN"))
    assert [symbol.name for symbol in results] == ["companies", "preprocessed_companies"]
    assert results[0].container_name == "raw"
    assert results[0].location.uri.endswith("conf/base/catalog.yml")
    assert len(workspace.workspace_symbols(WorkspaceSymbolParams(query=""))) == 5
