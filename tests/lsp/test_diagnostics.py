from __future__ import annotations

from lsprotocol.types import DiagnosticSeverity, DidChangeWatchedFilesParams, FileChangeType, FileEvent

from kedro_catalog.lsp.workspace import CatalogWorkspace

from tests.lsp.conftest import CATALOG


def _notify(workspace: CatalogWorkspace, path, change_type: FileChangeType) -> None:
    params = DidChangeWatchedFilesParams(changes=[FileEvent(uri=path.resolve().as_uri(), type=change_type)])
    workspace.did_change_watched_files(params)
    workspace.flush()


def _for(diagnostics, suffix: str):
    matches = [items for uri, items in diagnostics.items() if uri.endswith(suffix)]
    assert len(matches) == 1, f"no diagnostics entry for {suffix}"
    return matches[0]


def test_valid_catalog_produces_no_diagnostics(workspace: CatalogWorkspace) -> None:
    diagnostics = workspace.catalog_diagnostics()
    assert _for(diagnostics, CATALOG) == []


def test_reports_unparsable_catalog_files(workspace: CatalogWorkspace) -> None:
    broken = workspace.root_path / "conf/base/catalog_broken.yml"
    broken.write_text("companies:\n  type: [unclosed\n", encoding="utf-8")
    _notify(workspace, broken, FileChangeType.Created)

    items = _for(workspace.catalog_diagnostics(), "catalog_broken.yml")
    assert len(items) == 1
    assert items[0].severity == DiagnosticSeverity.Error
    assert "invalid catalog yaml" in items[0].message.lower()
    assert items[0].code == "malformed"


def test_reports_duplicates_in_every_declaring_file_until_resolved(workspace: CatalogWorkspace) -> None:
    local = workspace.root_path / "conf/local/catalog.yml"
    local.write_text("reviews:\n  type: pandas.JSONDataset\n", encoding="utf-8")
    _notify(workspace, local, FileChangeType.Created)

    diagnostics = workspace.catalog_diagnostics()
    for suffix, line in (("conf/local/catalog.yml", 0), (CATALOG, 8)):
        items = _for(diagnostics, suffix)
        assert [item.severity for item in items] == [DiagnosticSeverity.Warning]
        assert items[0].range.start.line == line
        assert items[0].range.end.character == len("reviews")
        assert "reviews" in items[0].message

    local.unlink()
    _notify(workspace, local, FileChangeType.Deleted)
    cleared = workspace.catalog_diagnostics()
    assert _for(cleared, "conf/local/catalog.yml") == []
    assert _for(cleared, CATALOG) == []
    assert workspace.project.index.by_name("reviews").type == "pandas.CSVDataset"


def test_non_catalog_yaml_is_not_indexed(workspace: CatalogWorkspace) -> None:
    params = workspace.root_path / "conf/base/parameters.yml"
    params.write_text("companies: 1\n", encoding="utf-8")
    _notify(workspace, params, FileChangeType.Changed)
    assert all(not uri.endswith("parameters.yml") for uri in workspace.catalog_diagnostics())
    assert workspace.project.index.by_name("companies").type == "pandas.CSVDataset"
