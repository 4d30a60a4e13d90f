from __future__ import annotations

from lsprotocol.types import HoverParams, Position

from kedro_catalog.lsp.workspace import CatalogWorkspace

from tests.lsp.conftest import CATALOG, PIPELINE, identifier, open_document, position_of


def _hover(workspace: CatalogWorkspace, relative: str, token: str, **kwargs):
    document = open_document(workspace, relative)
    params = HoverParams(text_document=identifier(document), position=position_of(document.text, token, **kwargs))
    return workspace.hover(params)


def test_hover_shows_dataset_type_and_layer(workspace: CatalogWorkspace) -> None:
    hover = _hover(workspace, PIPELINE, '"companies"')
    assert hover is not None
    assert "**companies**" in hover.contents.value
    assert "pandas.CSVDataset" in hover.contents.value
    assert "`raw`" in hover.contents.value
    assert "catalog.yml" in hover.contents.value
    assert hover.range is not None
    assert hover.range.end.character - hover.range.start.character == len('"companies"')


def test_hover_inside_inputs_list(workspace: CatalogWorkspace) -> None:
    hover = _hover(workspace, PIPELINE, '"reviews"')
    assert hover is not None
    assert "`intermediate`" in hover.contents.value


def test_hover_uses_kedro_viz_layer(workspace: CatalogWorkspace) -> None:
    hover = _hover(workspace, PIPELINE, '"shuttles"')
    assert hover is not None
    assert "pandas.ExcelDataset" in hover.contents.value
    assert "`raw`" in hover.contents.value


def test_no_hover_for_undeclared_or_unrelated_strings(workspace: CatalogWorkspace) -> None:
    assert _hover(workspace, PIPELINE, '"preprocessed_shuttles"') is None
    assert _hover(workspace, PIPELINE, '"preprocess_companies_node"') is None
    assert _hover(workspace, PIPELINE, "preprocess_shuttles,") is None


def test_no_hover_in_catalog_files(workspace: CatalogWorkspace) -> None:
    assert _hover(workspace, CATALOG, "companies:") is None


def test_hover_counts_characters_in_utf16_units(workspace: CatalogWorkspace) -> None:
    relative = "src/spaceflights/pipelines/data_processing/rockets.py"
    line = 'node(preprocess, "🚀🚀", "companies")'
    path = workspace.root_path / relative
    path.write_text(f"from kedro.pipeline import node\n\n{line}\n", encoding="utf-8")
    document = open_document(workspace, relative)

    # Each rocket is one code point but two UTF-16 units.
    column = len(line[: line.index('"companies"')].encode("utf-16-le")) // 2
    last_letter = Position(line=2, character=column + len('"companie'))
    hover = workspace.hover(HoverParams(text_document=identifier(document), position=last_letter))

    assert hover is not None
    assert "**companies**" in hover.contents.value
    assert (hover.range.start.character, hover.range.end.character) == (column, column + len('"companies"'))
