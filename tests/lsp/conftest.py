from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from lsprotocol.types import Position, TextDocumentIdentifier, TextDocumentItem

from kedro_catalog.lsp.workspace import CatalogWorkspace

DATA_DIR = Path(__file__).parent / "data"
PIPELINE = "src/spaceflights/pipelines/data_processing/pipeline.py"
CATALOG = "conf/base/catalog.yml"


def _make_uri(path: Path) -> str:
    return path.resolve().as_uri()


@pytest.fixture()
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "spaceflights"
    shutil.copytree(DATA_DIR / "spaceflights", root)
    return root


@pytest.fixture()
def workspace(project_root: Path) -> CatalogWorkspace:
    root_uri = _make_uri(project_root)
    ws = CatalogWorkspace(root_uri)
    ws.set_root(root_uri)
    ws.refresh_index()
    ws.flush()
    yield ws
    ws.dispose()


def open_document(workspace: CatalogWorkspace, relative: str, *, version: int = 1) -> TextDocumentItem:
    path = workspace.root_path / relative
    text = path.read_text(encoding="utf-8")
    language = "python" if path.suffix == ".py" else "yaml"
    item = TextDocumentItem(
        uri=_make_uri(path),
        language_id=language,
        version=version,
        text=text,
    )
    workspace.did_open(item)
    return item


def position_of(text: str, token: str, *, offset: int = 1, occurrence: int = 0) -> Position:
    """Position *offset* characters into the *occurrence*-th match of *token*."""

    seen = 0
    for idx, line in enumerate(text.splitlines()):
        col = line.find(token)
        while col != -1:
            if seen == occurrence:
                return Position(line=idx, character=col + offset)
            seen += 1
            col = line.find(token, col + 1)
    raise AssertionError(f"Token '{token}' not found")


def identifier(item: TextDocumentItem) -> TextDocumentIdentifier:
    return TextDocumentIdentifier(uri=item.uri)


__all__ = ["workspace", "project_root", "open_document", "position_of", "identifier", "DATA_DIR", "PIPELINE", "CATALOG"]
