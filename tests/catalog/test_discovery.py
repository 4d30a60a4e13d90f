from __future__ import annotations

from pathlib import Path

import pytest

from kedro_catalog.catalog.discovery import discover_catalog_files, is_catalog_file
from kedro_catalog.config import CatalogSettings


@pytest.mark.parametrize(
    "relative, expected",
    [
        ("conf/base/catalog.yml", True),
        ("conf/local/catalog.yaml", True),
        ("conf/base/catalog_extra.yml", True),
        ("conf/base/catalog/raw.yml", True),
        ("conf/base/parameters.yml", False),
        ("conf/base/catalog.json", False),
        ("data/catalog.yml", False),
        ("catalog.yml", False),
    ],
)
def test_is_catalog_file(tmp_path: Path, relative: str, expected: bool) -> None:
    assert is_catalog_file(tmp_path / relative, tmp_path, CatalogSettings()) is expected


def test_paths_outside_the_root_are_rejected(tmp_path: Path) -> None:
    outside = tmp_path.parent / "elsewhere" / "conf" / "base" / "catalog.yml"
    assert not is_catalog_file(outside, tmp_path, CatalogSettings())


def test_environment_filter(tmp_path: Path) -> None:
    settings = CatalogSettings(environments=("base",))
    assert is_catalog_file(tmp_path / "conf/base/catalog.yml", tmp_path, settings)
    assert not is_catalog_file(tmp_path / "conf/local/catalog.yml", tmp_path, settings)


def test_discovery_skips_excluded_directories(kedro_project) -> None:
    root = kedro_project(
        {
            "conf/base/catalog.yml": "a:\n  type: A\n",
            "conf/local/catalog/extra.yml": "b:\n  type: B\n",
            "conf/base/parameters.yml": "alpha: 1\n",
            ".venv/lib/conf/base/catalog.yml": "c:\n  type: C\n",
        }
    )
    found = [path.relative_to(root).as_posix() for path in discover_catalog_files(root, CatalogSettings())]
    assert found == ["conf/base/catalog.yml", "conf/local/catalog/extra.yml"]


def test_discovery_of_missing_root_is_empty(tmp_path: Path) -> None:
    assert discover_catalog_files(tmp_path / "missing", CatalogSettings()) == []
