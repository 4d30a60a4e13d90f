"""Locate catalog YAML files inside a Kedro project."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

from kedro_catalog.config import CatalogSettings


def source_id(path: Path) -> str:
    """Stable identity of a catalog file, used as a record's source."""

    return Path(os.path.abspath(path)).as_posix()


def _relative_parts(path: Path, root: Path) -> tuple[str, ...] | None:
    try:
        return Path(os.path.abspath(path)).relative_to(Path(os.path.abspath(root))).parts
    except ValueError:
        return None


def is_catalog_file(path: Path, root: Path, settings: CatalogSettings) -> bool:
    """True for ``<root>/.../conf/<env>/catalog*.yml`` style paths.

    The path must sit under *root*, have a catalog extension, contain the
    ``conf`` segment, and some segment after it (directory name or file
    stem) must start with the catalog prefix.
    """

    if path.suffix.lstrip(".").lower() not in settings.extensions:
        return False
    parts = _relative_parts(path, root)
    if not parts or settings.conf_source not in parts[:-1]:
        return False
    after = parts[parts.index(settings.conf_source) + 1 :]
    if settings.environments and (len(after) < 2 or after[0] not in settings.environments):
        return False
    segments = list(after[:-1]) + [Path(after[-1]).stem]
    return any(segment.startswith(settings.catalog_prefix) for segment in segments)


def discover_catalog_files(root: Path, settings: CatalogSettings) -> List[Path]:
    """All catalog files under *root*, sorted, skipping excluded directories."""

    if not root.is_dir():
        return []
    excluded = set(settings.exclude_dirs)
    found: List[Path] = []
    for directory, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in excluded)
        for filename in filenames:
            path = Path(directory) / filename
            if is_catalog_file(path, root, settings):
                found.append(path)
    return sorted(found)


__all__ = ["discover_catalog_files", "is_catalog_file", "source_id"]
