"""
Static links between Kedro pipeline code and its YAML data catalog.

A Kedro project declares its datasets in YAML files under
``conf/<env>/catalog*`` and refers to them by name from Python, as the
``inputs``/``outputs`` of ``node(...)`` calls.  This package builds an
in-memory index of those declarations and recognises the string literals in
pipeline code that refer to them, so an editor can show what a dataset is,
jump to where it is declared, and complete dataset names while typing.

The code is organised into several modules:

* ``catalog`` – YAML extraction (including anchor/alias interpolation), the
  per-project dataset index and the synchroniser that keeps the index in
  step with file-system changes.
* ``source`` – a tree-sitter view of Python source and the matcher that
  decides whether a position sits in the inputs/outputs slot of a Kedro node
  call.
* ``queries`` – the read-only façade (annotate, resolve, suggest) consumed by
  editor surfaces.
* ``lsp`` – a pygls language server exposing the façade as hover,
  go-to-definition, completion, inlay hints, symbols and diagnostics.
"""

import re
from pathlib import Path
from importlib import metadata as _metadata


def _local_version() -> str | None:
    root = Path(__file__).resolve().parents[1]
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return None
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - IO errors should not break imports
        return None
    match = re.search(r"^version\s*=\s*\"([^\"]+)\"", text, flags=re.MULTILINE)
    if match:
        return match.group(1)
    return None


try:  # pragma: no cover - metadata fallback for editable installs
    __version__ = _metadata.version("kedro-catalog-lsp")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = _local_version() or "0.1.0"

__all__ = ["__version__"]
