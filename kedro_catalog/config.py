"""Project configuration for catalog discovery and reference matching."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    tomllib = None  # type: ignore

logger = logging.getLogger(__name__)

PYPROJECT_TABLE = "kedro-catalog-lsp"

_DEFAULT_EXCLUDES = (
    ".git",
    ".hg",
    ".venv",
    "venv",
    "__pycache__",
    "node_modules",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
    "build",
    "dist",
)


@dataclass(frozen=True)
class CatalogSettings:
    """Where catalog files live and how node calls are recognised."""

    conf_source: str = "conf"
    catalog_prefix: str = "catalog"
    environments: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = ("yml", "yaml")
    node_token: str = "node"
    library: str = "kedro"
    exclude_dirs: Tuple[str, ...] = field(default=_DEFAULT_EXCLUDES)

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> "CatalogSettings":
        """Return a copy with *overrides* applied; unknown or malformed keys are dropped."""

        if not overrides:
            return self
        known = {item.name: item for item in fields(self)}
        changes: Dict[str, Any] = {}
        for raw_key, value in overrides.items():
            key = str(raw_key).replace("-", "_")
            if key not in known or value is None:
                continue
            current = getattr(self, key)
            if isinstance(current, tuple):
                coerced = _as_tuple(value)
                if coerced is None:
                    logger.debug("Ignoring malformed setting %s=%r", key, value)
                    continue
                if key == "extensions":
                    coerced = tuple(item.lstrip(".").lower() for item in coerced)
                changes[key] = coerced
            elif isinstance(value, str) and value.strip():
                changes[key] = value.strip()
            else:
                logger.debug("Ignoring malformed setting %s=%r", key, value)
        return replace(self, **changes) if changes else self


def _as_tuple(value: Any) -> Optional[Tuple[str, ...]]:
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if str(item))
    return None


def _read_json_config(path: Path) -> Dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    data = json.loads(content)
    return data if isinstance(data, dict) else {}


def _read_toml_config(path: Path) -> Dict[str, Any]:
    if tomllib is None:
        raise RuntimeError("TOML parsing requires Python 3.11 or later.")
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _pyproject_section(root: Path) -> Dict[str, Any]:
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return {}
    try:
        data = _read_toml_config(pyproject)
    except (OSError, ValueError, RuntimeError) as exc:
        logger.warning("Could not read %s: %s", pyproject, exc)
        return {}
    section = data.get("tool", {}).get(PYPROJECT_TABLE) or {}
    return section if isinstance(section, dict) else {}


def locate_config_file(root: Path) -> Optional[Path]:
    candidates = ["kedro-catalog.toml", ".kedro-catalogrc"]
    for candidate in candidates:
        path = root / candidate
        if path.exists():
            return path
    return None


def load_settings(
    root: Path,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CatalogSettings:
    """Resolve settings for the project at *root*.

    Precedence, lowest first: defaults, ``[tool.kedro-catalog-lsp]`` in
    ``pyproject.toml``, ``kedro-catalog.toml`` / ``.kedro-catalogrc``, then
    *overrides* (typically the editor's initialization options).
    """

    settings = CatalogSettings().merged(_pyproject_section(root))
    config_path = locate_config_file(root)
    if config_path is not None:
        try:
            if config_path.suffix == ".toml":
                data = _read_toml_config(config_path)
            else:
                data = _read_json_config(config_path)
        except (OSError, ValueError, RuntimeError) as exc:
            logger.warning("Could not read %s: %s", config_path, exc)
        else:
            settings = settings.merged(data)
    return settings.merged(overrides)


__all__ = ["CatalogSettings", "PYPROJECT_TABLE", "load_settings", "locate_config_file"]
