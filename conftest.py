"""Shared pytest fixtures and configuration for all tests."""

import textwrap
from pathlib import Path
from typing import Callable, Dict

import pytest

from kedro_catalog.project import ProjectContext


@pytest.fixture
def kedro_project(tmp_path) -> Callable[[Dict[str, str]], Path]:
    """Write files into a throwaway project root and return the root."""

    def _write(files: Dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def project_context(tmp_path):
    """A project rooted at ``tmp_path`` whose queue only runs on demand."""

    context = ProjectContext(tmp_path)
    yield context
    context.dispose()
