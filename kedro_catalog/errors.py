"""Unified error model for catalog indexing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorLocation:
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if self.path and self.line is not None and self.column is not None:
            return f"{self.path}:{self.line}:{self.column}"
        if self.path and self.line is not None:
            return f"{self.path}:{self.line}"
        if self.path:
            return self.path
        return "unknown location"


class CatalogError(Exception):
    """Base class for errors raised while reading catalog files.

    ``line`` and ``column`` are 1-based, matching what a user sees in an
    editor gutter.
    """

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path=path, line=line, column=column)
        self.path = path
        self.line = line
        self.column = column
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        location_desc = self.location.describe()
        if location_desc != "unknown location":
            meta_parts.append(location_desc)
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)


class CatalogSyntaxError(CatalogError):
    """Raised when a catalog file is not valid YAML."""

    code = "catalog-syntax"


class CatalogReadError(CatalogError):
    """Raised when a catalog file cannot be read or decoded."""

    code = "catalog-read"


class ProjectDisposedError(CatalogError):
    """Raised when deferred work reaches a project that has been torn down."""

    code = "project-disposed"


__all__ = [
    "ErrorLocation",
    "CatalogError",
    "CatalogSyntaxError",
    "CatalogReadError",
    "ProjectDisposedError",
]
