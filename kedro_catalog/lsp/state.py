"""Document level state tracking for the catalog language server."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from lsprotocol.types import Position, Range
from pygls.uris import to_fs_path
from pygls.workspace import PositionCodec

from kedro_catalog.source.syntax import SourceTree, SyntaxElement

PYTHON_SUFFIXES = frozenset({".py", ".pyi"})


@dataclass
class DocumentState:
    """An open text document and the syntax tree derived from it."""

    uri: str
    text: str
    version: int
    path: Path = field(init=False)
    lines: List[str] = field(init=False)
    _line_offsets: List[int] = field(default_factory=list)
    _tree: Optional[SourceTree] = None
    codec: PositionCodec = field(default_factory=PositionCodec)

    def __post_init__(self) -> None:
        self.path = self._resolve_path()
        self._set_text(self.text)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def update(self, text: str, version: int) -> None:
        self._set_text(text)
        self.version = version

    @property
    def is_python(self) -> bool:
        return self.path.suffix.lower() in PYTHON_SUFFIXES

    @property
    def tree(self) -> SourceTree:
        """Parsed on first use and dropped on every edit."""

        if self._tree is None:
            self._tree = SourceTree(self.text)
        return self._tree

    def element_at(self, position: Position) -> SyntaxElement:
        position = self.from_client(position)
        return self.tree.element_at(self.tree.byte_offset(position.line, position.character))

    def range_of(self, element: SyntaxElement) -> Range:
        (start_line, start_character), (end_line, end_character) = element.start, element.end
        return Range(start=self.to_client(start_line, start_character), end=self.to_client(end_line, end_character))

    def from_client(self, position: Position) -> Position:
        """*position* with its character counted in code points.

        Clients count characters in the negotiated encoding (UTF-16 unless
        agreed otherwise), so characters outside the BMP take two units.
        """

        if not 0 <= position.line < len(self.lines):
            return position
        line = self.lines[position.line]
        units = 0
        for index, char in enumerate(line):
            if units >= position.character:
                return Position(line=position.line, character=index)
            units += self.codec.client_num_units(char)
        return Position(line=position.line, character=len(line))

    def to_client(self, line: int, character: int) -> Position:
        if not 0 <= line < len(self.lines):
            return Position(line=line, character=character)
        return Position(line=line, character=self.codec.client_num_units(self.lines[line][:character]))

    def offset_at(self, position: Position) -> int:
        position = self.from_client(position)
        line_index = min(max(position.line, 0), len(self.lines) - 1)
        start_offset = 0
        if self._line_offsets and line_index < len(self._line_offsets):
            start_offset = self._line_offsets[line_index]
        else:
            for idx in range(line_index):
                start_offset += len(self.lines[idx]) + 1
        column = min(max(position.character, 0), len(self.lines[line_index]))
        return start_offset + column

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resolve_path(self) -> Path:
        try:
            return Path(to_fs_path(self.uri))
        except (TypeError, ValueError):
            return Path(self.uri)

    def _set_text(self, text: str) -> None:
        self.text = text
        self._tree = None
        self.lines = text.split("\n")
        self._recompute_line_offsets()

    def _recompute_line_offsets(self) -> None:
        offsets: List[int] = []
        position = 0
        for line in self.lines:
            offsets.append(position)
            position += len(line) + 1
        self._line_offsets = offsets


__all__ = ["DocumentState", "PYTHON_SUFFIXES"]
