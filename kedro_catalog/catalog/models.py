"""Dataset records held by the catalog index."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

UNKNOWN_TYPE = "unknown"

_QUOTES = re.compile(r"[\"']")


def normalize_name(name: str) -> str:
    """Return the identity key for a dataset name.

    Quote characters are dropped and surrounding whitespace trimmed, so a raw
    YAML key ``my_table`` and a Python literal ``"my_table"`` share a key.
    """

    return _QUOTES.sub("", name).strip()


def short_type(type_name: str) -> str:
    """``pandas.CSVDataset`` -> ``CSVDataset``."""

    return type_name.rsplit(".", 1)[-1]


@dataclass(frozen=True, slots=True)
class DeclarationAnchor:
    """Location of a dataset's top-level key in its catalog file.

    Lines and columns are 0-based.
    """

    source: str
    line: int
    column: int
    end_line: int
    end_column: int


@dataclass(eq=False, slots=True)
class DatasetRecord:
    """One declared catalog entry.

    Identity is name based: two records are the same dataset when their
    normalized names match, whatever file or attributes they carry.
    """

    name: str
    type: str = UNKNOWN_TYPE
    layer: Optional[str] = None
    source: str = ""
    anchor: Optional[DeclarationAnchor] = field(default=None, repr=False)

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    def describe(self) -> str:
        suffix = f" ({self.layer})" if self.layer else ""
        return f"{self.type}{suffix}"

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, DatasetRecord):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


__all__ = [
    "UNKNOWN_TYPE",
    "DatasetRecord",
    "DeclarationAnchor",
    "normalize_name",
    "short_type",
]
