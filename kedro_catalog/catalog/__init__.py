"""Catalog extraction, indexing and synchronization."""

from .extractor import extract, extract_text
from .index import CatalogIndex
from .models import UNKNOWN_TYPE, DatasetRecord, DeclarationAnchor, normalize_name
from .sync import CatalogSynchronizer, ChangeKind, FileChange, IndexUpdate

__all__ = [
    "UNKNOWN_TYPE",
    "CatalogIndex",
    "CatalogSynchronizer",
    "ChangeKind",
    "DatasetRecord",
    "DeclarationAnchor",
    "FileChange",
    "IndexUpdate",
    "extract",
    "extract_text",
    "normalize_name",
]
