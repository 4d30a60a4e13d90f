"""Per-project mapping from dataset name to its current record."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Union

from kedro_catalog.catalog.models import DatasetRecord, normalize_name


class CatalogIndex:
    """Thread-safe dataset index keyed by normalized name.

    At most one record exists per name; an upsert fully replaces any previous
    binding.  Readers always get fresh lists, never live views, so a result
    can be iterated while the synchronizer keeps mutating the index.
    """

    def __init__(self, records: Iterable[DatasetRecord] = ()) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, DatasetRecord] = {}
        for record in records:
            self.upsert(record)

    def upsert(self, record: DatasetRecord) -> Optional[DatasetRecord]:
        """Insert or replace *record*; return the binding it displaced."""

        with self._lock:
            previous = self._records.pop(record.key, None)
            self._records[record.key] = record
            return previous

    def remove(self, target: Union[DatasetRecord, str]) -> Optional[DatasetRecord]:
        key = target.key if isinstance(target, DatasetRecord) else normalize_name(target)
        with self._lock:
            return self._records.pop(key, None)

    def by_name(self, name: str) -> Optional[DatasetRecord]:
        with self._lock:
            return self._records.get(normalize_name(name))

    def by_file(self, source: str) -> List[DatasetRecord]:
        with self._lock:
            return [record for record in self._records.values() if record.source == source]

    def all(self) -> List[DatasetRecord]:
        with self._lock:
            return list(self._records.values())

    def snapshot(self) -> Dict[str, DatasetRecord]:
        with self._lock:
            return dict(self._records)

    def apply_file(
        self,
        source: str,
        current: Iterable[DatasetRecord],
    ) -> tuple[List[DatasetRecord], List[DatasetRecord]]:
        """Make the index reflect *current* as the full content of *source*.

        Every current record is upserted first, then the records still
        attributed to *source* whose names are no longer current are removed.
        Both phases run under one lock acquisition, so readers see either the
        old or the new state of the file.  Returns ``(upserted, removed)``.
        """

        current = list(current)
        with self._lock:
            for record in current:
                self.upsert(record)
            present = {record.key for record in current}
            removed = [record for record in self.by_file(source) if record.key not in present]
            for record in removed:
                self.remove(record)
            return current, removed

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.by_name(name) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["CatalogIndex"]
